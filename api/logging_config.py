import logging.config
import sys


def build_logging_config(level: str = "INFO", fmt: str = "json") -> dict:
    formatter = "console" if fmt == "console" else "json"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "pythonjsonlogger.json.JsonFormatter",
                "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
                "json_ensure_ascii": False,
            },
            "console": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
                "stream": sys.stdout,
            },
        },
        "loggers": {
            # SQL echo is controlled by SQLALCHEMY_ECHO, keep the engine quiet otherwise
            "sqlalchemy.engine": {"level": "WARNING", "propagate": True},
        },
        "root": {
            "handlers": ["console"],
            "level": level.upper(),
        },
    }


def configure_logging(level: str = "INFO", fmt: str = "json"):
    """
    Configure logging for the application.

    Args:
        level: root log level name.
        fmt: "json" (python-json-logger) or "console".
    """
    logging.config.dictConfig(build_logging_config(level, fmt))
    logger = logging.getLogger(__name__)
    logger.debug("Logging configured", extra={"log_format": fmt})
    return logger
