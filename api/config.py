"""
Environment-aware configuration.
Values come from the process environment (and .env via python-dotenv); the
class is picked by APP_ENV. validate_config() runs once in create_app().
"""
import logging
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present

logger = logging.getLogger(__name__)

DEFAULT_CSRF_SECRET = "csrf-secret-change-in-production"
MIN_SECRET_LENGTH = 32


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")

    # tokens
    JWT_SECRET = os.getenv("JWT_SECRET")
    JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRES = timedelta(seconds=_env_int("ACCESS_TOKEN_EXPIRES_SECONDS", 15 * 60))
    REFRESH_TOKEN_EXPIRES = timedelta(seconds=_env_int("REFRESH_TOKEN_EXPIRES_SECONDS", 7 * 24 * 3600))
    ACCEPT_LEGACY_TOKENS = _env_bool("ACCEPT_LEGACY_TOKENS", True)
    REFRESH_COOKIE_NAME = "refresh_token"
    REFRESH_COOKIE_SECURE = True

    # csrf
    CSRF_SECRET = os.getenv("CSRF_SECRET", DEFAULT_CSRF_SECRET)
    CSRF_ENABLED = _env_bool("CSRF_ENABLED", True)
    CSRF_TOKEN_MAX_AGE = _env_int("CSRF_TOKEN_MAX_AGE", 24 * 3600)

    # login throttling
    LOGIN_IP_LIMIT = _env_int("LOGIN_IP_LIMIT", 5)
    LOGIN_EMAIL_LIMIT = _env_int("LOGIN_EMAIL_LIMIT", 3)
    LOGIN_RATE_WINDOW = _env_int("LOGIN_RATE_WINDOW", 15 * 60)

    LICENSE_KEY_MAX_ATTEMPTS = _env_int("LICENSE_KEY_MAX_ATTEMPTS", 10)

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT = os.getenv("LOG_FORMAT", "json")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    REFRESH_COOKIE_SECURE = False
    LOG_FORMAT = os.getenv("LOG_FORMAT", "console")


class TestingConfig(BaseConfig):
    TESTING = True
    REFRESH_COOKIE_SECURE = False


class ProductionConfig(BaseConfig):
    DEBUG = False


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/testing/prod).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig


def validate_config(config) -> None:
    """
    Check secrets before the app serves anything.
    `config` is a flask Config (dict-like). Fills in JWT_REFRESH_SECRET when unset.
    """
    secret = config.get("JWT_SECRET")
    if not secret:
        raise RuntimeError("JWT_SECRET environment variable is required")
    if len(secret) < MIN_SECRET_LENGTH:
        logger.warning("JWT_SECRET is shorter than %d characters", MIN_SECRET_LENGTH)

    if not config.get("JWT_REFRESH_SECRET"):
        config["JWT_REFRESH_SECRET"] = f"{secret}_refresh"
    if config["JWT_REFRESH_SECRET"] == secret:
        raise RuntimeError("JWT_REFRESH_SECRET must differ from JWT_SECRET")

    if config.get("CSRF_SECRET", DEFAULT_CSRF_SECRET) == DEFAULT_CSRF_SECRET:
        logger.warning("CSRF_SECRET is using the default value; set it in production")
