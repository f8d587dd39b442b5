from collections import Counter

from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config, validate_config
from .errors import register_error_handlers
from .logging_config import configure_logging
from models import storage  # DBStorage singleton (scoped_session)
from utils.rate_limit import RateLimiter

API_PREFIX = "/api"

# Swagger: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "License Admin API",
        "version": "1.0.0",
        "description": "Admin API for issuing license keys, tracking their usage and managing the users that consume them.",
    },
    "basePath": "/",
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the access token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        },
        "CSRF": {
            "type": "apiKey",
            "name": "X-CSRF-Token",
            "in": "header",
            "description": "Token from GET /api/csrf, required on POST and DELETE."
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,
            "model_filter": lambda tag: True,
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}


def create_app(config_name: str | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    Tests build a fresh app per test with create_app("testing").
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    validate_config(app.config)

    # pytest's caplog relies on the root logger staying untouched
    if not app.config["TESTING"]:
        configure_logging(app.config["LOG_LEVEL"], app.config["LOG_FORMAT"])

    # Credentials (the refresh cookie) need an explicit origin list in prod
    CORS(
        app,
        resources={rf"{API_PREFIX}/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
    )

    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    register_error_handlers(app)

    # Per-process state: login throttling and the side-effect failure counter
    app.extensions["login_limiter"] = RateLimiter()
    app.extensions["side_effect_failures"] = Counter()

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .csrf import bp as csrf_bp
    from .licenses import bp as licenses_bp
    from .users import bp as users_bp
    from .plans import bp as plans_bp

    app.register_blueprint(health_bp, url_prefix=API_PREFIX)
    app.register_blueprint(auth_bp, url_prefix=API_PREFIX)
    app.register_blueprint(csrf_bp, url_prefix=API_PREFIX)
    app.register_blueprint(licenses_bp, url_prefix=API_PREFIX)
    app.register_blueprint(users_bp, url_prefix=API_PREFIX)
    app.register_blueprint(plans_bp, url_prefix=API_PREFIX)

    from .commands import register_commands
    register_commands(app)

    # Remove the scoped session at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "License Admin API",
            "docs": "/apidocs/",
            "health": f"{API_PREFIX}/health",
        }, 200

    return app
