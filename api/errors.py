from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException, TooManyRequests
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError
import logging

from models import storage
from models.schemas.common import first_error_message
from utils.license_keys import LicenseKeyGenerationError

logger = logging.getLogger(__name__)

# abort(code) without a description falls back to these
DEFAULT_MESSAGES = {
    400: ("BAD_REQUEST", "Bad request"),
    401: ("UNAUTHORIZED", "Authentication required"),
    403: ("FORBIDDEN", "Forbidden"),
    404: ("NOT_FOUND", "Resource not found"),
    405: ("METHOD_NOT_ALLOWED", "Method not allowed"),
    409: ("CONFLICT", "Conflict"),
    429: ("RATE_LIMITED", "Too many requests"),
}


class RateLimitExceeded(TooManyRequests):
    """429 carrying the limiter result so the handler can emit the headers."""

    def __init__(self, result, retry_after: int, description: str | None = None):
        super().__init__(description=description or "Too many login attempts. Please try again later.")
        self.result = result
        self.retry_after = retry_after


def error_response(error: str, message: str, status: int, details: dict | None = None, **extra):
    payload = {"error": error, "message": message, "status": status}
    if details:
        payload["details"] = details
    payload.update(extra)
    return jsonify(payload), status


def _message(e: HTTPException, status: int) -> str:
    default = DEFAULT_MESSAGES.get(status, ("", "Error"))[1]
    description = getattr(e, "description", None)
    # werkzeug fills in its own long description when abort() got none
    if not description or description == type(e).description:
        return default
    return description


def register_error_handlers(app):
    def _http_handler(status):
        def handler(e):
            code = DEFAULT_MESSAGES[status][0]
            return error_response(code, _message(e, status), status)
        return handler

    for status in (400, 401, 403, 404, 405, 409):
        app.register_error_handler(status, _http_handler(status))

    @app.errorhandler(RateLimitExceeded)
    def rate_limited(err: RateLimitExceeded):
        result = err.result
        response, status = error_response(
            "RATE_LIMITED", err.description, 429, retryAfter=err.retry_after
        )
        response.headers["Retry-After"] = str(err.retry_after)
        response.headers["X-RateLimit-Limit"] = str(result.limit)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)
        response.headers["X-RateLimit-Reset"] = str(int(result.reset))
        return response, status

    # Marshmallow validation errors map to 400 with the first violation as message
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        return error_response(
            "VALIDATION_ERROR", first_error_message(err.messages), 400, details=err.messages
        )

    # Integrity errors (unique constraints, FK violations, check constraints)
    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        storage.rollback()
        message = str(getattr(err, "orig", err))
        lower_msg = message.lower()
        logger.warning("integrity_error", extra={"db_error": message})
        details = {"db_error": message} if current_app.debug else None
        # Heuristics: tailor the status
        if "unique constraint" in lower_msg or "unique violation" in lower_msg:
            return error_response("CONFLICT", "Unique constraint violated.", 409, details=details)
        if "foreign key constraint" in lower_msg or "foreign key mismatch" in lower_msg:
            return error_response("BAD_REQUEST", "Foreign key constraint failed.", 400, details=details)
        if "check constraint" in lower_msg or "constraint failed" in lower_msg:
            return error_response("BAD_REQUEST", "Check constraint failed.", 400, details=details)
        return error_response("BAD_REQUEST", "Integrity error.", 400, details=details)

    @app.errorhandler(LicenseKeyGenerationError)
    def handle_key_generation(err: LicenseKeyGenerationError):
        storage.rollback()
        logger.error("license_key_generation_failed", extra={"attempt": err.attempt})
        return error_response("LICENSE_KEY_GENERATION_FAILED", str(err), 500)

    # Remaining werkzeug HTTPExceptions map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = err.code or 500
        code = DEFAULT_MESSAGES.get(status, ("HTTP_ERROR", ""))[0]
        return error_response(code, _message(err, status), status)

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        storage.rollback()
        logger.exception("Unhandled exception", exc_info=err)
        details = None
        if current_app.debug:
            details = {"type": err.__class__.__name__, "message": str(err)}
        return error_response("INTERNAL_ERROR", "An unexpected error occurred", 500, details=details)
