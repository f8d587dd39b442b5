from __future__ import annotations
from functools import wraps
from flask import request, g, abort, current_app
from utils.csrf import extract_csrf_token, verify_csrf_token
from utils.security import verify_access_token

SAFE_METHODS = ("GET", "HEAD", "OPTIONS")


def bearer_token() -> str | None:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        return None
    token = auth.split(" ", 1)[1].strip()
    return token or None


def admin_required():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = bearer_token()
            if not token:
                abort(401, description="Authentication required")
            admin = verify_access_token(token)
            if admin is None:
                # expired, forged and revoked all look the same to the caller
                abort(401, description="Invalid or expired token")
            g.current_admin = admin
            g.access_token = token
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def csrf_protected():
    """
    Authenticated route that also needs a CSRF token on mutating methods.
    """
    def decorator(fn):
        @wraps(fn)
        @admin_required()
        def wrapper(*args, **kwargs):
            if current_app.config.get("CSRF_ENABLED", True) and request.method not in SAFE_METHODS:
                body = request.get_json(silent=True)
                token = extract_csrf_token(request, body)
                if not token:
                    abort(403, description="CSRF token is required")
                if not verify_csrf_token(token, g.current_admin["id"]):
                    abort(403, description="Invalid CSRF token")
            return fn(*args, **kwargs)

        return wrapper

    return decorator
