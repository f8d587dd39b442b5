"""
CSRF tokens bound to an admin id, signed with itsdangerous.
Clients fetch one from GET /api/csrf and echo it in the X-CSRF-Token header
(or a csrfToken body field) on mutating requests.
"""
from __future__ import annotations

import secrets
from typing import Optional

from flask import current_app
from itsdangerous import BadSignature, URLSafeTimedSerializer

CSRF_HEADER = "X-CSRF-Token"
CSRF_BODY_FIELD = "csrfToken"
_SALT = "license-admin-csrf"


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["CSRF_SECRET"], salt=_SALT)


def generate_csrf_token(admin_id: str) -> str:
    return _serializer().dumps({"sub": str(admin_id), "nonce": secrets.token_hex(8)})


def verify_csrf_token(token: str, admin_id: Optional[str] = None) -> bool:
    if not token:
        return False
    try:
        data = _serializer().loads(token, max_age=current_app.config["CSRF_TOKEN_MAX_AGE"])
    except BadSignature:
        # SignatureExpired is a BadSignature too
        return False
    if not isinstance(data, dict):
        return False
    if admin_id is not None and data.get("sub") != str(admin_id):
        return False
    return True


def extract_csrf_token(request, body=None) -> Optional[str]:
    token = request.headers.get(CSRF_HEADER)
    if token:
        return token
    if isinstance(body, dict):
        value = body.get(CSRF_BODY_FIELD)
        if isinstance(value, str) and value:
            return value
    return None
