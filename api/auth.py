"""
Authentication blueprint:
- POST /login
- POST /auth/refresh
- POST /auth/logout
- POST /auth/revoke

The implementation:
- Uses argon2 for password hashing (via utils.security)
- Issues short-lived access tokens and longer-lived refresh tokens (HS256 JWTs,
  signed with different secrets)
- Revokes tokens by storing their sha256 in revoked_tokens; refresh rotates
- Throttles logins per client IP and per email (utils.rate_limit)
"""
from __future__ import annotations

import logging

from flask import Blueprint, request, jsonify, g, abort, current_app

from models import storage
from models.admin import Admin
from models.schemas.admin import LoginSchema, AdminOutSchema
from utils.audit import AuditAction, audit
from utils.decorators import admin_required, bearer_token, csrf_protected
from utils.rate_limit import get_client_ip
from utils.security import (
    generate_tokens,
    revoke_token,
    verify_password,
    verify_refresh_token,
)
from .errors import RateLimitExceeded, error_response

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__)

login_schema = LoginSchema()
admin_out_schema = AdminOutSchema()

INVALID_CREDENTIALS = "Invalid email or password"


def _check_login_limit(limit_key: str, identifier: str):
    limiter = current_app.extensions["login_limiter"]
    result = limiter.check_rate_limit(
        current_app.config[limit_key],
        current_app.config["LOGIN_RATE_WINDOW"],
        identifier,
    )
    if not result.success:
        logger.warning("login_rate_limited", extra={"limit": limit_key})
        raise RateLimitExceeded(result, limiter.retry_after(result))


def _json_object() -> dict:
    # a JSON array or scalar body is treated as an empty object
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _refresh_candidates(payload: dict):
    # the Authorization header may carry the access token; try every source
    for candidate in (
        bearer_token(),
        request.cookies.get(current_app.config["REFRESH_COOKIE_NAME"]),
        payload.get("refreshToken"),
    ):
        if isinstance(candidate, str) and candidate:
            yield candidate


def _token_response(payload: dict, refresh_token: str, status: int = 200):
    response = jsonify(payload)
    response.set_cookie(
        current_app.config["REFRESH_COOKIE_NAME"],
        refresh_token,
        max_age=int(current_app.config["REFRESH_TOKEN_EXPIRES"].total_seconds()),
        httponly=True,
        secure=current_app.config["REFRESH_COOKIE_SECURE"],
        samesite="Strict",
        path="/",
    )
    return response, status


@bp.post("/login")
def login():
    """
    Login: return accessToken and refreshToken
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [email, password]
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens, sets the refresh_token cookie)
      400:
        description: Validation error
      401:
        description: Invalid email or password
      429:
        description: Too many login attempts
    """
    ip = get_client_ip(request)
    _check_login_limit("LOGIN_IP_LIMIT", f"login:ip:{ip}")

    payload = request.get_json(silent=True) or {}
    data = login_schema.load(payload)
    email = data["email"]
    _check_login_limit("LOGIN_EMAIL_LIMIT", f"login:email:{email}")

    session = storage.get_session()
    admin: Admin = session.query(Admin).filter(Admin.email == email).first()
    if not admin or not verify_password(data["password"], admin.password_hash):
        logger.info("login_failed", extra={"client_ip": ip})
        audit(
            AuditAction.LOGIN_FAILED,
            admin_id=admin.id if admin else None,
            resource_type="admin",
            details={"email": email},
            success=False,
        )
        abort(401, description=INVALID_CREDENTIALS)

    access_token, refresh_token = generate_tokens(admin)
    audit(AuditAction.LOGIN_SUCCESS, admin_id=admin.id, resource_type="admin", resource_id=admin.id)

    return _token_response(
        {
            "success": True,
            "admin": admin_out_schema.dump(admin),
            "accessToken": access_token,
            "refreshToken": refresh_token,
        },
        refresh_token,
    )


@bp.post("/auth/refresh")
def refresh():
    """
    Use a refresh token to obtain a new access/refresh pair (rotation).
    Candidates are read from the Authorization header, then the refresh_token
    cookie, then the body field refreshToken; the first valid refresh token wins.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         required: false
         schema:
           type: object
           properties:
             refreshToken: { type: string }
    responses:
      200:
        description: New token pair
      401:
        description: Missing, invalid, expired or revoked refresh token
    """
    candidates = list(_refresh_candidates(_json_object()))
    if not candidates:
        abort(401, description="Refresh token is required")

    token, claims = None, None
    for candidate in candidates:
        claims = verify_refresh_token(candidate)
        if claims is not None:
            token = candidate
            break
    if claims is None:
        abort(401, description="Invalid or expired refresh token")

    # the account may have been removed since the token was issued
    admin = storage.get(Admin, claims["id"])
    if admin is None:
        abort(401, description="Invalid or expired refresh token")

    revoke_token(token)
    access_token, refresh_token = generate_tokens(admin)
    audit(AuditAction.TOKEN_REFRESH, admin_id=admin.id, resource_type="admin", resource_id=admin.id)

    return _token_response(
        {"success": True, "accessToken": access_token, "refreshToken": refresh_token},
        refresh_token,
    )


@bp.post("/auth/logout")
@admin_required()
def logout():
    """
    Logout: revokes the access token and, when given, the refresh token
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         required: false
         schema:
           type: object
           properties:
             refreshToken: { type: string }
    responses:
      200:
        description: Logged out
      401:
        description: Unauthorized
    """
    payload = _json_object()
    revoke_token(g.access_token)

    refresh_token = payload.get("refreshToken")
    if not isinstance(refresh_token, str) or not refresh_token:
        refresh_token = request.cookies.get(current_app.config["REFRESH_COOKIE_NAME"])
    if refresh_token:
        revoke_token(refresh_token)

    audit(AuditAction.LOGOUT, admin=g.current_admin, resource_type="admin", resource_id=g.current_admin["id"])

    response = jsonify({"success": True, "message": "Logged out successfully"})
    response.delete_cookie(current_app.config["REFRESH_COOKIE_NAME"], path="/")
    return response, 200


@bp.post("/auth/revoke")
@csrf_protected()
def revoke():
    """
    Revoke any access or refresh token
    ---
    tags:
      - Auth
    security:
      - Bearer: []
      - CSRF: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [token]
           properties:
             token: { type: string }
    responses:
      200:
        description: Token revoked
      400:
        description: Token missing
      401:
        description: Unauthorized
      403:
        description: CSRF token missing or invalid
    """
    token = _json_object().get("token")
    if not isinstance(token, str) or not token.strip():
        abort(400, description="Token is required")

    if not revoke_token(token.strip()):
        return error_response("REVOCATION_FAILED", "Failed to revoke token", 500)

    audit(AuditAction.TOKEN_REVOKE, admin=g.current_admin, resource_type="token")
    return jsonify({"success": True, "message": "Token revoked"}), 200
