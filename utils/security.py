"""
security helpers:
- Argon2 password hashing via argon2-cffi
- access / refresh JWT creation and verification via PyJWT
- token revocation store (sha256 of the raw token, never the token itself)
"""
from __future__ import annotations

import hashlib
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional, Tuple

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError, VerificationError, InvalidHashError
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from models import storage
from models.revoked_token import RevokedToken

logger = logging.getLogger(__name__)

ph = PasswordHasher()

ACCESS = "access"
REFRESH = "refresh"
# tokens minted by the old single-token scheme carry no "type" claim
LEGACY = "legacy"

PAYLOAD_FIELDS = ("id", "email", "role", "level")
FALLBACK_REVOCATION_TTL = timedelta(days=7)


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """ Verify a plaintext password using argon2
    """
    try:
        return ph.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def admin_payload(admin) -> Dict[str, Any]:
    """Reduce an Admin row (or a decoded claim set) to {id, email, role, level}."""
    if hasattr(admin, "to_payload"):
        return admin.to_payload()
    return {
        "id": str(admin["id"]),
        "email": admin["email"],
        "role": admin["role"],
        "level": int(admin["level"]),
    }


def _secret_for(kind: str) -> str:
    if kind == REFRESH:
        return current_app.config["JWT_REFRESH_SECRET"]
    return current_app.config["JWT_SECRET"]


def _create_token(admin, kind: str, expires: timedelta) -> str:
    now = _now()
    payload = admin_payload(admin)
    payload.update(
        {
            "sub": payload["id"],
            "jti": generate_jti(),
            "type": kind,
            "iat": int(now.timestamp()),
            "exp": int((now + expires).timestamp()),
        }
    )
    return jwt.encode(payload, _secret_for(kind), algorithm=current_app.config["JWT_ALGORITHM"])


def generate_access_token(admin) -> str:
    return _create_token(admin, ACCESS, current_app.config["ACCESS_TOKEN_EXPIRES"])


def generate_refresh_token(admin) -> str:
    return _create_token(admin, REFRESH, current_app.config["REFRESH_TOKEN_EXPIRES"])


def generate_tokens(admin) -> Tuple[str, str]:
    """Return (access_token, refresh_token) for the same admin."""
    return generate_access_token(admin), generate_refresh_token(admin)


def token_kind(decoded: Dict[str, Any]) -> str:
    kind = decoded.get("type")
    if kind is None:
        return LEGACY
    return kind


def decode_token(token: str, expected_type: str = ACCESS) -> Dict[str, Any]:
    """
    Decode and validate a JWT. Raises jwt.InvalidTokenError on a bad signature,
    an expired token or a token of the wrong kind.
    expected_type must be "access" or "refresh".
    """
    decoded = jwt.decode(
        token,
        _secret_for(expected_type),
        algorithms=[current_app.config["JWT_ALGORITHM"]],
        options={"require": ["exp"]},
    )
    kind = token_kind(decoded)
    if kind == expected_type:
        return decoded
    if kind == LEGACY and expected_type == ACCESS and current_app.config.get("ACCEPT_LEGACY_TOKENS", False):
        return decoded
    raise jwt.InvalidTokenError(f"Wrong token type: {kind}")


def _verify(token: str, expected_type: str) -> Optional[Dict[str, Any]]:
    if not isinstance(token, str) or not token:
        return None
    try:
        decoded = decode_token(token, expected_type=expected_type)
        payload = admin_payload(decoded)
    except (jwt.InvalidTokenError, KeyError, TypeError, ValueError):
        return None

    try:
        if is_token_revoked(token):
            return None
    except SQLAlchemyError:
        logger.exception("revocation_lookup_failed")
        storage.rollback()
        return None
    return payload


def verify_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Return the admin payload carried by a valid access token, else None."""
    return _verify(token, ACCESS)


def verify_refresh_token(token: str) -> Optional[Dict[str, Any]]:
    """Return the admin payload carried by a valid refresh token, else None."""
    return _verify(token, REFRESH)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _token_expiry(token: str) -> datetime:
    try:
        decoded = jwt.decode(token, options={"verify_signature": False})
        return datetime.fromtimestamp(int(decoded["exp"]), tz=timezone.utc)
    except (jwt.InvalidTokenError, KeyError, TypeError, ValueError, OverflowError):
        return _now() + FALLBACK_REVOCATION_TTL


def is_token_revoked(token: str) -> bool:
    session = storage.get_session()
    return (
        session.query(RevokedToken.id)
        .filter(RevokedToken.token_hash == hash_token(token))
        .first()
        is not None
    )


def revoke_token(token: str) -> bool:
    """
    Add a token to the revocation store.
    Returns False when the insert failed; the failure is logged, not raised.
    """
    if not isinstance(token, str) or not token:
        return False
    token_hash = hash_token(token)
    try:
        session = storage.get_session()
        exists = session.query(RevokedToken.id).filter(RevokedToken.token_hash == token_hash).first()
        if exists:
            return True
        storage.new(RevokedToken(token_hash=token_hash, expires_at=_token_expiry(token)))
        storage.save()
    except SQLAlchemyError:
        logger.exception("token_revoke_failed")
        storage.rollback()
        return False
    return True


def prune_revoked_tokens(now: datetime | None = None) -> int:
    """Delete revocation rows for tokens that have expired anyway."""
    now = now or _now()
    session = storage.get_session()
    deleted = (
        session.query(RevokedToken)
        .filter(RevokedToken.expires_at < now)
        .delete(synchronize_session=False)
    )
    storage.save()
    return deleted
