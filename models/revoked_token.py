"""
RevokedToken model: one row per revoked access or refresh token.
Fields:
- token_hash: sha256 hex digest of the raw token string (never the token itself)
- expires_at: the token's own `exp`, kept so expired rows can be pruned
- revoked_at
A token is revoked iff a row with its hash exists.
"""
from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func

from models.base_model import BaseModel, Base, utcnow


class RevokedToken(BaseModel, Base):
    __tablename__ = "revoked_tokens"

    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    revoked_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<RevokedToken hash={self.token_hash[:12]}...>"
