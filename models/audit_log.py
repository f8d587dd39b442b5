from sqlalchemy import Column, String, Boolean, JSON, Index

from models.base_model import BaseModel, Base


class AuditLog(BaseModel, Base):
    __tablename__ = "audit_logs"

    admin_id = Column(String(36), nullable=True, index=True)
    action = Column(String(64), nullable=False)
    resource_type = Column(String(32), nullable=True)  # e.g. "user", "license"
    resource_id = Column(String(36), nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    details = Column(JSON, nullable=True)
    success = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("ix_audit_logs_action_created", "action", "created_at"),
    )
