from datetime import timedelta

from sqlalchemy import Column, String, DateTime, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base

PLAN_30_DAYS = "30d"
PLAN_90_DAYS = "90d"
PLAN_TYPES = (PLAN_30_DAYS, PLAN_90_DAYS)

PLAN_DURATIONS = {
    PLAN_30_DAYS: timedelta(days=30),
    PLAN_90_DAYS: timedelta(days=90),
}


class License(BaseModel, Base):
    __tablename__ = "licenses"

    license_key = Column(String(32), nullable=False, unique=True, index=True)
    plan_type = Column(String(8), nullable=False)
    # NULL means available; set externally when a user activates the key
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    expires_at = Column(DateTime(timezone=True), nullable=False)

    user = relationship("User", foreign_keys=[user_id])

    __table_args__ = (
        CheckConstraint("plan_type IN ('30d', '90d')", name="ck_licenses_plan_type"),
        Index("ix_licenses_plan_available", "plan_type", "user_id"),
    )

    @property
    def is_used(self) -> bool:
        return self.user_id is not None

    def __repr__(self):
        return f"<License key={self.license_key} plan={self.plan_type}>"
