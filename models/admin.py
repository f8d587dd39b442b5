from sqlalchemy import Column, String, Integer, CheckConstraint

from models.base_model import BaseModel, Base


class Admin(BaseModel, Base):
    """Administrator account allowed to sign in to the panel."""
    __tablename__ = "admins"

    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default="admin")
    # Integer rank; higher means more privileged
    level = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("level >= 0", name="ck_admins_level_nonnegative"),
    )

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    def to_payload(self) -> dict:
        """The claim set embedded in access and refresh tokens."""
        return {
            "id": str(self.id),
            "email": self.email,
            "role": self.role,
            "level": int(self.level),
        }
