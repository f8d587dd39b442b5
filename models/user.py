from models.base_model import Base, BaseModel
from sqlalchemy import Column, String
from sqlalchemy.orm import relationship


class User(BaseModel, Base):
    """End-user account created by the client application when a key is redeemed."""
    __tablename__ = "users"
    username = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    # Plain column: licenses.user_id already carries the FK in the other direction
    license_id = Column(String(36), nullable=True, index=True)

    license = relationship(
        "License",
        primaryjoin="foreign(User.license_id) == License.id",
        uselist=False,
        viewonly=True,
    )
