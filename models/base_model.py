#!/usr/bin/env python3
"""
Shared SQLAlchemy base and mixin for the License Admin API.

- UUID primary key (String(36)) with defaults
- created_at / updated_at timestamps
- save() that goes through the shared DBStorage

Notes:
- Timestamps get a Python-side default (UTC) and a server-side default, so rows
  inserted outside the ORM (manual SQL, fixtures) are stamped too.
- For SQLite, func.now() maps to CURRENT_TIMESTAMP.
"""

from __future__ import annotations

from datetime import datetime, timezone
import uuid

# Importing 'models' gives access to the global 'storage' instance (DBStorage)
# defined in models/__init__.py.
import models

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

# Declarative base for all models
Base = declarative_base()


def _uuid_str() -> str:
    """Return a canonical UUIDv4 string (36 chars, with hyphens)."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseModel:
    """
    Base mixin for all persistent models.

    - id, created_at, updated_at
    - save() wired to DBStorage
    """

    id = Column(String(36), primary_key=True, default=_uuid_str, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    def __init__(self, *args, **kwargs):
        """
        Allow attribute initialization via kwargs without requiring a session here.
        If you pass created_at/updated_at explicitly (e.g., in tests), they will be set.
        """
        for key, value in kwargs.items():
            if key != "__class__":
                setattr(self, key, value)
        # Ensure an id exists if caller passed none
        if getattr(self, "id", None) is None:
            self.id = _uuid_str()

    def __str__(self) -> str:
        """Human-friendly representation including id and fields."""
        return f"[{self.__class__.__name__}] ({self.id}) {self.__dict__}"

    def save(self):
        """Stamp updated_at and persist the instance using DBStorage."""
        self.updated_at = utcnow()
        models.storage.new(self)
        models.storage.save()
