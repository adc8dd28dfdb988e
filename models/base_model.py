#!/usr/bin/env python3
"""
Shared SQLAlchemy base and mixins for the StreamSpot API.

- UUID primary key (String(36)) with defaults
- created_at / updated_at timestamps
- save() and delete() that use the DBStorage singleton
- to_document() that returns the stored fields as a plain dict, the shape the
  aggregation pipelines work on

Notes:
- created_at / updated_at get a Python-side default (microsecond precision, so
  creation order is stable for sorting) plus a server default for raw inserts.
- Models list their secret columns in SECRET_FIELDS; to_document() drops them
  unless explicitly asked not to.
"""

from __future__ import annotations

from datetime import datetime, timezone
import uuid

# Importing 'models' gives access to the global 'storage' instance (DBStorage)
# defined in models/__init__.py
import models

from sqlalchemy import Column, String, DateTime, inspect
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

# Declarative base for all models
Base = declarative_base()


def _uuid_str() -> str:
    """Return a canonical UUIDv4 string (36 chars, with hyphens)."""
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseModel:
    """
    Base mixin for all persistent models: id, created_at, updated_at,
    save()/delete() wired to DBStorage, and to_document().
    """

    SECRET_FIELDS: tuple = ()

    id = Column(String(36), primary_key=True, default=_uuid_str, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )

    def __init__(self, *args, **kwargs):
        """
        Allow attribute initialization via kwargs without requiring a session here.
        If you pass created_at/updated_at explicitly (e.g., in tests), they will be set.
        """
        for key, value in kwargs.items():
            if key != "__class__":
                setattr(self, key, value)
        # Ensure an id exists if user passed none
        if getattr(self, "id", None) is None:
            self.id = _uuid_str()

    def __str__(self) -> str:
        """Human-friendly representation including id and fields."""
        return f"[{self.__class__.__name__}] ({self.id}) {self.to_document()}"

    def save(self):
        """Persist the instance using DBStorage and commit."""
        self.updated_at = _utcnow()
        models.storage.new(self)
        models.storage.save()

    def delete(self):
        """
        Hard delete the current instance using DBStorage.
        Not committing here; caller decides when to commit.
        """
        models.storage.delete(self)

    def to_document(self, include_secrets: bool = False) -> dict:
        """Column values as a plain dict, without secret fields by default."""
        doc = {attr.key: getattr(self, attr.key) for attr in inspect(self).mapper.column_attrs}
        if not include_secrets:
            for name in self.SECRET_FIELDS:
                doc.pop(name, None)
        if isinstance(doc.get("watch_history"), list):
            doc["watch_history"] = list(doc["watch_history"])
        if isinstance(doc.get("videos"), list):
            doc["videos"] = list(doc["videos"])
        return doc
