# File: app/models/database/base.py

"""Base configuration and utilities for SQLAlchemy models.

This module provides the foundational setup for all database models, including:
- Base class configuration
- Opaque string identifiers
- Audit field implementations
- Owner scoping shared by every user-owned table
"""

import uuid
from datetime import datetime
from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def new_id() -> str:
    """Generate an opaque record identifier."""
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all database models."""

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)


class TimestampMixin:
    """Adds the creation timestamp column."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )


class OwnedMixin:
    """Adds the owning user identifier; rows are always queried by owner."""

    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
