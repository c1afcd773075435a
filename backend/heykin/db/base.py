"""Declarative base shared by every heykin table."""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Models register here; alembic and the test suite read Base.metadata."""
