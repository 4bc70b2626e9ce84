"""
Declarative base shared by all models.
"""

from sqlalchemy import Column, DateTime, func
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    """Server-assigned creation time; never updated afterwards."""

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
