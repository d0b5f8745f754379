"""Declarative base shared by all practice models.

Import ``adaptive_practice.models`` before calling ``Base.metadata.create_all``
so every table is registered.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass
