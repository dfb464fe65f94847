"""
Database models package.

Declarative base, mixins and the model handle repositories operate through.
"""

from repokit.models.base import Base, BaseModel, SerializationMixin, TimestampMixin
from repokit.models.handle import ModelHandle

__all__ = [
    "Base",
    "BaseModel",
    "ModelHandle",
    "SerializationMixin",
    "TimestampMixin",
]
