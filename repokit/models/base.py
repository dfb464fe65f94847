"""
Model Base Classes
==================

Declarative base and mixins for models managed by repositories.

Example:
    class Article(BaseModel, Base):
        __tablename__ = "articles"

        id: Mapped[int] = mapped_column(primary_key=True)
        title: Mapped[str] = mapped_column(String(200))

    article = Article(title="Engines")
    article.to_dict()  # {"title": "Engines"}, nothing else is loaded yet
"""

from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from sqlalchemy import DateTime, inspect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Declarative base for every model a repository can manage."""

    def __repr__(self) -> str:
        identity = inspect(self).identity
        key = identity[0] if identity and len(identity) == 1 else identity
        return f"<{type(self).__name__}(id={key!r})>"


class TimestampMixin:
    """Adds ``created_at`` / ``updated_at`` columns maintained by the database."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )


class SerializationMixin:
    """Adds ``to_dict()`` over mapped column attributes."""

    def to_dict(self, exclude: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        """
        Mapped columns as a plain dict keyed by attribute name.

        Datetimes are rendered with ``isoformat()``; relationships and
        unloaded (deferred) columns are left out.
        """
        skipped = set(exclude or ())
        state = inspect(self)
        data: Dict[str, Any] = {}
        for attribute in state.mapper.column_attrs:
            key = attribute.key
            if key in skipped or key in state.unloaded:
                continue
            value = getattr(self, key)
            data[key] = value.isoformat() if isinstance(value, datetime) else value
        return data


class BaseModel(TimestampMixin, SerializationMixin):
    """Timestamps plus serialization, the usual mix for repository models."""
