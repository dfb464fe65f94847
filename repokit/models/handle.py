"""
Model handle.

Binds one declarative model class to a session and exposes the handful of
single-row operations a repository needs: create, fill, save, primary key
lookup and new queries.
"""

from typing import Any, Dict, Optional

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from repokit.config import Settings, get_settings
from repokit.query.builder import Builder
from repokit.query.clauses import primary_key_name


class ModelHandle:
    """
    One persisted entity type, bound to a session.

    Args:
        model_class: Declarative model class
        session: Session writes go through
        settings: Controls commit-on-write behavior

    Example:
        users = ModelHandle(User, db)
        ada = users.create({"name": "ada"})
        users.fill(ada, {"status": 1})
        users.save(ada)
    """

    def __init__(self, model_class: type, session: Session, settings: Optional[Settings] = None):
        self.model_class = model_class
        self.session = session
        self.settings = settings or get_settings()

    def __repr__(self) -> str:
        return f"<ModelHandle({self.name})>"

    @property
    def name(self) -> str:
        return self.model_class.__name__

    def primary_key_name(self) -> str:
        return primary_key_name(self.model_class)

    def new_query(self) -> Builder:
        """Fresh builder scoped to this model."""
        return Builder(self.session, self.model_class)

    def create(self, fields: Dict[str, Any]) -> Any:
        """
        Construct, add and flush a new entity.

        Raises:
            TypeError: If a field is not a mapped attribute
            SQLAlchemyError: If the flush fails (the session is rolled back)
        """
        entity = self.model_class(**fields)
        self.session.add(entity)
        self._persist()
        return entity

    def fill(self, entity: Any, fields: Dict[str, Any]) -> Any:
        """
        Assign ``fields`` to ``entity``.

        Raises:
            TypeError: If a key is not a mapped attribute (nothing is assigned)
        """
        attributes = inspect(self.model_class).attrs
        unknown = [key for key in fields if key not in attributes]
        if unknown:
            raise TypeError(f"{unknown[0]!r} is not a mapped attribute of {self.name}")
        for key, value in fields.items():
            setattr(entity, key, value)
        return entity

    def save(self, entity: Any) -> Any:
        self.session.add(entity)
        self._persist()
        return entity

    def commit_pending(self) -> None:
        """Commit when ``settings.commit_on_write`` is enabled."""
        if self.settings.commit_on_write:
            self.session.commit()

    def _persist(self) -> None:
        try:
            self.session.flush()
            self.commit_pending()
        except SQLAlchemyError:
            self.session.rollback()
            raise
