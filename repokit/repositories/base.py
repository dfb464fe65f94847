"""
Repository Facade
=================

Named CRUD, lookup and aggregate operations over one model, backed by a
QueryRelay that accumulates chained builder calls.

Every terminal operation runs inside ``_terminal()``, which hands the
operation the current relay, guarantees a fresh relay afterwards on every
exit path, and maps data-access failures to the repository error taxonomy.

Example:
    class UserRepository(Repository):
        model_class = User
        fillable = ("name", "email", "status")

    users = UserRepository(db)
    users.create({"name": "ada", "email": "ada@example.com", "admin": True})
    # "admin" is not fillable and is dropped

    adults = users.where("status", 1).where("age", ">", 18).get()
    page = users.paginate(15)
"""

from contextlib import contextmanager
from typing import Any, Callable, Dict, Generator, Iterable, List, Mapping, Optional, Type, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from repokit.config import Settings, get_settings
from repokit.core.constants import ALL_COLUMNS, LifecycleEvent
from repokit.core.exceptions import (
    RepositoryError,
    RepositoryMethodError,
    ResourceDeleteError,
    ResourceNotFoundError,
    ResourceQueryError,
    ResourceStoreError,
    ResourceUpdateError,
)
from repokit.core.logging import get_logger
from repokit.events.bus import EventBus, get_event_bus
from repokit.models.handle import ModelHandle
from repokit.query.builder import Builder
from repokit.query.pagination import Page
from repokit.query.relay import QueryRelay

logger = get_logger(__name__)

# Failures raised while building or persisting a single entity
PERSISTENCE_ERRORS = (SQLAlchemyError, ValueError, TypeError)

EventHandler = Union[type, Callable[["Repository"], Any]]


def _require_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"Expected an int, got {type(value).__name__}")
    return value


def _require_str(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"Expected a str, got {type(value).__name__}")
    return value


class Repository:
    """
    Base repository.

    Subclasses set ``model_class`` (or override ``new_model()``) and may set
    ``fillable`` and ``events``.

    Attributes:
        model_class: Declarative model the repository manages
        fillable: Attribute names accepted by create/update; empty = all
        events: Lifecycle name -> RepositoryEvent subclass or callable

    Args:
        session: Session every query and write goes through
        event_bus: Bus event classes are published on (global bus by default)
        events: Extra lifecycle handlers, overriding the class mapping
        settings: Settings (global settings by default)
    """

    model_class: Optional[type] = None
    fillable: Iterable[str] = ()
    events: Mapping[Any, EventHandler] = {}

    def __init__(
        self,
        session: Session,
        event_bus: Optional[EventBus] = None,
        events: Optional[Mapping[Any, EventHandler]] = None,
        settings: Optional[Settings] = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.event_bus = event_bus or get_event_bus()
        self.fillable = list(type(self).fillable)
        self.events = {
            **self._normalize_events(type(self).events),
            **self._normalize_events(events or {}),
        }
        self._model: Optional[ModelHandle] = None
        self.query_relate = self.new_default_query_relate()

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(model={self.model.name})>"

    @staticmethod
    def _normalize_events(events: Mapping[Any, EventHandler]) -> Dict[str, EventHandler]:
        return {LifecycleEvent(name).value: handler for name, handler in events.items()}

    # ========================================
    # Model & Relay Management
    # ========================================

    def new_model(self) -> ModelHandle:
        """
        Build the model handle. Override for custom handles.

        Raises:
            NotImplementedError: If the repository declares no model_class
        """
        if self.model_class is None:
            raise NotImplementedError(
                f"{type(self).__name__} must set model_class or override new_model()"
            )
        return ModelHandle(self.model_class, self.session, self.settings)

    @property
    def model(self) -> ModelHandle:
        """Model handle, created on first access and cached."""
        if self._model is None:
            self._model = self.new_model()
        return self._model

    def new_query(self) -> Builder:
        return self.model.new_query()

    def new_query_relate(self, query: Builder) -> QueryRelay:
        return QueryRelay(query, self)

    def new_default_query_relate(self) -> QueryRelay:
        """
        Relay over a brand-new builder.

        Useful for a one-off chain that must not touch the live relay:

            repo.new_default_query_relate().where("status", 1).get_query().pluck("id")
        """
        return self.new_query_relate(self.new_query())

    def get_query_relate(self) -> QueryRelay:
        return self.query_relate

    def set_query_relate(self, query_relate: QueryRelay) -> "Repository":
        self.query_relate = query_relate
        return self

    def reset_query_relate(self) -> "Repository":
        """Replace the live relay with a fresh one."""
        return self.set_query_relate(self.new_default_query_relate())

    def query(self) -> QueryRelay:
        """
        The live relay, for explicit chains.

        Example:
            repo.query().where("status", 1).order_by("id")
            users = repo.get()
        """
        return self.query_relate

    @contextmanager
    def _terminal(
        self,
        operation: str,
        error_class: Type[RepositoryError] = ResourceQueryError,
    ) -> Generator[QueryRelay, None, None]:
        """
        Run one terminal operation against the current relay.

        The relay is detached before the operation runs, so a callback that
        re-enters the repository starts clean, and replaced again on exit
        whatever happens.
        """
        relay = self.query_relate
        self.reset_query_relate()
        try:
            yield relay
        except SQLAlchemyError as exc:
            logger.error("%s.%s failed: %s", type(self).__name__, operation, exc)
            raise error_class(str(exc), entity_type=self.model.name, operation=operation) from exc
        finally:
            self.reset_query_relate()

    # ========================================
    # Input Filtering
    # ========================================

    def set_fillable(self, fillable: Iterable[str]) -> "Repository":
        self.fillable = list(fillable)
        return self

    def _fillable_filter(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Keep only fillable keys, in their original order."""
        if not self.fillable:
            return dict(data)
        allowed = set(self.fillable)
        return {key: value for key, value in data.items() if key in allowed}

    # ========================================
    # Create / Update / Delete
    # ========================================

    def create(self, data: Mapping[str, Any]) -> Any:
        """
        Persist a new entity from the fillable subset of ``data``.

        Raises:
            ResourceStoreError: If construction or the insert fails
        """
        data = self._fillable_filter(data)

        try:
            entity = self.model.create(data)
        except PERSISTENCE_ERRORS as exc:
            logger.error("Failed to create %s: %s", self.model.name, exc)
            raise ResourceStoreError(str(exc), entity_type=self.model.name, operation="create") from exc

        logger.info("Created %s", self.model.name)
        return entity

    def update(self, data: Mapping[str, Any], id: Any) -> Any:
        """
        Assign the fillable subset of ``data`` to entity ``id`` and save it.

        Raises:
            ResourceNotFoundError: If no entity has that id (nothing is written)
            ResourceUpdateError: If the save fails
        """
        data = self._fillable_filter(data)

        entity = self.by_id_or_fail(id)

        try:
            self.model.fill(entity, data)
            self.model.save(entity)
        except PERSISTENCE_ERRORS as exc:
            logger.error("Failed to update %s #%s: %s", self.model.name, id, exc)
            raise ResourceUpdateError(str(exc), entity_type=self.model.name, operation="update") from exc

        logger.info("Updated %s #%s", self.model.name, id)
        return entity

    def update_by_int_id(self, data: Mapping[str, Any], id: int) -> Any:
        return self.update(data, _require_int(id))

    def update_by_string_id(self, data: Mapping[str, Any], id: str) -> Any:
        return self.update(data, _require_str(id))

    def delete(self, id: Any) -> int:
        """
        Delete the row whose primary key is ``id``.

        Returns:
            Number of deleted rows (0 when nothing matched)

        Raises:
            ResourceDeleteError: If the delete statement fails
        """
        with self._terminal("delete", ResourceDeleteError) as relay:
            rows = relay.where(self.model.primary_key_name(), id).get_query().delete()
            self.model.commit_pending()

        logger.info("Deleted %s #%s (%d rows)", self.model.name, id, rows)
        return rows

    def delete_by_int_id(self, id: int) -> int:
        return self.delete(_require_int(id))

    def delete_by_string_id(self, id: str) -> int:
        return self.delete(_require_str(id))

    def delete_by_array(self, ids: Iterable[Any]) -> int:
        """
        Delete every row whose primary key is in ``ids`` with one statement.

        Pending chain state is ignored. Missing ids are not an error.

        Raises:
            ResourceDeleteError: If the delete statement fails
        """
        ids = list(ids)
        with self._terminal("delete_by_array", ResourceDeleteError) as relay:
            rows = (
                relay.set_query(self.new_query())
                .where_in(self.model.primary_key_name(), ids)
                .get_query()
                .delete()
            )
            self.model.commit_pending()

        logger.info("Deleted %d %s rows", rows, self.model.name)
        return rows

    # ========================================
    # Lookups
    # ========================================

    def by_id(self, id: Any) -> Optional[Any]:
        with self._terminal("by_id") as relay:
            return relay.where(self.model.primary_key_name(), id).get_query().first()

    def by_id_or_fail(self, id: Any) -> Any:
        entity = self.by_id(id)
        if entity is None:
            raise ResourceNotFoundError(self.model.name, "by_id")
        return entity

    def by_int_id(self, id: int) -> Optional[Any]:
        return self.by_id(_require_int(id))

    def by_string_id(self, id: str) -> Optional[Any]:
        return self.by_id(_require_str(id))

    def by_int_id_or_fail(self, id: int) -> Any:
        return self.by_id_or_fail(_require_int(id))

    def by_string_id_or_fail(self, id: str) -> Any:
        return self.by_id_or_fail(_require_str(id))

    def one_by(self, field: str, value: Any) -> Optional[Any]:
        """First entity whose ``field`` equals ``value``."""
        with self._terminal("one_by") as relay:
            return relay.where(field, value).get_query().first()

    def one_by_or_fail(self, field: str, value: Any) -> Any:
        entity = self.one_by(field, value)
        if entity is None:
            raise ResourceNotFoundError(self.model.name, "one_by")
        return entity

    def one_by_int(self, field: str, value: int) -> Optional[Any]:
        return self.one_by(field, _require_int(value))

    def one_by_string(self, field: str, value: str) -> Optional[Any]:
        return self.one_by(field, _require_str(value))

    def one_by_int_or_fail(self, field: str, value: int) -> Any:
        return self.one_by_or_fail(field, _require_int(value))

    def one_by_string_or_fail(self, field: str, value: str) -> Any:
        return self.one_by_or_fail(field, _require_str(value))

    def first(self) -> Optional[Any]:
        """First entity matching the pending chain, if any."""
        with self._terminal("first") as relay:
            return relay.get_query().first()

    def first_or_fail(self) -> Any:
        entity = self.first()
        if entity is None:
            raise ResourceNotFoundError(self.model.name, "first")
        return entity

    def all(self) -> List[Any]:
        """Every row, ignoring whatever the pending chain accumulated."""
        with self._terminal("all") as relay:
            return relay.set_query(self.new_query()).get_query().get()

    def get(self) -> List[Any]:
        """Every row matching the pending chain."""
        with self._terminal("get") as relay:
            return relay.get_query().get()

    def paginate(self, per_page: Optional[int] = None, page: int = 1) -> Page:
        """
        One page ordered by primary key, newest first.

        Args:
            per_page: Page size; ``settings.default_per_page`` when omitted,
                clamped to ``settings.max_per_page``
            page: 1-based page number
        """
        if per_page is None:
            per_page = self.settings.default_per_page
        per_page = min(per_page, self.settings.max_per_page)
        with self._terminal("paginate") as relay:
            return (
                relay.order_by(self.model.primary_key_name(), "desc")
                .get_query()
                .paginate(per_page, page)
            )

    # ========================================
    # Aggregates & Column Operations
    # ========================================

    def pluck(self, column: str, key: Optional[str] = None) -> Union[List[Any], Dict[Any, Any]]:
        with self._terminal("pluck") as relay:
            return relay.get_query().pluck(column, key)

    def max(self, column: str) -> Any:
        with self._terminal("max") as relay:
            return relay.get_query().max(column)

    def min(self, column: str) -> Any:
        with self._terminal("min") as relay:
            return relay.get_query().min(column)

    def sum(self, column: str) -> Any:
        with self._terminal("sum") as relay:
            return relay.get_query().sum(column)

    def avg(self, column: str) -> Any:
        with self._terminal("avg") as relay:
            return relay.get_query().avg(column)

    def count(self, column: str = ALL_COLUMNS) -> int:
        with self._terminal("count") as relay:
            return relay.get_query().count(column)

    def value(self, key: str) -> Any:
        """Column ``key`` of the first matching row."""
        with self._terminal("value") as relay:
            return relay.get_query().value(key)

    def increment(self, column: str, amount: Union[int, float] = 1, extra: Optional[Mapping[str, Any]] = None) -> int:
        """
        Add ``amount`` to ``column`` on every row matching the pending chain.

        Returns:
            Number of affected rows
        """
        with self._terminal("increment") as relay:
            rows = relay.get_query().increment(column, amount, extra)
            self.model.commit_pending()
            return rows

    def decrement(self, column: str, amount: Union[int, float] = 1, extra: Optional[Mapping[str, Any]] = None) -> int:
        with self._terminal("decrement") as relay:
            rows = relay.get_query().decrement(column, amount, extra)
            self.model.commit_pending()
            return rows

    def chunk(self, size: Optional[int], callback: Callable[[List[Any]], Any]) -> bool:
        """
        Feed matching rows to ``callback`` ``size`` at a time.

        Returns:
            True when every chunk was processed, False if ``callback``
            returned False
        """
        size = size or self.settings.default_chunk_size
        with self._terminal("chunk") as relay:
            return relay.get_query().chunk(size, callback)

    # ========================================
    # Lifecycle Events
    # ========================================

    def fire_event(self, event: Union[str, LifecycleEvent]) -> Any:
        """
        Run the handler registered for lifecycle ``event``.

        Event classes are constructed with this repository and published on
        the event bus; plain callables are called with this repository.

        Returns:
            False when the handler or a listener vetoed, otherwise the
            handler's result (None when nothing is registered)

        Raises:
            ValueError: If ``event`` is not a lifecycle event name
        """
        name = LifecycleEvent(event).value
        handler = self.events.get(name)
        if handler is None:
            return None

        if isinstance(handler, type):
            result = self.event_bus.publish(handler(self))
        else:
            result = handler(self)

        if result is False:
            logger.info("%s vetoed on %s", name, type(self).__name__)
            return False
        return result

    # ========================================
    # Forwarding
    # ========================================

    def __getattr__(self, name: str) -> Any:
        """
        Forward unknown names to the live relay.

        A call returning a relay continues the chain: the repository adopts
        it and returns itself. Any other result hands execution off, so the
        relay is reset before the result is returned.

        Raises:
            RepositoryMethodError: If the relay has no such method either
        """
        relay = self.__dict__.get("query_relate")
        if relay is None or name.startswith("_") or not callable(getattr(type(relay), name, None)):
            raise RepositoryMethodError(type(self).__name__, name)

        method = getattr(relay, name)

        def forward(*args: Any, **kwargs: Any) -> Any:
            result = method(*args, **kwargs)
            if isinstance(result, QueryRelay):
                self.set_query_relate(result)
                return self
            logger.debug("%s.%s returned a result, resetting relay", type(self).__name__, name)
            self.reset_query_relate()
            return result

        return forward
