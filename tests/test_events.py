"""Tests for lifecycle events and the event bus."""

import pytest

from repokit import EventBus, LifecycleEvent, RepositoryEvent, ResourceStoreError
from tests.sample_models import User, UserRepository


class UserCreating(RepositoryEvent):
    pass


class UserDeleted(RepositoryEvent):
    pass


class AuditedUserRepository(UserRepository):
    """Concrete repository wiring create() to the creating/created events."""

    events = {"creating": UserCreating}

    def create(self, data):
        if self.fire_event(LifecycleEvent.CREATING) is False:
            raise ResourceStoreError("creation vetoed", entity_type="User", operation="create")
        entity = super().create(data)
        self.fire_event(LifecycleEvent.CREATED)
        return entity


class TestEventBus:
    """Test EventBus publish/subscribe."""

    def test_publish_without_listeners(self, bus, users):
        assert bus.publish(UserCreating(users)) is None

    def test_responses_are_collected(self, bus, users):
        bus.listen(UserCreating, lambda event: "first")
        bus.listen(UserCreating, lambda event: None)
        bus.listen(RepositoryEvent, lambda event: "base")

        assert bus.publish(UserCreating(users)) == ["first", "base"]

    def test_false_halts_propagation(self, bus, users):
        calls = []
        bus.listen(UserCreating, lambda event: False)
        bus.listen(UserCreating, lambda event: calls.append(event))

        assert bus.publish(UserCreating(users)) is False
        assert calls == []

    def test_has_listeners_and_forget(self, bus):
        bus.listen(RepositoryEvent, print)

        assert bus.has_listeners(UserCreating)
        bus.forget(RepositoryEvent)
        assert not bus.has_listeners(UserCreating)

    def test_event_carries_repository(self, users):
        event = UserCreating(users)

        assert event.repository is users
        assert repr(event) == "<UserCreating(repository=UserRepository)>"


class TestFireEvent:
    """Test Repository.fire_event."""

    def test_unregistered_event_returns_none(self, users):
        assert users.fire_event("creating") is None

    def test_unknown_event_name(self, users):
        with pytest.raises(ValueError):
            users.fire_event("exploding")

    def test_class_handler_is_published(self, db, bus):
        received = []
        bus.listen(UserCreating, received.append)
        repository = UserRepository(db, event_bus=bus, events={"creating": UserCreating})

        assert repository.fire_event("creating") is None
        assert len(received) == 1
        assert received[0].repository is repository

    def test_class_handler_veto(self, db, bus):
        bus.listen(UserCreating, lambda event: False)
        repository = UserRepository(db, event_bus=bus, events={"creating": UserCreating})

        assert repository.fire_event("creating") is False

    def test_callable_handler(self, db):
        repository = UserRepository(db, events={LifecycleEvent.UPDATING: lambda repo: "checked"})

        assert repository.fire_event("updating") == "checked"
        assert repository.fire_event(LifecycleEvent.UPDATING) == "checked"

    def test_callable_veto(self, db):
        repository = UserRepository(db, events={"deleting": lambda repo: False})
        assert repository.fire_event("deleting") is False

    def test_injected_handlers_override_class_mapping(self, db, bus):
        repository = AuditedUserRepository(db, event_bus=bus, events={"creating": lambda repo: "injected"})

        assert repository.fire_event("creating") == "injected"
        assert AuditedUserRepository.events == {"creating": UserCreating}

    def test_unknown_name_in_mapping(self, db):
        with pytest.raises(ValueError):
            UserRepository(db, events={"saving": lambda repo: None})


class TestEventWiring:
    """Test a repository that fires events around create()."""

    def test_veto_prevents_create(self, db, bus):
        bus.listen(UserCreating, lambda event: event.repository.count() < 1)
        repository = AuditedUserRepository(db, event_bus=bus)

        repository.create({"name": "first"})
        with pytest.raises(ResourceStoreError, match="vetoed"):
            repository.create({"name": "second"})

        assert db.query(User).count() == 1

    def test_created_handler_runs_after_insert(self, db, bus):
        seen = []
        repository = AuditedUserRepository(
            db,
            event_bus=bus,
            events={"created": lambda repo: seen.append(repo.count())},
        )

        repository.create({"name": "zed"})
        assert seen == [1]
