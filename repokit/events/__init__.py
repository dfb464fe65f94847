"""Lifecycle events and the bus they are published through."""

from repokit.events.base import RepositoryEvent
from repokit.events.bus import EventBus, event_bus, get_event_bus

__all__ = [
    "EventBus",
    "RepositoryEvent",
    "event_bus",
    "get_event_bus",
]
