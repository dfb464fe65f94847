"""
Event bus.

Listeners subscribe to an event class and receive every published instance
of that class or of its subclasses. A listener returning ``False`` halts
propagation, which is how "-ing" lifecycle events veto an operation.
"""

from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Union

from repokit.core.logging import get_logger

logger = get_logger(__name__)

Listener = Callable[[Any], Any]


class EventBus:
    """
    Synchronous publish/subscribe dispatcher.

    Example:
        bus = EventBus()
        bus.listen(UserCreating, lambda event: event.repository.count() < 100)
        if bus.publish(UserCreating(repo)) is False:
            ...  # vetoed
    """

    def __init__(self) -> None:
        self._listeners: Dict[type, List[Listener]] = defaultdict(list)

    def listen(self, event_type: type, listener: Listener) -> None:
        """Register ``listener`` for ``event_type`` and its subclasses."""
        self._listeners[event_type].append(listener)

    def forget(self, event_type: type) -> None:
        """Remove every listener registered for ``event_type``."""
        self._listeners.pop(event_type, None)

    def has_listeners(self, event_type: type) -> bool:
        return any(self._listeners.get(klass) for klass in event_type.__mro__)

    def publish(self, event: Any) -> Union[List[Any], bool, None]:
        """
        Deliver ``event`` to its listeners in registration order.

        Listeners registered for the exact class run before those registered
        for base classes.

        Returns:
            False if a listener vetoed, the list of non-None responses
            otherwise, or None when no listener responded
        """
        responses: List[Any] = []
        for event_type in type(event).__mro__:
            for listener in list(self._listeners.get(event_type, ())):
                response = listener(event)
                if response is False:
                    logger.info("%s halted by %r", type(event).__name__, listener)
                    return False
                if response is not None:
                    responses.append(response)
        return responses or None


event_bus = EventBus()


def get_event_bus() -> EventBus:
    """Get the global event bus instance."""
    return event_bus
