"""Event Bus module for transport and engine observability.

The decoder and the rule engine report what happened to them here (chunk
accepted, session mismatch, action fired, ...) without knowing who is
listening. Recent history is kept in a bounded buffer so tests and the
daemon can inspect it after the fact.
"""
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Deque, Dict, List, Optional
import logging
import time


class EventType(Enum):
    """Types of events published by the transport and the rule engine."""
    CHUNK_ACCEPTED = "chunk_accepted"
    CHUNK_CORRUPT = "chunk_corrupt"
    CHUNK_INCONSISTENT = "chunk_inconsistent"
    SESSION_MISMATCH = "session_mismatch"
    SESSION_EXPIRED = "session_expired"
    SESSION_RESET = "session_reset"
    ASSEMBLY_ERROR = "assembly_error"
    DOCUMENT_LOADED = "document_loaded"
    ACTION_FIRED = "action_fired"
    ACTION_SKIPPED = "action_skipped"


@dataclass
class Event:
    """Something the decoder or the engine did, with its details."""
    type: EventType
    data: dict
    timestamp: float = field(default_factory=time.time)


Listener = Callable[[Event], None]


class EventBus:
    """Synchronous pub/sub with a bounded history.

    Listeners run on the publishing thread, in subscription order. A
    listener registered for ``None`` receives every event type.
    """

    def __init__(self, max_events: Optional[int] = 1000):
        self._history: Deque[Event] = deque(maxlen=max_events)
        self._listeners: Dict[Optional[EventType], List[Listener]] = {}

    def publish(self, event_type: EventType, data: dict) -> Event:
        """Record an event and deliver it to its listeners."""
        event = Event(type=event_type, data=data)
        self._history.append(event)

        listeners = self._listeners.get(event_type, []) + self._listeners.get(None, [])
        for listener in listeners:
            try:
                listener(event)
            except Exception:  # pylint: disable=broad-exception-caught
                # A broken listener must not stop a decode or an action
                logging.debug("Listener failed for %s", event_type.value, exc_info=True)
        return event

    def subscribe(
        self, event_type: Optional[EventType], listener: Listener
    ) -> Callable[[], None]:
        """Register a listener for one event type, or for all with None.

        Returns:
            A function that removes the listener again.
        """
        self._listeners.setdefault(event_type, []).append(listener)

        def unsubscribe():
            remaining = self._listeners.get(event_type, [])
            if listener in remaining:
                remaining.remove(listener)

        return unsubscribe

    def get_events(self, event_type: Optional[EventType] = None) -> List[Event]:
        """Recorded events, oldest first, optionally of one type."""
        return [e for e in self._history if event_type is None or e.type is event_type]

    def event_count(self, event_type: Optional[EventType] = None) -> int:
        return len(self.get_events(event_type))

    def latest(self, event_type: Optional[EventType] = None) -> Optional[Event]:
        """The most recent event of a type, if any was recorded."""
        for event in reversed(self._history):
            if event_type is None or event.type is event_type:
                return event
        return None

    def clear(self) -> None:
        """Forget the recorded history; listeners stay registered."""
        self._history.clear()


# Shared by the decoder, the engine and the daemon unless one is injected
event_bus = EventBus()
