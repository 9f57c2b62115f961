"""Rule engine module for running a loaded logic document.

This module contains the RuleEngine class that evaluates the active
document's triggers on every sensor snapshot and dispatches action
events to an external sink (UI, feedback layer, MQTT). The engine never
performs side effects itself and never raises for a bad action.
"""
import collections
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Deque, List, Optional

from zerolink.core.constants import ActionType, EngineDefaults, TermColors
from zerolink.core.event_bus import EventBus, EventType, event_bus
from zerolink.logic.evaluator import SensorSnapshot, evaluate
from zerolink.logic.schema import Action, LogicDocument


@dataclass
class ActionEvent:
    """An action the feedback layer should perform."""
    type: str
    payload: dict
    source_document_name: str
    trigger_index: int = 0
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        """Return a JSON-serializable dict."""
        return {
            "type": self.type,
            "payload": self.payload,
            "sourceDocumentName": self.source_document_name,
            "triggerIndex": self.trigger_index,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class EventLogEntry:
    """One human readable line of the engine's event log."""
    message: str
    level: str = "info"
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=datetime.now)


ActionSink = Callable[[ActionEvent], None]


def describe_action(action: Action) -> Optional[str]:
    """Return why an action cannot be performed, or None if it can."""
    payload = action.payload
    if action.type is ActionType.TOGGLE and (payload.device is None or payload.state is None):
        return "toggle action needs both a device and a state"
    return None


class RuleEngine:
    """Evaluates the active document and fires its actions.

    Firing is debounced per document: once any trigger fires, no trigger
    of that document fires again until the debounce window has elapsed.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        sink: Optional[ActionSink] = None,
        bus: Optional[EventBus] = None,
        debounce_seconds: float = EngineDefaults.DEBOUNCE_SECONDS,
        log_capacity: int = EngineDefaults.EVENT_LOG_CAPACITY,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], datetime] = datetime.now
    ):
        """Initialize the engine with no document loaded.

        Args:
            sink: Callable receiving each ActionEvent
            bus: Event bus for ACTION_FIRED/ACTION_SKIPPED events
            debounce_seconds: Minimum interval between firings
            log_capacity: Number of event log entries kept
            clock: Monotonic time source for the debounce window
            wall_clock: Wall-clock source for timeOfDay and timestamps
        """
        self.sink = sink
        self.bus = bus if bus is not None else event_bus
        self.debounce_seconds = debounce_seconds
        self._clock = clock
        self._wall_clock = wall_clock
        self._document: Optional[LogicDocument] = None
        self._last_fired: Optional[float] = None
        self._log: Deque[EventLogEntry] = collections.deque(maxlen=log_capacity)

    @property
    def document(self) -> Optional[LogicDocument]:
        """The active document, if any."""
        return self._document

    @property
    def event_log(self) -> List[EventLogEntry]:
        """Event log entries, newest first."""
        return list(reversed(self._log))

    def clear_log(self) -> None:
        """Empty the event log."""
        self._log.clear()

    def load(self, document: LogicDocument) -> None:
        """Make a document active, restarting the debounce window."""
        self._document = document
        self._last_fired = None
        self._add_log(f"Logic loaded: {document.name}")

    def unload(self) -> None:
        """Deactivate the current document."""
        if self._document is not None:
            self._add_log(f"Logic unloaded: {self._document.name}")
        self._document = None
        self._last_fired = None

    def is_debouncing(self) -> bool:
        """True while the debounce window after the last firing is open."""
        if self._last_fired is None:
            return False
        return self._clock() - self._last_fired < self.debounce_seconds

    def process(self, snapshot: SensorSnapshot) -> List[ActionEvent]:
        """Evaluate the active document against a new sensor snapshot.

        Triggers are checked in order; the first one that holds fires
        actions[i] (or actions[0] when there are fewer actions than
        triggers) and opens the debounce window.

        Args:
            snapshot: Current sensor readings

        Returns:
            The action events dispatched for this snapshot (0 or 1)
        """
        document = self._document
        if document is None or not document.actions or self.is_debouncing():
            return []

        now = self._wall_clock()
        for index, trigger in enumerate(document.triggers):
            if not evaluate(trigger, snapshot, now):
                continue

            self._last_fired = self._clock()
            action = document.actions[index] if index < len(document.actions) else document.actions[0]
            event = self._dispatch(document, action, index, now)
            return [event] if event is not None else []

        return []

    def _dispatch(
        self,
        document: LogicDocument,
        action: Action,
        trigger_index: int,
        now: datetime
    ) -> Optional[ActionEvent]:
        """Validate an action and hand it to the sink."""
        problem = describe_action(action)
        if problem is not None:
            logging.warning("Skipping action of '%s': %s", document.name, problem)
            self._add_log(f"Skipped {action.type.value} action: {problem}", level="warning")
            self.bus.publish(EventType.ACTION_SKIPPED, {
                "document": document.name,
                "trigger_index": trigger_index,
                "action_type": action.type.value,
                "reason": problem,
            })
            return None

        event = ActionEvent(
            type=action.type.value,
            payload=action.payload.to_dict(),
            source_document_name=document.name,
            trigger_index=trigger_index,
            timestamp=now,
        )

        logging.info(
            "%s[ACTION] %s: trigger %d -> %s %s%s",
            TermColors.GREEN, document.name, trigger_index, event.type,
            event.payload, TermColors.RESET
        )
        self._add_log(self._log_message(event))
        self.bus.publish(EventType.ACTION_FIRED, event.to_dict())

        if self.sink is not None:
            try:
                self.sink(event)
            except Exception as e:  # pylint: disable=broad-exception-caught
                logging.warning("Action sink failed for %s: %s", event.type, e)
                self._add_log(f"Action sink failed: {e}", level="warning")
        return event

    @staticmethod
    def _log_message(event: ActionEvent) -> str:
        payload = event.payload
        if event.type == ActionType.TOGGLE.value:
            return f"Action triggered: toggle {payload['device']} {payload['state']}"
        if event.type == ActionType.LOG.value and "message" in payload:
            return f"Action triggered: log '{payload['message']}'"
        return f"Action triggered: {event.type}"

    def _add_log(self, message: str, level: str = "info") -> None:
        self._log.append(EventLogEntry(message=message, level=level, timestamp=self._wall_clock()))
