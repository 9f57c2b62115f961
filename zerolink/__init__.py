"""ZeroLink - move automation logic between devices over QR codes.

A logic document (sensor triggers plus actions) is serialized, split
into checksummed chunks that each fit in one QR code, reassembled on the
receiving device and run by a small rule engine against sensor readings.

Subpackages:
- core: Configuration, constants, errors, event bus, utilities and the MQTT daemon
- transport: Checksum, chunk format, encoder, decoder and QR rendering
- logic: Document schema, trigger evaluation, rule engine and saved-logic store
- mqtt: MQTT client and sinks
- ai: Natural-language document generation with API key rotation
"""

from zerolink.core.config import Config
from zerolink.core.event_bus import event_bus, EventBus, EventType, Event
from zerolink.logic.engine import RuleEngine
from zerolink.logic.schema import LogicDocument, load_document, serialize_document
from zerolink.transport.decoder import DecodeStatus, TransportDecoder
from zerolink.transport.encoder import TransportEncoder

__version__ = "0.1"

__all__ = [
    "Config",
    "DecodeStatus",
    "event_bus",
    "EventBus",
    "EventType",
    "Event",
    "load_document",
    "LogicDocument",
    "RuleEngine",
    "serialize_document",
    "TransportDecoder",
    "TransportEncoder",
    "__version__",
]
