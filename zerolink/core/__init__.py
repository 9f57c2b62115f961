"""Core package for ZeroLink.

This package contains configuration, constants, errors, the event bus,
utilities and the MQTT daemon.
"""
from zerolink.core.config import Config
from zerolink.core.constants import (
    ActionType,
    Device,
    DeviceState,
    GroupKind,
    MqttTopics,
    Operator,
    PROTOCOL_VERSION,
    Sensor,
    TermColors,
)
from zerolink.core.errors import ChunkFormatError, LogicValidationError, ProviderError, ZeroLinkError
from zerolink.core.event_bus import EventBus, EventType, Event, event_bus
from zerolink.core.utils import load_json_file, save_json_file, setup_logging

__all__ = [
    "ActionType",
    "ChunkFormatError",
    "Config",
    "Device",
    "DeviceState",
    "Event",
    "event_bus",
    "EventBus",
    "EventType",
    "GroupKind",
    "load_json_file",
    "LogicValidationError",
    "MqttTopics",
    "Operator",
    "PROTOCOL_VERSION",
    "ProviderError",
    "save_json_file",
    "Sensor",
    "setup_logging",
    "TermColors",
    "ZeroLinkError",
]
