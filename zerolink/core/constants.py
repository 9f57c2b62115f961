"""Constants used throughout the ZeroLink application.

This module centralizes the vocabulary shared by the transport, the
document schema and the rule engine:
- Wire protocol limits and defaults
- Sensor, operator, action and device enumerations
- MQTT topic names used by the daemon
"""
from enum import Enum


# Bump when the checksum algorithm or chunk frame changes
PROTOCOL_VERSION = 1


class TransportDefaults:
    """Default sizing for QR chunk payloads."""
    CHUNK_BUDGET = 250  # Characters per QR code, keeps level L codes scannable
    MIN_CHUNK_SIZE = 50
    SESSION_ID_LENGTH = 36  # uuid4 string form
    CHECKSUM_MAX_LENGTH = 6  # base36 of 2**31


class EngineDefaults:
    """Default rule engine tuning."""
    DEBOUNCE_SECONDS = 2.0
    EVENT_LOG_CAPACITY = 50


class Sensor(str, Enum):
    """Sensors a condition can read."""
    TEMPERATURE = "temperature"
    LIGHT = "light"
    MOTION = "motion"
    TIME_OF_DAY = "timeOfDay"


class Operator(str, Enum):
    """Comparison operators for conditions."""
    GREATER = ">"
    LESS = "<"
    EQUAL = "="
    NOT_EQUAL = "!="


class GroupKind(str, Enum):
    """Boolean combinator of a trigger group."""
    ALL = "all"
    ANY = "any"


class ActionType(str, Enum):
    """Action kinds the feedback layer knows how to perform."""
    LOG = "log"
    TOGGLE = "toggle"
    FLASH_BACKGROUND = "flashBackground"
    VIBRATE = "vibrate"


class Device(str, Enum):
    """Devices a toggle action can switch."""
    LIGHT = "light"
    FAN = "fan"
    PUMP = "pump"
    SIREN = "siren"


class DeviceState(str, Enum):
    """Target state of a toggle action."""
    ON = "on"
    OFF = "off"


class TimeOfDay(str, Enum):
    """Values produced by the timeOfDay ambient sensor."""
    DAY = "day"
    NIGHT = "night"


# MQTT Topics
class MqttTopics:
    """Standard MQTT topic constants used by the daemon."""
    SCAN = "zerolink/scan"
    SENSORS = "zerolink/sensors"
    ACTIONS = "zerolink/actions"
    STATUS = "zerolink/status"
    RESET = "zerolink/reset"


# Terminal colors for output formatting
class TermColors:
    """ANSI color codes for terminal output."""
    CYAN = "\033[96m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    MAGENTA = "\033[95m"
    RED = "\033[91m"
    RESET = "\033[0m"
    DIM = "\033[2m"
    BOLD = "\033[1m"
