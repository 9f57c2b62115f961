"""Configuration module for ZeroLink.

This module provides the Config dataclass which holds all configuration
settings for the command line and the MQTT daemon, including transport
sizing, rule engine tuning, MQTT connection details and AI provider
settings.
"""
import argparse
import os
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from dotenv import load_dotenv

from zerolink.core.constants import EngineDefaults, MqttTopics, TransportDefaults

# Load .env file if present (for API keys etc.)
load_dotenv()


DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
DEFAULT_OPENAI_MODELS = [
    "llama-3.3-70b-versatile",
]

COMMANDS = ("encode", "decode", "run", "generate", "daemon")


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    """Read a float from the environment, falling back on bad values."""
    raw = os.environ.get(name, "")
    if not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def discover_api_keys(prefix: str = "GEMINI_API_KEY") -> List[str]:
    """Collect API keys from every env var starting with prefix.

    Variables are sorted by name so GEMINI_API_KEY, GEMINI_API_KEY_2, ...
    are rotated in a stable order. Empty values are skipped.
    """
    names = sorted(k for k in os.environ if k.startswith(prefix))
    return [os.environ[k] for k in names if os.environ[k]]


@dataclass
class Config:  # pylint: disable=too-many-instance-attributes
    """Configuration settings for ZeroLink."""

    # Transport
    chunk_budget: int = TransportDefaults.CHUNK_BUDGET
    min_chunk_size: int = TransportDefaults.MIN_CHUNK_SIZE
    # Seconds without a new chunk before a transfer is abandoned (None = never)
    session_timeout: Optional[float] = field(
        default_factory=lambda: _env_float("ZEROLINK_SESSION_TIMEOUT", 120.0)
    )

    # Rule engine
    debounce_seconds: float = EngineDefaults.DEBOUNCE_SECONDS
    event_log_capacity: int = EngineDefaults.EVENT_LOG_CAPACITY

    # Files
    store_file: str = field(
        default_factory=lambda: os.environ.get("ZEROLINK_STORE", "configs/saved_logic.json")
    )

    # MQTT
    mqtt_host: str = field(default_factory=lambda: os.environ.get("MQTT_HOST", "localhost"))
    mqtt_port: str = field(default_factory=lambda: os.environ.get("MQTT_PORT", "1883"))
    scan_topic: str = MqttTopics.SCAN
    sensor_topic: str = MqttTopics.SENSORS
    action_topic: str = MqttTopics.ACTIONS
    status_topic: str = MqttTopics.STATUS
    reset_topic: str = MqttTopics.RESET

    # AI Provider
    ai_provider: str = field(
        default_factory=lambda: os.environ.get("AI_PROVIDER", "gemini")
    )  # "gemini", "openai-compatible", "claude"
    gemini_model: str = DEFAULT_GEMINI_MODEL
    gemini_api_keys: List[str] = field(default_factory=discover_api_keys)
    claude_model: str = "claude-3-5-haiku-latest"
    claude_api_key: str = field(
        default_factory=lambda: os.environ.get("ANTHROPIC_API_KEY", "")
    )
    openai_api_base: str = "https://api.groq.com/openai/v1"
    openai_api_key: str = field(
        default_factory=lambda: os.environ.get(
            "GROQ_API_KEY", os.environ.get("OPENAI_API_KEY", "")
        )
    )
    openai_models: List[str] = field(default_factory=DEFAULT_OPENAI_MODELS.copy)

    # Display
    verbose: bool = False

    # Command line
    command: Optional[str] = None
    input_file: Optional[str] = None
    prompt: Optional[str] = None
    qr_dir: Optional[str] = None
    temperature: float = 20.0
    light: float = 250.0
    motion: bool = False

    @property
    def ai_model(self) -> str:
        """Return the model name for the selected provider."""
        if self.ai_provider == "gemini":
            return self.gemini_model
        if self.ai_provider == "claude":
            return self.claude_model
        return self.openai_models[0] if self.openai_models else DEFAULT_OPENAI_MODELS[0]

    def api_keys(self) -> List[str]:
        """Return the API keys to rotate over for the selected provider."""
        if self.ai_provider == "gemini":
            return list(self.gemini_api_keys)
        if self.ai_provider == "claude":
            return [self.claude_api_key] if self.claude_api_key else []
        return [self.openai_api_key] if self.openai_api_key else []

    @classmethod
    def from_args(cls, argv: Optional[Sequence[str]] = None) -> 'Config':
        """Parse command-line arguments and return a Config instance."""
        parser = argparse.ArgumentParser(
            prog="zerolink",
            description="ZeroLink - move automation logic between devices over QR codes"
        )
        parser.add_argument("command", choices=COMMANDS, help="What to do")
        parser.add_argument(
            "target", nargs="?",
            help="Input file (encode/decode/run) or natural-language text (generate)"
        )

        # Transport
        parser.add_argument(
            "--budget",
            type=int,
            default=TransportDefaults.CHUNK_BUDGET,
            help="Character budget per QR code"
        )
        parser.add_argument(
            "--min-chunk-size",
            type=int,
            default=TransportDefaults.MIN_CHUNK_SIZE,
            help="Smallest data slice per chunk, regardless of overhead"
        )
        parser.add_argument(
            "--session-timeout",
            type=float,
            default=_env_float("ZEROLINK_SESSION_TIMEOUT", 120.0),
            help="Seconds without progress before a transfer is abandoned (0 disables)"
        )
        parser.add_argument(
            "--qr-dir",
            metavar="DIR",
            help="Write one PNG per chunk into DIR (encode only)"
        )

        # Rule engine
        parser.add_argument(
            "--debounce",
            type=float,
            default=EngineDefaults.DEBOUNCE_SECONDS,
            help="Minimum seconds between action firings for a document"
        )
        parser.add_argument("--temperature", type=float, default=20.0)
        parser.add_argument("--light", type=float, default=250.0)
        parser.add_argument("--motion", action="store_true")

        # Files
        parser.add_argument(
            "--store",
            default=os.environ.get("ZEROLINK_STORE", "configs/saved_logic.json"),
            help="Saved logic JSON file (env: ZEROLINK_STORE)"
        )

        # MQTT
        parser.add_argument(
            "--mqtt-host",
            default=os.environ.get("MQTT_HOST", "localhost"),
            help="MQTT Broker Host"
        )
        parser.add_argument(
            "--mqtt-port",
            default=os.environ.get("MQTT_PORT", "1883"),
            help="MQTT Broker Port"
        )

        # AI Provider
        parser.add_argument(
            "--ai-provider",
            choices=["gemini", "claude", "openai-compatible"],
            default=os.environ.get("AI_PROVIDER", "gemini"),
            help="AI provider used by 'generate'"
        )
        parser.add_argument(
            "--gemini-model",
            default=os.environ.get("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
            help="Gemini Model ID"
        )
        parser.add_argument(
            "--claude-model",
            default=os.environ.get("CLAUDE_MODEL", "claude-3-5-haiku-latest"),
            help="Claude Model ID"
        )
        parser.add_argument(
            "--openai-api-base",
            default=os.environ.get("OPENAI_API_BASE", "https://api.groq.com/openai/v1"),
            help="Base URL for OpenAI-compatible API (e.g., Groq, Ollama, LM Studio)"
        )
        parser.add_argument(
            "--openai-models",
            default=os.environ.get("OPENAI_MODELS", ""),
            help="Comma-separated list of models (first one is used)"
        )

        parser.add_argument(
            "--verbose", "-v",
            action="store_true",
            help="Enable verbose logging"
        )

        args = parser.parse_args(argv)

        c = cls()
        c.command = args.command
        if args.command == "generate":
            c.prompt = args.target
        else:
            c.input_file = args.target
        c.chunk_budget = args.budget
        c.min_chunk_size = args.min_chunk_size
        c.session_timeout = args.session_timeout if args.session_timeout else None
        c.qr_dir = args.qr_dir
        c.debounce_seconds = args.debounce
        c.temperature = args.temperature
        c.light = args.light
        c.motion = args.motion
        c.store_file = args.store
        c.mqtt_host = args.mqtt_host
        c.mqtt_port = args.mqtt_port
        c.ai_provider = args.ai_provider
        c.gemini_model = args.gemini_model
        c.claude_model = args.claude_model
        c.openai_api_base = args.openai_api_base
        # Parse comma-separated models list, use defaults if empty
        if args.openai_models.strip():
            c.openai_models = [m.strip() for m in args.openai_models.split(",") if m.strip()]
        c.verbose = args.verbose
        return c
