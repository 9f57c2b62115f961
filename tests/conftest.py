"""Shared pytest fixtures for ZeroLink tests."""
import json
import os
import sys
import tempfile
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from zerolink.core.config import Config
from zerolink.core.event_bus import EventBus
from zerolink.logic.schema import parse_document


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def config():
    """Create a default Config instance for testing."""
    return Config()


@pytest.fixture
def config_with_temp_files(temp_dir):
    """Create a Config instance with temp file paths."""
    cfg = Config()
    cfg.store_file = os.path.join(temp_dir, "saved_logic.json")
    return cfg


@pytest.fixture
def bus():
    """A private event bus so tests never see each other's events."""
    return EventBus()


@pytest.fixture
def clock():
    """A fake monotonic clock starting at t=1000."""
    return FakeClock()


@pytest.fixture
def scenario_a_dict():
    """The single-condition document used by the boundary scenarios."""
    return {
        "name": "X",
        "triggers": [{"sensor": "temperature", "operator": ">", "value": 30}],
        "actions": [{"type": "log", "payload": {"message": "hot"}}],
    }


@pytest.fixture
def scenario_a(scenario_a_dict):
    """Scenario A as a parsed LogicDocument."""
    return parse_document(scenario_a_dict)


@pytest.fixture
def nested_logic_dict():
    """A document with nested groups and several actions."""
    return {
        "name": "Greenhouse",
        "triggers": [
            {
                "type": "all",
                "conditions": [
                    {"sensor": "temperature", "operator": ">", "value": 28},
                    {
                        "type": "any",
                        "conditions": [
                            {"sensor": "light", "operator": ">", "value": 600},
                            {"sensor": "timeOfDay", "operator": "=", "value": "day"},
                        ],
                    },
                ],
            },
            {"sensor": "motion", "operator": "=", "value": True},
        ],
        "actions": [
            {"type": "toggle", "payload": {"device": "fan", "state": "on"}},
            {"type": "flashBackground", "payload": {"color": "#ff0000", "duration": 500}},
        ],
    }


@pytest.fixture
def nested_logic(nested_logic_dict):
    """The nested document as a parsed LogicDocument."""
    return parse_document(nested_logic_dict)


def make_large_logic(trigger_count: int = 12) -> dict:
    """Build a document whose serialized form spans many chunks."""
    return {
        "name": "Large rule set",
        "triggers": [
            {"sensor": "temperature", "operator": ">", "value": 20 + i}
            for i in range(trigger_count)
        ],
        "actions": [
            {"type": "log", "payload": {"message": f"Temperature above {20 + i}"}}
            for i in range(trigger_count)
        ],
    }


def create_json_file(filepath: str, data) -> None:
    """Helper to create a JSON file with data."""
    with open(filepath, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def create_text_file(filepath: str, content: str) -> None:
    """Helper to create a text file with content."""
    with open(filepath, "w", encoding="utf-8") as f:
        f.write(content)
