"""Shared utility functions for ZeroLink.

This module contains common utilities used across multiple modules:
JSON file operations and logging setup.
"""
import json
import logging
import os
from typing import Any, TypeVar

T = TypeVar('T')


def setup_logging(verbose: bool = False):
    """Configure the logging module."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="[%H:%M:%S]"
    )


def load_json_file(filepath: str, default: T) -> T:
    """Load a JSON file, returning default if not found or invalid.

    Args:
        filepath: Path to the JSON file
        default: Default value to return if file doesn't exist or is invalid

    Returns:
        The loaded JSON data, or the default value
    """
    try:
        with open(filepath, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return default
    except json.JSONDecodeError as e:
        logging.warning("Ignoring unreadable JSON file '%s': %s", filepath, e)
        return default


def save_json_file(filepath: str, data: Any) -> None:
    """Save data to a JSON file atomically with pretty formatting.

    Uses a temp file + rename pattern so readers never see a partial
    file while a write is in progress.

    Args:
        filepath: Path to the JSON file
        data: Data to save (must be JSON serializable)
    """
    directory = os.path.dirname(filepath)
    if directory:
        os.makedirs(directory, exist_ok=True)

    tmp_path = filepath + ".tmp"
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.flush()
        os.fsync(f.fileno())  # Ensure data is on disk before rename

    os.replace(tmp_path, filepath)  # Atomic swap


def mask_secret(secret: str, visible: int = 6) -> str:
    """Mask an API key for safe logging, keeping only the last characters."""
    if not secret:
        return "<empty>"
    return f"...{secret[-visible:]}"
