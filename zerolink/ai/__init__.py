"""AI package for ZeroLink.

This package turns natural-language descriptions into logic documents
through an LLM provider, with API key rotation and validation.
"""
from zerolink.ai.generator import GenerationResult, LogicGenerator, extract_json
from zerolink.ai.key_rotator import KeyRotator, KeyState, RotationResult
from zerolink.ai.providers import create_provider

__all__ = [
    "create_provider",
    "extract_json",
    "GenerationResult",
    "KeyRotator",
    "KeyState",
    "LogicGenerator",
    "RotationResult",
]
