"""Natural-language to logic document generation.

The LLM is an untrusted source: whatever it returns goes through the
same schema validation as a scanned document, and every failure comes
back as an error string rather than an exception.
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Optional

from zerolink.ai.key_rotator import KeyRotator
from zerolink.ai.prompt_templates import LOGIC_SYSTEM_PROMPT, build_logic_prompt
from zerolink.ai.providers.base import AiProvider
from zerolink.core.errors import LogicValidationError
from zerolink.logic.schema import LogicDocument, parse_document

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")


@dataclass
class GenerationResult:
    """Outcome of one generation request."""
    document: Optional[LogicDocument] = None
    error: Optional[str] = None
    raw_json: Optional[str] = None

    @property
    def ok(self) -> bool:
        """True if a valid document was produced."""
        return self.document is not None


def extract_json(text: str) -> str:
    """Strip a markdown code fence around the JSON, if present."""
    match = _FENCE_RE.search(text)
    return match.group(1) if match else text.strip()


class LogicGenerator:
    """Turns a plain-language description into a validated LogicDocument."""

    def __init__(self, provider: AiProvider, rotator: KeyRotator, model: str):
        self.provider = provider
        self.rotator = rotator
        self.model = model

    def generate(self, text: str) -> GenerationResult:
        """Generate a document from a description.

        Args:
            text: What the rule should do, in natural language

        Returns:
            GenerationResult with either a document or an error message
        """
        if not text or not text.strip():
            return GenerationResult(error="Please enter a description for the logic.")

        prompt = build_logic_prompt(text)
        logging.info(
            "[AI Request] provider=%s model=%s | prompt=%d chars",
            self.provider.name, self.model, len(prompt)
        )

        outcome = self.rotator.call(
            lambda key: self.provider.generate(prompt, key, self.model, LOGIC_SYSTEM_PROMPT),
            prompt,
            self.model,
        )
        if not outcome.success:
            logging.error("Generation failed: %s", outcome.error)
            return GenerationResult(
                error="The AI service is currently unavailable or rate-limited."
            )

        raw_json = extract_json(outcome.data or "")
        try:
            candidate = json.loads(raw_json)
        except ValueError as e:
            logging.error("AI returned invalid JSON: %s", e)
            return GenerationResult(
                error="The AI returned invalid JSON. Please try again.", raw_json=raw_json
            )

        try:
            document = parse_document(candidate)
        except LogicValidationError as e:
            logging.error("AI output failed validation: %s", e)
            return GenerationResult(
                error=(
                    "The AI returned a response with an invalid structure. "
                    f"Please try rephrasing your request. ({'; '.join(e.errors[:3])})"
                ),
                raw_json=raw_json,
            )

        return GenerationResult(document=document, raw_json=raw_json)
