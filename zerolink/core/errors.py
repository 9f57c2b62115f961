"""Exception types for ZeroLink.

Expected transport and engine conditions (corrupt chunks, session
mismatches, incomplete transfers) are reported as result values, not
exceptions. These types are raised inside the package and caught at
the decoder, store and generator boundaries.
"""
from typing import List, Optional


class ZeroLinkError(Exception):
    """Base class for all ZeroLink errors."""


class ChunkFormatError(ZeroLinkError):
    """Raised when a scanned string is not a well-formed chunk."""


class LogicValidationError(ZeroLinkError):
    """Raised when a candidate document fails schema validation.

    Attributes:
        errors: Every problem found, as human readable paths and messages
    """

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        summary = "; ".join(self.errors[:5])
        if len(self.errors) > 5:
            summary += f" (+{len(self.errors) - 5} more)"
        super().__init__(f"Invalid logic document: {summary}")


class ProviderError(ZeroLinkError):
    """Raised by an AI provider when a generation request fails.

    Attributes:
        status: HTTP-like status code (429 means rate limited), if known
    """

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)

    @property
    def is_rate_limited(self) -> bool:
        """True if the provider rejected the call for rate limiting."""
        return self.status == 429
