"""API key rotation with cooldown, retry and a short-lived cache.

Free-tier LLM keys get rate limited quickly. KeyRotator spreads requests
over several keys round robin:
- a 429 puts the key on cooldown and counts a failure
- a key that keeps failing is disabled for the process lifetime
- other errors back off exponentially (with jitter) before the next key
- identical prompts within the cache TTL are answered from memory

Results are plain text; callers still validate whatever comes back.
"""
import collections
import hashlib
import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from zerolink.core.errors import ProviderError
from zerolink.core.utils import mask_secret


@dataclass
class KeyState:
    """Health of one API key."""
    cooldown_until: float = 0.0
    failures: int = 0
    disabled: bool = False


@dataclass
class RotationResult:
    """Outcome of KeyRotator.call()."""
    success: bool
    data: Optional[str] = None
    error: Optional[str] = None
    status: int = 200
    cached: bool = False


class KeyRotator:  # pylint: disable=too-many-instance-attributes
    """Round-robin API key pool with cooldown and backoff."""

    def __init__(  # pylint: disable=too-many-arguments
        self,
        keys: List[str],
        cooldown_seconds: float = 60.0,
        max_failures: int = 5,
        max_attempts: int = 6,
        backoff_initial: float = 0.3,
        backoff_max: float = 5.0,
        cache_ttl: float = 60.0,
        cache_size: int = 100,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.keys = [k for k in keys if k]
        self.cooldown_seconds = cooldown_seconds
        self.max_failures = max_failures
        self.max_attempts = max_attempts
        self.backoff_initial = backoff_initial
        self.backoff_max = backoff_max
        self.cache_ttl = cache_ttl
        self.cache_size = cache_size
        self._clock = clock
        self._sleep = sleep
        self._states: Dict[str, KeyState] = {k: KeyState() for k in self.keys}
        self._index = 0
        self._cache: "collections.OrderedDict[str, tuple[float, str]]" = collections.OrderedDict()

        if not self.keys:
            logging.error("No API keys configured; generation requests will fail.")
        else:
            logging.info("Key rotator initialized with %d API key(s).", len(self.keys))

    def next_key(self) -> Optional[str]:
        """Return the next usable key, skipping disabled or cooling keys."""
        now = self._clock()
        for _ in range(len(self.keys)):
            key = self.keys[self._index]
            self._index = (self._index + 1) % len(self.keys)
            state = self._states[key]
            if state.disabled or now < state.cooldown_until:
                continue
            return key
        return None

    def _mark_rate_limited(self, key: str) -> None:
        state = self._states[key]
        state.cooldown_until = self._clock() + self.cooldown_seconds
        state.failures += 1
        logging.warning("Key %s is rate-limited (429). Placing on cooldown.", mask_secret(key))
        if state.failures >= self.max_failures:
            state.disabled = True
            logging.error("Key %s has been disabled after repeated failures.", mask_secret(key))

    def _cache_get(self, cache_key: str) -> Optional[str]:
        entry = self._cache.get(cache_key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at > self.cache_ttl:
            del self._cache[cache_key]
            return None
        self._cache.move_to_end(cache_key)
        return value

    def _cache_put(self, cache_key: str, value: str) -> None:
        self._cache[cache_key] = (self._clock(), value)
        self._cache.move_to_end(cache_key)
        while len(self._cache) > self.cache_size:
            self._cache.popitem(last=False)

    def _sleep_with_jitter(self, seconds: float) -> None:
        self._sleep(max(0.0, seconds + random.uniform(-0.1, 0.1)))

    @staticmethod
    def cache_key(prompt: str, model: str) -> str:
        """Cache key for a prompt/model pair."""
        return hashlib.sha256(f"{prompt}{model}".encode("utf-8")).hexdigest()

    def call(self, request: Callable[[str], str], prompt: str, model: str) -> RotationResult:
        """Run request(api_key) with rotation, retry and caching.

        Args:
            request: Performs the API call with the given key; raises
                ProviderError on failure
            prompt: Prompt text (cache key component)
            model: Model name (cache key component)

        Returns:
            RotationResult; never raises for provider failures
        """
        cache_key = self.cache_key(prompt, model)
        cached = self._cache_get(cache_key)
        if cached is not None:
            logging.info("Returning cached generation response.")
            return RotationResult(success=True, data=cached, cached=True)

        max_attempts = min(self.max_attempts, len(self.keys) * 2)
        backoff = self.backoff_initial

        for attempt in range(1, max_attempts + 1):
            key = self.next_key()
            if key is None:
                logging.warning("All keys are on cooldown. Waiting before retry...")
                self._sleep_with_jitter(self.backoff_max)
                continue

            logging.info("Attempt #%d with key %s", attempt, mask_secret(key))
            try:
                data = request(key)
            except ProviderError as e:
                if e.is_rate_limited:
                    self._mark_rate_limited(key)
                    continue
                logging.error("Error with key %s: %s", mask_secret(key), e)
                self._sleep_with_jitter(backoff)
                backoff = min(self.backoff_max, backoff * 2)
                continue

            self._cache_put(cache_key, data)
            return RotationResult(success=True, data=data)

        return RotationResult(
            success=False,
            error="All API keys failed or are on cooldown. Please try again later.",
            status=503,
        )

    def status(self) -> Dict[str, dict]:
        """Diagnostics per masked key."""
        now = self._clock()
        return {
            mask_secret(key): {
                "failures": state.failures,
                "disabled": state.disabled,
                "cooling_down": now < state.cooldown_until,
            }
            for key, state in self._states.items()
        }
