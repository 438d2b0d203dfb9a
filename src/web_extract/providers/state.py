"""Process-wide provider availability and rate-limit state."""

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone

from web_extract.config import ProviderName

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RateLimitState:
    is_limited: bool = False
    reset_at: datetime | None = None
    errors: int = 0


@dataclass
class ProviderState:
    available: bool = False
    rate_limit: RateLimitState = field(default_factory=RateLimitState)
    last_success: datetime | None = None


class ProviderStateTracker:
    """Availability and rate-limit state for every provider.

    A limited provider becomes usable again lazily: the first read at or
    after ``reset_at`` clears the flag. There is no background timer. Each
    provider's state is guarded by its own lock.
    """

    def __init__(
        self,
        cooldown_seconds: float = 60.0,
        *,
        clock: Callable[[], datetime] = _utcnow,
        providers: Iterable[ProviderName] = tuple(ProviderName),
    ):
        self.cooldown = timedelta(seconds=cooldown_seconds)
        self._clock = clock
        self._states = {p: ProviderState() for p in providers}
        self._locks = {p: threading.Lock() for p in self._states}

    @property
    def providers(self) -> list[ProviderName]:
        return list(self._states)

    def set_available(self, provider: ProviderName, available: bool) -> None:
        with self._locks[provider]:
            self._states[provider].available = available

    def is_rate_limited(self, provider: ProviderName) -> bool:
        """Whether ``provider`` is inside its cooldown window."""
        with self._locks[provider]:
            return self._check_limited(self._states[provider])

    def is_usable(self, provider: ProviderName) -> bool:
        """Available and not rate-limited."""
        with self._locks[provider]:
            state = self._states[provider]
            if not state.available:
                return False
            return not self._check_limited(state)

    def record_success(self, provider: ProviderName) -> None:
        with self._locks[provider]:
            state = self._states[provider]
            state.last_success = self._clock()
            state.rate_limit.is_limited = False
            state.rate_limit.reset_at = None
            state.rate_limit.errors = 0

    def record_rate_limit(self, provider: ProviderName) -> None:
        with self._locks[provider]:
            limit = self._states[provider].rate_limit
            limit.is_limited = True
            limit.errors += 1
            limit.reset_at = self._clock() + self.cooldown
        logger.warning(
            "Provider %s rate-limited; cooling down for %.0fs",
            provider.value,
            self.cooldown.total_seconds(),
        )

    def record_error(self, provider: ProviderName) -> None:
        with self._locks[provider]:
            self._states[provider].rate_limit.errors += 1

    def snapshot(self, provider: ProviderName) -> ProviderState:
        """A copy of the provider's current state."""
        with self._locks[provider]:
            state = self._states[provider]
            self._check_limited(state)
            return replace(state, rate_limit=replace(state.rate_limit))

    def _check_limited(self, state: ProviderState) -> bool:
        limit = state.rate_limit
        if not limit.is_limited:
            return False
        if limit.reset_at is None or self._clock() >= limit.reset_at:
            limit.is_limited = False
            limit.reset_at = None
            return False
        return True
