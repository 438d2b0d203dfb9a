"""Rate-limit-aware fallback around a single provider call."""

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import TypeVar

from web_extract.config import ProviderName
from web_extract.errors import RateLimited, WebExtractError
from web_extract.providers.base import BaseProvider
from web_extract.providers.state import ProviderStateTracker

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Alternates tried, in order, after each provider signals a rate limit.
ALTERNATES: dict[ProviderName, tuple[ProviderName, ...]] = {
    ProviderName.EXA: (ProviderName.FIRECRAWL, ProviderName.LOCAL),
    ProviderName.FIRECRAWL: (ProviderName.EXA, ProviderName.LOCAL),
    ProviderName.LOCAL: (ProviderName.EXA, ProviderName.FIRECRAWL),
}


class FallbackOrchestrator:
    """Invoke one provider operation and walk alternates on rate limits.

    Every outcome is recorded in the state tracker. Only ``RateLimited``
    triggers fallback; any other ``WebExtractError`` is recorded against the
    provider and re-raised immediately. When every alternate fails, the
    original rate-limit error is re-raised.
    """

    def __init__(
        self,
        providers: Mapping[ProviderName, BaseProvider],
        state: ProviderStateTracker,
        alternates: Mapping[ProviderName, tuple[ProviderName, ...]] = ALTERNATES,
    ):
        self.providers = providers
        self.state = state
        self.alternates = alternates

    async def run(
        self,
        provider: ProviderName,
        operation: Callable[[BaseProvider], Awaitable[T]],
        *,
        fallback: bool = True,
    ) -> T:
        try:
            result = await operation(self.providers[provider])
        except RateLimited as exc:
            self.state.record_rate_limit(provider)
            if fallback:
                alt_result = await self._try_alternates(provider, operation)
                if alt_result is not None:
                    return alt_result[0]
                logger.warning(
                    "All fallbacks exhausted after %s was rate-limited", provider.value
                )
            raise exc
        except WebExtractError:
            self.state.record_error(provider)
            raise

        self.state.record_success(provider)
        return result

    async def _try_alternates(
        self,
        failed: ProviderName,
        operation: Callable[[BaseProvider], Awaitable[T]],
    ) -> tuple[T] | None:
        for alt in self.alternates.get(failed, ()):
            if alt == failed or alt not in self.providers:
                continue
            if not self.state.is_usable(alt):
                continue

            logger.info("Falling back from %s to %s", failed.value, alt.value)
            try:
                result = await operation(self.providers[alt])
            except RateLimited:
                self.state.record_rate_limit(alt)
                continue
            except WebExtractError:
                logger.debug("Fallback provider %s failed", alt.value, exc_info=True)
                self.state.record_error(alt)
                continue

            self.state.record_success(alt)
            return (result,)
        return None
