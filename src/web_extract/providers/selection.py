"""Provider selection policy."""

from web_extract.config import ProviderName, RequestOptions
from web_extract.providers.state import ProviderStateTracker

# Local first (no credentials, no quota), then the remote services.
PRIORITY_ORDER: tuple[ProviderName, ...] = (
    ProviderName.LOCAL,
    ProviderName.EXA,
    ProviderName.FIRECRAWL,
)

# Backend with the most faithful native HTML output.
HTML_PREFERRED = ProviderName.FIRECRAWL


class SelectionPolicy:
    """Choose the provider that should serve a request."""

    def __init__(
        self,
        state: ProviderStateTracker,
        priority: tuple[ProviderName, ...] = PRIORITY_ORDER,
    ):
        self.state = state
        self.priority = priority

    def usable_providers(self) -> list[ProviderName]:
        """Providers that are available and not rate-limited."""
        return [p for p in self.state.providers if self.state.is_usable(p)]

    def select(
        self,
        preferred: ProviderName | None = None,
        fallback: bool = True,
        options: RequestOptions | None = None,
    ) -> ProviderName | None:
        """Return the provider to use, or None if nothing suitable is usable.

        A preferred provider that is unusable yields None when fallback is
        disabled; it is never silently substituted.
        """
        usable = self.usable_providers()
        if not usable:
            return None

        if options is not None and options.html and preferred is None:
            if HTML_PREFERRED in usable:
                return HTML_PREFERRED

        if preferred is not None:
            if preferred in usable:
                return preferred
            if not fallback:
                return None

        for provider in self.priority:
            if provider in usable:
                return provider

        return min(usable, key=self._rank)

    def _rank(self, provider: ProviderName) -> tuple[bool, float, int]:
        snap = self.state.snapshot(provider)
        last = snap.last_success
        # Most recent success first, then fewest errors.
        return (last is None, -last.timestamp() if last else 0.0, snap.rate_limit.errors)
