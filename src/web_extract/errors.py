"""Error taxonomy shared by every provider and operation."""

from web_extract.config import ProviderName


class WebExtractError(Exception):
    """Base class for all extraction errors.

    Carries a stable ``tag`` and, where known, the HTTP status code so callers
    can tell a retryable rejection from a permanent failure.
    """

    tag = "UNKNOWN_ERROR"

    def __init__(
        self,
        message: str,
        *,
        http_status_code: int | None = None,
        provider: ProviderName | None = None,
        tag: str | None = None,
    ):
        super().__init__(message)
        self.http_status_code = http_status_code
        self.provider = provider
        if tag:
            self.tag = tag


class NoProviderAvailable(WebExtractError):
    """No backend is usable at all."""

    tag = "NO_PROVIDER_AVAILABLE"


class ProviderUnavailable(WebExtractError):
    """A specific provider was requested with fallback disabled and is not usable."""

    tag = "PROVIDER_UNAVAILABLE"


class RateLimited(WebExtractError):
    """A provider rejected the request for capacity or quota reasons."""

    tag = "RATE_LIMITED"


class ParseFailure(WebExtractError):
    """Readable content could not be extracted from a page."""

    tag = "PARSE_ERROR"


class FetchFailure(WebExtractError):
    """Network or HTTP-level failure for a single page."""

    tag = "CRAWL_ERROR"


class InvalidURL(WebExtractError):
    """The URL is not an absolute http(s) URL."""

    tag = "INVALID_URL"
