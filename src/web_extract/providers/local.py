"""Local provider: fetch pages ourselves and normalize them in-process."""

import asyncio
import logging
import random

import httpx

from web_extract.config import ProviderName, RequestOptions
from web_extract.discovery.links import extract_links
from web_extract.errors import FetchFailure
from web_extract.models import FetchResult, PageResult
from web_extract.providers.base import BaseProvider, Discovery
from web_extract.utils.url_utils import validate_url

logger = logging.getLogger(__name__)

_MAX_RETRY_DELAY = 10.0  # Never sleep longer than this on a single retry


class LocalProvider(BaseProvider):
    """Plain HTTP fetch plus readability extraction. Needs no credentials."""

    name = ProviderName.LOCAL

    def is_available(self) -> bool:
        return True

    async def fetch(self, url: str) -> FetchResult:
        """Fetch a page via HTTP."""
        try:
            response = await self.client.get(
                url, headers={"User-Agent": self.config.fetcher.user_agent}
            )
            return FetchResult(
                url=url,
                final_url=str(response.url),
                html=response.text,
                status_code=response.status_code,
            )
        except httpx.HTTPError as e:
            return FetchResult(
                url=url,
                final_url=url,
                html="",
                status_code=0,
                error=str(e) or e.__class__.__name__,
            )

    async def fetch_with_retry(self, url: str) -> FetchResult:
        """Fetch with exponential backoff on server and connection errors."""
        max_retries = self.config.fetcher.max_retries
        base_delay = self.config.fetcher.retry_base_delay
        result = await self.fetch(url)
        for attempt in range(1, max_retries + 1):
            if result.success or not self._is_retryable(result):
                break
            delay = base_delay * (2 ** (attempt - 1)) + random.uniform(0, 0.25)
            delay = min(delay, _MAX_RETRY_DELAY)
            logger.debug("Retrying %s in %.2fs (status %s)", url, delay, result.status_code)
            await asyncio.sleep(delay)
            result = await self.fetch(url)
            result.attempts = attempt + 1
        return result

    @staticmethod
    def _is_retryable(result: FetchResult) -> bool:
        """Server errors and connection failures are retried; 429 never is."""
        if result.status_code >= 500:
            return True
        return result.status_code == 0 and bool(result.error)

    async def fetch_page(self, url: str) -> FetchResult:
        """Fetch ``url`` and raise unless it returned a usable response.

        A 429 from the target site fails like any other error status.
        """
        validate_url(url)
        result = await self.fetch_with_retry(url)

        if result.error:
            raise FetchFailure(
                f"Failed to fetch {url}: {result.error}", provider=self.name
            )
        if not result.success:
            raise FetchFailure(
                f"HTTP error! status: {result.status_code} for {url}",
                http_status_code=result.status_code,
                provider=self.name,
            )
        return result

    def _to_page(self, result: FetchResult, options: RequestOptions) -> PageResult:
        normalized = self.normalizer.normalize(result.html, result.url, options)
        normalized.metadata.status_code = result.status_code
        return normalized.to_page(result.url, self.name)

    async def fetch_one(self, url: str, options: RequestOptions) -> PageResult:
        result = await self.fetch_page(url)
        return self._to_page(result, options)

    async def discover(
        self, url: str, options: RequestOptions, scope_url: str | None = None
    ) -> Discovery:
        result = await self.fetch_page(url)
        page = self._to_page(result, options)
        links: list[str] = []
        if options.wants_subpages:
            # Relative links resolve against the post-redirect URL; the host
            # filter stays on the crawl root.
            links = extract_links(
                result.html,
                result.final_url,
                options.same_domain_only,
                scope_url=scope_url or url,
            )
        return Discovery(page, links, result.final_url)
