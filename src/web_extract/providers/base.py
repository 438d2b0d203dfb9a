"""Base classes for content-acquisition providers."""

import asyncio
import re
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, ClassVar, NamedTuple

import httpx

from web_extract.config import AppConfig, ProviderName, RequestOptions
from web_extract.errors import FetchFailure, RateLimited, WebExtractError
from web_extract.models import BatchResult, BatchStatus, PageResult
from web_extract.normalizer import ContentNormalizer


class Discovery(NamedTuple):
    """A crawl root or child together with its candidate subpage links."""

    page: PageResult
    links: list[str]
    final_url: str  # Where the fetch landed after redirects


class BaseProvider(ABC):
    """One interchangeable content-acquisition backend.

    Every adapter can fetch one URL or many and reports whether it can run
    at all. Crawling is layered on top: adapters with ``native_subpages``
    return an already nested tree from ``crawl_one``/``crawl_many``; the rest
    expose ``discover`` and let the crawl engine recurse.
    """

    name: ClassVar[ProviderName]
    native_subpages: ClassVar[bool] = False

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: AppConfig,
        normalizer: ContentNormalizer,
    ):
        self.client = client
        self.config = config
        self.normalizer = normalizer

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the backend is configured to run (no network check)."""

    @abstractmethod
    async def fetch_one(self, url: str, options: RequestOptions) -> PageResult:
        """Fetch and normalize a single URL."""

    async def fetch_many(self, urls: list[str], options: RequestOptions) -> BatchResult:
        """Fetch several URLs, isolating per-URL failures in ``statuses``."""
        return await run_batch(
            urls,
            lambda url: self.fetch_one(url, options),
            self.batch_concurrency(options),
        )

    async def discover(
        self, url: str, options: RequestOptions, scope_url: str | None = None
    ) -> Discovery:
        """Fetch a page and return it with its candidate subpage links.

        With ``same_domain_only`` the links are limited to the host of
        ``scope_url`` (the crawl root), defaulting to ``url``.
        """
        raise NotImplementedError(f"{self.name.value} does not support link discovery")

    async def crawl_one(self, url: str, options: RequestOptions) -> PageResult:
        """Native recursive crawl. Only for providers with ``native_subpages``."""
        raise NotImplementedError(f"{self.name.value} has no native subpage discovery")

    async def crawl_many(self, urls: list[str], options: RequestOptions) -> BatchResult:
        """Native batch crawl. Only for providers with ``native_subpages``."""
        raise NotImplementedError(f"{self.name.value} has no native subpage discovery")

    def batch_concurrency(self, options: RequestOptions) -> int:
        """How many URLs of a batch may be in flight at once."""
        return options.concurrency


class RemoteProvider(BaseProvider):
    """Provider backed by a hosted extraction API."""

    rate_limit_pattern: ClassVar[re.Pattern[str]]
    display_name: ClassVar[str]

    def is_rate_limit(self, message: str, status_code: int | None) -> bool:
        """Map this backend's rejection conventions onto a single flag."""
        return status_code == 429 or bool(self.rate_limit_pattern.search(message))

    def classify_error(self, message: str, status_code: int | None = None) -> WebExtractError:
        if self.is_rate_limit(message, status_code):
            return RateLimited(
                f"{self.display_name} rate limit: {message}",
                http_status_code=status_code,
                provider=self.name,
            )
        return FetchFailure(message, http_status_code=status_code, provider=self.name)

    async def post_json(
        self, endpoint: str, payload: dict[str, Any], headers: dict[str, str]
    ) -> dict[str, Any]:
        """POST ``payload`` and return the decoded JSON body.

        Transport errors and error statuses are classified into RateLimited
        or FetchFailure; no httpx exception escapes.
        """
        try:
            response = await self.client.post(endpoint, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise self.classify_error(f"{self.display_name} request failed: {e!r}") from e

        if response.status_code >= 400:
            raise self.classify_error(
                f"{self.display_name} error {response.status_code}: {response.text[:500]}",
                response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise FetchFailure(
                f"{self.display_name} returned invalid JSON",
                http_status_code=response.status_code,
                provider=self.name,
            ) from e
        if not isinstance(data, dict):
            raise FetchFailure(
                f"{self.display_name} returned unexpected payload", provider=self.name
            )
        return data


async def run_batch(
    urls: list[str],
    fetch: Callable[[str], Awaitable[PageResult]],
    concurrency: int,
) -> BatchResult:
    """Run ``fetch`` for every URL with bounded concurrency.

    Per-URL failures become error statuses. A rate-limit rejection is not
    contained: it escalates to the whole batch so the caller can fall back.
    """
    semaphore = asyncio.Semaphore(max(concurrency, 1))

    async def _one(url: str) -> PageResult:
        async with semaphore:
            return await fetch(url)

    outcomes = await asyncio.gather(*(_one(url) for url in urls), return_exceptions=True)

    for outcome in outcomes:
        if isinstance(outcome, RateLimited):
            raise outcome

    batch = BatchResult()
    for url, outcome in zip(urls, outcomes):
        if isinstance(outcome, WebExtractError):
            batch.statuses.append(BatchStatus.failed(url, outcome))
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            batch.results.append(outcome)
            batch.statuses.append(BatchStatus.ok(url))
    return batch
