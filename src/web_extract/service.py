"""Public entry point: provider selection, fallback and crawling wired together."""

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from web_extract.config import AppConfig, ProviderName, RequestOptions
from web_extract.crawl.engine import CrawlEngine
from web_extract.errors import InvalidURL, NoProviderAvailable, ProviderUnavailable
from web_extract.models import BatchResult, BatchStatus, PageResult
from web_extract.normalizer import ContentNormalizer
from web_extract.providers import (
    BaseProvider,
    FallbackOrchestrator,
    LocalProvider,
    ProviderStateTracker,
    SelectionPolicy,
    build_providers,
)
from web_extract.utils.url_utils import validate_url

logger = logging.getLogger(__name__)

OptionsLike = RequestOptions | Mapping[str, Any] | None


class WebExtractor:
    """Fetch and crawl web pages through whichever provider is usable.

    Usage::

        async with WebExtractor() as extractor:
            page = await extractor.fetch_single("https://example.com")

    One instance owns one provider state tracker, so rate-limit cooldowns
    and success history are shared by every request made through it.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        state: ProviderStateTracker | None = None,
        client: httpx.AsyncClient | None = None,
        providers: Mapping[ProviderName, BaseProvider] | None = None,
    ):
        self.config = config or AppConfig()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            headers={"User-Agent": self.config.fetcher.user_agent},
            follow_redirects=True,
            timeout=self.config.fetcher.timeout_ms / 1000,
        )
        self.normalizer = ContentNormalizer(self.config.extractor)

        if providers is None:
            providers = build_providers(self.config, self.client, self.normalizer)
        self.providers = dict(providers)

        self.state = state or ProviderStateTracker(
            self.config.rate_limit_cooldown_seconds, providers=self.providers
        )
        self.selection = SelectionPolicy(self.state)
        self.orchestrator = FallbackOrchestrator(self.providers, self.state)

        local = self.providers.get(ProviderName.LOCAL)
        if not isinstance(local, LocalProvider):
            local = LocalProvider(self.client, self.config, self.normalizer)
        self.engine = CrawlEngine(local)

        self.refresh_availability()

    async def __aenter__(self) -> "WebExtractor":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self.client.aclose()

    def refresh_availability(self) -> None:
        """Re-read each provider's configuration into the state tracker."""
        for name, provider in self.providers.items():
            self.state.set_available(name, provider.is_available())

    def list_available_providers(self) -> set[ProviderName]:
        """Providers that are configured and not currently rate-limited."""
        self.refresh_availability()
        return set(self.selection.usable_providers())

    async def fetch_single(self, url: str, options: OptionsLike = None) -> PageResult:
        """Fetch and normalize one page."""
        opts = self._coerce_options(options)
        validate_url(url)
        provider = self._choose(opts)
        return await self.orchestrator.run(
            provider,
            lambda p: p.fetch_one(url, opts),
            fallback=opts.fallback,
        )

    async def fetch_batch(self, urls: list[str], options: OptionsLike = None) -> BatchResult:
        """Fetch several pages. ``statuses`` has one entry per input URL, in order."""
        opts = self._coerce_options(options)
        if not urls:
            return BatchResult()
        return await self._run_batch(
            urls, opts, lambda p, valid: p.fetch_many(valid, opts)
        )

    async def crawl_single(self, url: str, options: OptionsLike = None) -> PageResult:
        """Fetch a page and, within the request's budget, its linked subpages."""
        opts = self._coerce_options(options)
        validate_url(url)
        provider = self._choose(opts)
        return await self.orchestrator.run(
            provider,
            lambda p: self.engine.crawl(p, url, opts),
            fallback=opts.fallback,
        )

    async def crawl_batch(self, urls: list[str], options: OptionsLike = None) -> BatchResult:
        """Crawl several roots; each root gets its own budget and visited set."""
        opts = self._coerce_options(options)
        if not urls:
            return BatchResult()
        return await self._run_batch(
            urls, opts, lambda p, valid: self.engine.crawl_many(p, valid, opts)
        )

    async def _run_batch(self, urls, opts: RequestOptions, call) -> BatchResult:
        invalid: dict[int, InvalidURL] = {}
        valid: list[str] = []
        for i, url in enumerate(urls):
            try:
                validate_url(url)
            except InvalidURL as exc:
                invalid[i] = exc
            else:
                valid.append(url)

        batch = BatchResult()
        if valid:
            provider = self._choose(opts)
            batch = await self.orchestrator.run(
                provider, lambda p: call(p, valid), fallback=opts.fallback
            )
        if not invalid:
            return batch

        # Splice the rejected URLs back in at their original positions.
        statuses = iter(batch.statuses)
        merged = []
        for i, url in enumerate(urls):
            if i in invalid:
                merged.append(BatchStatus.failed(url, invalid[i]))
            else:
                merged.append(next(statuses))
        return BatchResult(results=batch.results, statuses=merged)

    def _choose(self, opts: RequestOptions) -> ProviderName:
        provider = self.selection.select(opts.provider, opts.fallback, opts)
        if provider is not None:
            logger.info("Selected provider %s", provider.value)
            return provider

        if opts.provider is not None and not opts.fallback:
            raise ProviderUnavailable(
                f"Provider {opts.provider.value} is not available and fallback is disabled",
                provider=opts.provider,
            )
        raise NoProviderAvailable("No content provider is currently available")

    @staticmethod
    def _coerce_options(options: OptionsLike) -> RequestOptions:
        if options is None:
            return RequestOptions()
        if isinstance(options, RequestOptions):
            return options
        return RequestOptions.model_validate(dict(options))
