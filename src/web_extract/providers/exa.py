"""Exa provider: hosted content extraction with native subpage discovery."""

import re
from typing import Any

from web_extract.config import LiveCrawl, ProviderName, RequestOptions
from web_extract.errors import FetchFailure
from web_extract.models import BatchResult, BatchStatus, PageMetadata, PageResult, StatusError
from web_extract.providers.base import RemoteProvider
from web_extract.utils.url_utils import validate_url

# Fields of an Exa result that are mapped explicitly; everything else is
# passed through into metadata.
_MAPPED_FIELDS = frozenset({
    "url", "text", "html", "title", "summary", "author",
    "publishedDate", "image", "favicon", "subpages",
})


class ExaProvider(RemoteProvider):
    """Adapter for the Exa ``/contents`` endpoint."""

    name = ProviderName.EXA
    native_subpages = True
    display_name = "Exa"
    rate_limit_pattern = re.compile(r"rate limit|429|quota|limit", re.IGNORECASE)

    @property
    def api_key(self) -> str | None:
        return self.config.credentials.exa_api_key

    def is_available(self) -> bool:
        return bool(self.api_key)

    def build_payload(
        self, urls: list[str], options: RequestOptions, *, crawl: bool = False
    ) -> dict[str, Any]:
        """Translate request options into an Exa contents request."""
        payload: dict[str, Any] = {
            "urls": urls,
            "livecrawl": (options.livecrawl or LiveCrawl.FALLBACK).value,
        }

        # Text is always requested: it backs ``text`` even when markdown is off.
        if options.max_chars or options.html:
            text: dict[str, Any] = {"includeHtmlTags": options.html}
            if options.max_chars:
                text["maxCharacters"] = options.max_chars
            payload["text"] = text
        else:
            payload["text"] = True

        if crawl and options.max_subpages > 0:
            payload["subpages"] = options.max_subpages
            if options.subpage_target:
                target = options.subpage_target
                payload["subpageTarget"] = (
                    ",".join(target) if isinstance(target, list) else target
                )

        return payload

    async def get_contents(
        self, urls: list[str], options: RequestOptions, *, crawl: bool = False
    ) -> dict[str, Any]:
        if not self.api_key:
            raise FetchFailure("Exa not available: EXA_API_KEY not set", provider=self.name)
        return await self.post_json(
            f"{self.config.exa_base_url.rstrip('/')}/contents",
            self.build_payload(urls, options, crawl=crawl),
            {"x-api-key": self.api_key, "Content-Type": "application/json"},
        )

    def to_page(
        self,
        result: dict[str, Any],
        url: str,
        options: RequestOptions,
        depth: int | None = None,
    ) -> PageResult:
        """Normalize one Exa result, recursing into native subpages.

        A result with no text raises ``FetchFailure`` tagged ``EMPTY_CONTENT``
        rather than producing a page with empty ``text``.
        """
        page_url = result.get("url") or url
        fields = {k: v for k, v in result.items() if k not in _MAPPED_FIELDS}
        fields.update(
            title=result.get("title") or None,
            description=result.get("summary"),
            author=result.get("author"),
            publishedDate=result.get("publishedDate"),
            image=result.get("image"),
            favicon=result.get("favicon"),
            sourceURL=page_url,
        )
        metadata = PageMetadata(**fields)

        normalized = self.normalizer.normalize_provider_content(
            result.get("text") or "",
            options,
            html=result.get("html") or None,
            metadata=metadata,
        )
        if not normalized.text:
            raise FetchFailure(
                f"Exa returned empty content for: {page_url}",
                provider=self.name,
                tag="EMPTY_CONTENT",
            )
        page = normalized.to_page(page_url, self.name, depth)

        if depth is not None and depth < options.max_depth:
            children = []
            for sub in (result.get("subpages") or [])[: options.max_subpages]:
                try:
                    children.append(self.to_page(sub, page_url, options, depth + 1))
                except FetchFailure:
                    continue
            if children:
                page.subpages = children
        return page

    def _statuses(
        self, urls: list[str], raw: list[dict[str, Any]] | None, produced: set[str]
    ) -> list[BatchStatus]:
        """Align Exa's statuses with the requested URLs by position."""
        by_id = {s.get("id"): s for s in raw or [] if isinstance(s, dict)}
        statuses = []
        for url in urls:
            entry = by_id.get(url)
            if entry is None:
                if url in produced:
                    statuses.append(BatchStatus.ok(url))
                else:
                    statuses.append(
                        BatchStatus(id=url, status="error", error=StatusError(tag="UNKNOWN_ERROR"))
                    )
                continue
            if entry.get("status") == "success" and url in produced:
                statuses.append(BatchStatus.ok(url))
                continue
            error = entry.get("error") or {}
            statuses.append(
                BatchStatus(
                    id=url,
                    status="error",
                    error=StatusError(
                        tag=error.get("tag") or "UNKNOWN_ERROR",
                        http_status_code=error.get("httpStatusCode"),
                    ),
                )
            )
        return statuses

    async def _batch(
        self, urls: list[str], options: RequestOptions, *, crawl: bool
    ) -> BatchResult:
        if not urls:
            return BatchResult()
        data = await self.get_contents(urls, options, crawl=crawl)

        results: list[PageResult] = []
        produced: set[str] = set()
        for raw in data.get("results") or []:
            try:
                page = self.to_page(raw, raw.get("url") or "", options, 0 if crawl else None)
            except FetchFailure:
                continue
            results.append(page)
            produced.add(raw.get("id") or page.url)
            produced.add(page.url)

        return BatchResult(
            results=results,
            statuses=self._statuses(urls, data.get("statuses"), produced),
        )

    async def fetch_one(self, url: str, options: RequestOptions) -> PageResult:
        validate_url(url)
        return await self._single(url, options, crawl=False)

    async def fetch_many(self, urls: list[str], options: RequestOptions) -> BatchResult:
        return await self._batch(urls, options, crawl=False)

    async def crawl_one(self, url: str, options: RequestOptions) -> PageResult:
        validate_url(url)
        return await self._single(url, options, crawl=True)

    async def crawl_many(self, urls: list[str], options: RequestOptions) -> BatchResult:
        return await self._batch(urls, options, crawl=True)

    async def _single(self, url: str, options: RequestOptions, *, crawl: bool) -> PageResult:
        data = await self.get_contents([url], options, crawl=crawl)
        results = data.get("results") or []
        if not results:
            error = next(iter(data.get("statuses") or []), {}).get("error") or {}
            raise FetchFailure(
                f"No results from Exa for: {url}",
                http_status_code=error.get("httpStatusCode"),
                provider=self.name,
            )
        return self.to_page(results[0], url, options, 0 if crawl else None)
