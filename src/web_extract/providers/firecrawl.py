"""Firecrawl provider: hosted scraping with a server-side page cache."""

import re
from typing import Any
from urllib.parse import urldefrag

from web_extract.config import ProviderName, RequestOptions
from web_extract.errors import FetchFailure
from web_extract.models import PageMetadata, PageResult
from web_extract.providers.base import Discovery, RemoteProvider
from web_extract.utils.url_utils import is_same_domain, is_web_url, validate_url


class FirecrawlProvider(RemoteProvider):
    """Adapter for the Firecrawl ``/v1/scrape`` endpoint.

    Firecrawl has no recursive discovery of its own here: when subpages are
    requested it returns the page's links and the crawl engine fetches them
    with the local provider.
    """

    name = ProviderName.FIRECRAWL
    display_name = "Firecrawl"
    rate_limit_pattern = re.compile(r"rate limit|429|quota|limit|RateLimitError", re.IGNORECASE)

    @property
    def api_key(self) -> str | None:
        return self.config.credentials.firecrawl_api_key

    def is_available(self) -> bool:
        return bool(self.api_key)

    def batch_concurrency(self, options: RequestOptions) -> int:
        # Scrapes run one at a time.
        return 1

    def build_payload(
        self, url: str, options: RequestOptions, *, with_links: bool = False
    ) -> dict[str, Any]:
        """Translate request options into a Firecrawl scrape request."""
        formats: list[str] = []
        if options.markdown:
            formats.append("markdown")
        if options.html:
            formats.append("html")
        if not formats:
            formats.append("markdown")
        if with_links:
            formats.append("links")

        payload: dict[str, Any] = {"url": url, "formats": formats}
        if options.max_age is not None:
            payload["maxAge"] = options.max_age
            if options.max_age == 0:
                payload["storeInCache"] = False
        return payload

    async def scrape(
        self, url: str, options: RequestOptions, *, with_links: bool = False
    ) -> dict[str, Any]:
        """Call the scrape endpoint and return the ``data`` document."""
        if not self.api_key:
            raise FetchFailure(
                "Firecrawl not available: FIRECRAWL_API_KEY not set", provider=self.name
            )
        validate_url(url)

        response = await self.post_json(
            f"{self.config.firecrawl_base_url.rstrip('/')}/v1/scrape",
            self.build_payload(url, options, with_links=with_links),
            {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
        )
        if response.get("success") is False:
            raise self.classify_error(
                str(response.get("error") or f"Firecrawl scrape failed for: {url}")
            )

        data = response.get("data")
        if not isinstance(data, dict):
            # Older responses put the document at the top level.
            data = {k: response.get(k) for k in ("markdown", "html", "links", "metadata")}
        return data

    def to_page(self, data: dict[str, Any], url: str, options: RequestOptions) -> PageResult:
        """Normalize one scrape payload.

        A target status of 400 or above raises ``FetchFailure``. A payload with
        no content raises ``FetchFailure`` tagged ``EMPTY_CONTENT`` rather than
        producing a page with empty ``text``.
        """
        raw_meta = data.get("metadata") or {}
        page_url = raw_meta.get("sourceURL") or url

        fields = dict(raw_meta)
        fields.update(
            title=_first_text(raw_meta.get("title")),
            description=_first_text(raw_meta.get("description")),
            language=_first_text(raw_meta.get("language")),
            keywords=raw_meta.get("keywords"),
            author=_first_text(raw_meta.get("author")),
            publishedDate=_first_text(raw_meta.get("publishedDate")),
            image=_first_text(raw_meta.get("ogImage")),
            favicon=_first_text(raw_meta.get("favicon")),
            statusCode=raw_meta.get("statusCode"),
            sourceURL=page_url,
        )
        metadata = PageMetadata(**fields)

        status = metadata.status_code
        if status is not None and status >= 400:
            raise FetchFailure(
                f"HTTP error! status: {status} for {url}",
                http_status_code=status,
                provider=self.name,
            )

        markdown = data.get("markdown") or None
        html = data.get("html") or None
        if markdown:
            normalized = self.normalizer.normalize_provider_content(
                markdown, options, html=html, metadata=metadata, content_is_html=False
            )
        else:
            normalized = self.normalizer.normalize_provider_content(
                html or "", options, html=html, metadata=metadata, content_is_html=True
            )

        if not normalized.text:
            raise FetchFailure(
                f"Firecrawl returned empty content for: {url}",
                http_status_code=status,
                provider=self.name,
                tag="EMPTY_CONTENT",
            )
        return normalized.to_page(page_url, self.name)

    async def fetch_one(self, url: str, options: RequestOptions) -> PageResult:
        data = await self.scrape(url, options)
        return self.to_page(data, url, options)

    async def discover(
        self, url: str, options: RequestOptions, scope_url: str | None = None
    ) -> Discovery:
        data = await self.scrape(url, options, with_links=options.wants_subpages)
        page = self.to_page(data, url, options)
        links = self._candidate_links(data.get("links") or [], scope_url or url, options)
        return Discovery(page, links, page.url)

    @staticmethod
    def _candidate_links(raw: list[Any], scope_url: str, options: RequestOptions) -> list[str]:
        links: list[str] = []
        for link in raw:
            if not isinstance(link, str) or not is_web_url(link):
                continue
            link = urldefrag(link).url
            if options.same_domain_only and not is_same_domain(link, scope_url):
                continue
            if link not in links:
                links.append(link)
        return links


def _first_text(value: Any) -> str | None:
    """Firecrawl reports repeated meta tags as lists; keep the first value."""
    if isinstance(value, list):
        value = next((v for v in value if v), None)
    return str(value) if value else None
