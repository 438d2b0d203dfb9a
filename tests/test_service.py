"""End-to-end tests for WebExtractor with all network traffic mocked."""

import json

import httpx
import pytest

from tests.conftest import ARTICLE_HTML, html_routes, mock_client, page_html
from web_extract.config import ProviderName, RequestOptions
from web_extract.errors import (
    FetchFailure,
    InvalidURL,
    NoProviderAvailable,
    ProviderUnavailable,
    RateLimited,
)
from web_extract.models import to_wire
from web_extract.providers.state import ProviderStateTracker
from web_extract.service import WebExtractor
from web_extract.utils.url_utils import get_host

EXA = ProviderName.EXA
FIRECRAWL = ProviderName.FIRECRAWL
LOCAL = ProviderName.LOCAL


def exa_results(request):
    urls = json.loads(request.content)["urls"]
    return httpx.Response(
        200,
        json={
            "results": [
                {"id": url, "url": url, "title": "From Exa", "text": f"Exa text for {url}"}
                for url in urls
            ],
            "statuses": [{"id": url, "status": "success"} for url in urls],
        },
    )


def firecrawl_result(request):
    url = json.loads(request.content)["url"]
    return httpx.Response(
        200,
        json={
            "success": True,
            "data": {
                "markdown": f"Firecrawl markdown for {url}",
                "html": "<p>Firecrawl html</p>",
                "metadata": {"sourceURL": url, "statusCode": 200},
            },
        },
    )


def routed(site=None, *, exa=exa_results, firecrawl=firecrawl_result):
    """Answer remote API calls with ``exa``/``firecrawl`` and pages from ``site``."""
    pages = html_routes(site or {})

    def handler(request):
        if request.url.host == "api.exa.ai":
            return exa(request)
        if request.url.host == "api.firecrawl.dev":
            return firecrawl(request)
        return pages(request)

    return handler


def too_many(request):
    return httpx.Response(429, json={"error": "rate limit exceeded"})


@pytest.mark.unit
@pytest.mark.asyncio
class TestFetchSingle:
    async def test_only_local_available(self, config):
        extractor = WebExtractor(
            config, client=mock_client(html_routes({"https://example.com": ARTICLE_HTML}))
        )

        page = await extractor.fetch_single("https://example.com", {})

        assert page.provider == LOCAL
        assert page.text
        assert page.markdown is not None

    async def test_preferred_without_credentials_and_no_fallback(self, config):
        extractor = WebExtractor(config, client=mock_client(html_routes({})))

        with pytest.raises(ProviderUnavailable) as exc_info:
            await extractor.fetch_single(
                "https://example.com", {"provider": "exa", "fallback": False}
            )

        assert exc_info.value.tag == "PROVIDER_UNAVAILABLE"

    async def test_preferred_provider_used(self, keyed_config):
        extractor = WebExtractor(keyed_config, client=mock_client(routed()))

        page = await extractor.fetch_single("https://example.com", RequestOptions(provider=EXA))

        assert page.provider == EXA
        assert page.text == "Exa text for https://example.com"

    async def test_html_request_prefers_firecrawl(self, keyed_config):
        extractor = WebExtractor(keyed_config, client=mock_client(routed()))

        page = await extractor.fetch_single("https://example.com", {"html": True})

        assert page.provider == FIRECRAWL
        assert page.html == "<p>Firecrawl html</p>"

    async def test_rate_limited_exa_falls_back_to_firecrawl(self, keyed_config):
        extractor = WebExtractor(keyed_config, client=mock_client(routed(exa=too_many)))

        page = await extractor.fetch_single("https://example.com", {"provider": "exa"})

        assert page.provider == FIRECRAWL
        assert extractor.state.is_rate_limited(EXA)
        assert not extractor.state.is_rate_limited(FIRECRAWL)

    async def test_throttled_site_leaves_local_usable(self, config):
        pages = html_routes({"https://unrelated.example/": ARTICLE_HTML})

        def handler(request):
            if request.url.host == "throttled.example":
                return httpx.Response(429)
            return pages(request)

        extractor = WebExtractor(config, client=mock_client(handler))

        with pytest.raises(FetchFailure) as exc_info:
            await extractor.fetch_single("https://throttled.example/")
        page = await extractor.fetch_single("https://unrelated.example/")

        assert exc_info.value.http_status_code == 429
        assert page.provider == LOCAL
        assert not extractor.state.is_rate_limited(LOCAL)
        assert extractor.list_available_providers() == {LOCAL}

    async def test_invalid_url_not_charged_to_provider(self, config):
        extractor = WebExtractor(config, client=mock_client(html_routes({})))

        with pytest.raises(InvalidURL):
            await extractor.fetch_single("ftp://example.com/file")

        assert extractor.state.snapshot(LOCAL).rate_limit.errors == 0

    async def test_nothing_usable(self, config):
        extractor = WebExtractor(config, client=mock_client(html_routes({})))
        extractor.state.record_rate_limit(LOCAL)

        with pytest.raises(NoProviderAvailable):
            await extractor.fetch_single("https://example.com")

    async def test_all_alternates_fail(self, keyed_config):
        extractor = WebExtractor(keyed_config, client=mock_client(too_many))

        with pytest.raises(RateLimited) as exc_info:
            await extractor.fetch_single("https://example.com", {"provider": "exa"})

        assert exc_info.value.provider == EXA
        assert extractor.state.is_rate_limited(EXA)
        assert extractor.state.is_rate_limited(FIRECRAWL)
        # The local fetch got a plain 429 from the site, which is not a rate limit.
        assert not extractor.state.is_rate_limited(LOCAL)


@pytest.mark.unit
@pytest.mark.asyncio
class TestFetchBatch:
    async def test_empty_batch(self, config):
        extractor = WebExtractor(config, client=mock_client(html_routes({})))

        batch = await extractor.fetch_batch([], {})

        assert to_wire(batch) == {"results": [], "statuses": []}

    async def test_empty_batch_needs_no_provider(self, config):
        extractor = WebExtractor(config, client=mock_client(html_routes({})))
        extractor.state.record_rate_limit(LOCAL)

        batch = await extractor.fetch_batch([])

        assert batch.results == []

    async def test_invalid_urls_keep_their_position(self, config):
        good = "https://example.com/good"
        extractor = WebExtractor(
            config, client=mock_client(html_routes({good: page_html("Good", "Good.")}))
        )

        batch = await extractor.fetch_batch(["not a url", good, "https://example.com/gone"])

        assert [s.id for s in batch.statuses] == [
            "not a url",
            good,
            "https://example.com/gone",
        ]
        assert batch.statuses[0].error.tag == "INVALID_URL"
        assert batch.statuses[1].status == "success"
        assert batch.statuses[2].error.http_status_code == 404
        assert [p.url for p in batch.results] == [good]

    async def test_rate_limit_escalates_whole_batch(self, keyed_config):
        extractor = WebExtractor(keyed_config, client=mock_client(routed(exa=too_many)))

        with pytest.raises(RateLimited):
            await extractor.fetch_batch(
                ["https://example.com/ok", "https://example.com/other"],
                {"provider": "exa", "fallback": False},
            )

    async def test_batch_falls_back_as_a_whole(self, keyed_config):
        extractor = WebExtractor(keyed_config, client=mock_client(routed(exa=too_many)))

        batch = await extractor.fetch_batch(
            ["https://example.com/ok", "https://example.com/other"], {"provider": "exa"}
        )

        assert {p.provider for p in batch.results} == {FIRECRAWL}
        assert [s.status for s in batch.statuses] == ["success", "success"]

    async def test_throttled_site_fails_only_its_entry(self, config):
        def handler(request):
            if request.url.path == "/limited":
                return httpx.Response(429)
            return httpx.Response(200, text=page_html("Ok", "Fine."))

        extractor = WebExtractor(config, client=mock_client(handler))
        urls = [f"https://site{i}.example/" for i in range(5)]

        batch = await extractor.fetch_batch(urls + ["https://example.com/limited"])

        assert [s.status for s in batch.statuses] == ["success"] * 5 + ["error"]
        assert batch.statuses[-1].error.http_status_code == 429
        assert [p.url for p in batch.results] == urls
        assert not extractor.state.is_rate_limited(LOCAL)


@pytest.mark.unit
@pytest.mark.asyncio
class TestCrawl:
    SITE = {
        "https://example.com": page_html(
            "Home", "Home.", ["/a", "/b", "https://other.org/x"]
        ),
        "https://example.com/a": page_html("A", "A.", ["/a1", "https://other.org/y"]),
        "https://example.com/b": page_html("B", "B."),
        "https://example.com/a1": page_html("A1", "A1."),
    }

    async def test_subpages_stay_on_host(self, config):
        extractor = WebExtractor(config, client=mock_client(html_routes(self.SITE)))

        page = await extractor.crawl_single(
            "https://example.com",
            {"maxSubpages": 2, "maxDepth": 2, "sameDomainOnly": True},
        )

        assert page.subpages
        for sub in page.iter_tree():
            assert get_host(sub.url) == "example.com"
            for child in sub.subpages or []:
                assert child.depth == sub.depth + 1
                assert child.depth <= 2

    async def test_zero_subpages(self, config):
        extractor = WebExtractor(config, client=mock_client(html_routes(self.SITE)))

        page = await extractor.crawl_single("https://example.com", {"maxSubpages": 0})

        assert "subpages" not in to_wire(page)

    async def test_firecrawl_root_local_children(self, keyed_config):
        def firecrawl(request):
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "data": {
                        "markdown": "Root markdown",
                        "links": ["https://example.com/a", "https://example.com/b"],
                        "metadata": {"sourceURL": "https://example.com", "statusCode": 200},
                    },
                },
            )

        extractor = WebExtractor(
            keyed_config, client=mock_client(routed(self.SITE, firecrawl=firecrawl))
        )

        page = await extractor.crawl_single(
            "https://example.com", {"provider": "firecrawl", "maxSubpages": 2}
        )

        assert page.provider == FIRECRAWL
        assert [p.provider for p in page.subpages] == [LOCAL, LOCAL]
        assert [p.url for p in page.subpages] == [
            "https://example.com/a",
            "https://example.com/b",
        ]

    async def test_crawl_batch(self, config):
        extractor = WebExtractor(config, client=mock_client(html_routes(self.SITE)))

        batch = await extractor.crawl_batch(
            ["https://example.com", "https://example.com/missing"], {"maxSubpages": 1}
        )

        assert [s.status for s in batch.statuses] == ["success", "error"]
        assert batch.results[0].subpages[0].url == "https://example.com/a"


@pytest.mark.unit
@pytest.mark.asyncio
class TestAvailability:
    async def test_list_available_providers_without_keys(self, config):
        extractor = WebExtractor(config, client=mock_client(html_routes({})))

        assert extractor.list_available_providers() == {LOCAL}

    async def test_list_available_providers_is_idempotent(self, keyed_config):
        extractor = WebExtractor(keyed_config, client=mock_client(html_routes({})))

        first = extractor.list_available_providers()
        second = extractor.list_available_providers()

        assert first == second == {EXA, FIRECRAWL, LOCAL}

    async def test_owned_client_closed(self, config):
        async with WebExtractor(config) as extractor:
            client = extractor.client

        assert client.is_closed

    async def test_injected_client_left_open(self, config):
        client = mock_client(html_routes({}))
        async with WebExtractor(config, client=client):
            pass

        assert not client.is_closed

    async def test_rate_limited_provider_not_listed(self, keyed_config, clock):
        extractor = WebExtractor(
            keyed_config,
            state=ProviderStateTracker(60, clock=clock),
            client=mock_client(html_routes({})),
        )
        extractor.state.record_rate_limit(EXA)

        assert extractor.list_available_providers() == {FIRECRAWL, LOCAL}

        clock.advance(60)
        assert extractor.list_available_providers() == {EXA, FIRECRAWL, LOCAL}
