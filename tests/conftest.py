"""Shared test fixtures and helpers."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from web_extract.config import AppConfig, Credentials, FetcherConfig
from web_extract.normalizer import ContentNormalizer


ARTICLE_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <title>Getting Started | Example Docs</title>
  <meta name="description" content="How to install and use the example library.">
  <meta name="author" content="Jane Writer">
  <meta property="og:image" content="https://example.com/cover.png">
  <meta property="article:published_time" content="2024-03-01">
  <link rel="icon" href="/favicon.ico">
  <script>window.tracking = true;</script>
</head>
<body>
  <nav><a href="/nav-only">Navigation link</a></nav>
  <article>
    <h1>Getting Started</h1>
    <p onclick="steal()">The example library turns messy web pages into clean,
    readable documents. This guide walks through installation and the first
    request you are likely to make with it.</p>
    <h2>Installation</h2>
    <p>Install the package from the index with your usual package manager and
    make sure the interpreter version matches the supported range listed on
    the <a href="/requirements">requirements page</a>.</p>
    <pre><code class="language-python">import example
example.run()
</code></pre>
    <p>Once installed, continue with the <a href="/guide#usage">usage guide</a>
    or read about <a href="https://other.example.org/blog">related projects</a>.
    Questions can be sent to <a href="mailto:help@example.com">support</a>.</p>
    <script>alert("inline");</script>
  </article>
  <footer>Copyright Example</footer>
</body>
</html>
"""


def page_html(title: str, body: str, links: list[str] = ()) -> str:
    """A small but readable HTML page linking to ``links``."""
    anchors = "".join(f'<li><a href="{href}">{href}</a></li>' for href in links)
    return (
        f"<html><head><title>{title}</title></head><body><article>"
        f"<h1>{title}</h1>"
        f"<p>{body} This paragraph has enough words in it for the content "
        f"extractor to treat it as the main body of the page.</p>"
        f"<ul>{anchors}</ul>"
        f"</article></body></html>"
    )


class FakeClock:
    """Manually advanced clock for the provider state tracker."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def mock_client(handler) -> httpx.AsyncClient:
    """An AsyncClient whose requests are answered by ``handler``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=True)


def html_routes(pages: dict[str, str], redirects: dict[str, str] | None = None):
    """MockTransport handler serving ``pages`` by URL and 404 for anything else.

    ``redirects`` maps a URL to the location it answers with a 301.
    """
    requested: list[str] = []
    # "https://host" and "https://host/" name the same page.
    by_key = {url.rstrip("/"): html for url, html in pages.items()}
    moved = {url.rstrip("/"): target for url, target in (redirects or {}).items()}

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        requested.append(url)
        if url.rstrip("/") in moved:
            return httpx.Response(301, headers={"location": moved[url.rstrip("/")]})
        html = by_key.get(url.rstrip("/"))
        if html is not None:
            return httpx.Response(200, text=html, headers={"content-type": "text/html"})
        return httpx.Response(404, text="not found")

    handler.requested = requested
    return handler


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return AppConfig(fetcher=FetcherConfig(max_retries=0, retry_base_delay=0.0))


@pytest.fixture
def keyed_config():
    return AppConfig(
        credentials=Credentials(exa_api_key="exa-key", firecrawl_api_key="fc-key"),
        fetcher=FetcherConfig(max_retries=0, retry_base_delay=0.0),
    )


@pytest.fixture
def normalizer():
    return ContentNormalizer()
