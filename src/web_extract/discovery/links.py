"""Outbound link extraction for crawl discovery."""

import logging
from urllib.parse import urldefrag

from bs4 import BeautifulSoup

from web_extract.utils.url_utils import is_same_domain, is_web_url, make_absolute

logger = logging.getLogger(__name__)

_SKIPPED_PREFIXES = ("#", "mailto:")


def extract_links(
    html: str,
    base_url: str,
    same_domain_only: bool = True,
    scope_url: str | None = None,
) -> list[str]:
    """Extract absolute, deduplicated links from ``html`` in document order.

    Empty, fragment-only and ``mailto:`` hrefs are ignored. Relative hrefs are
    resolved against ``base_url`` and stripped of fragments; anything that
    does not resolve to an http(s) URL is dropped. With ``same_domain_only``
    links whose host differs from ``scope_url``'s host (``base_url`` when not
    given) are dropped. Malformed hrefs are skipped.
    """
    if not html:
        return []

    soup = BeautifulSoup(html, "lxml")
    seen: set[str] = set()
    links: list[str] = []

    for a in soup.find_all("a", href=True):
        href = a["href"]
        if isinstance(href, list):
            href = href[0] if href else ""
        href = href.strip()
        if not href or href.startswith(_SKIPPED_PREFIXES):
            continue

        try:
            absolute, _ = urldefrag(make_absolute(base_url, href))
        except ValueError:
            logger.debug("Skipping malformed href %r on %s", href, base_url)
            continue

        if not is_web_url(absolute):
            continue

        if same_domain_only and not is_same_domain(absolute, scope_url or base_url):
            continue

        if absolute not in seen:
            seen.add(absolute)
            links.append(absolute)

    return links
