"""URL manipulation utilities."""

from urllib.parse import urljoin, urlparse

from web_extract.errors import InvalidURL

_WEB_SCHEMES = ("http", "https")


def validate_url(url: str) -> str:
    """Return ``url`` unchanged if it is an absolute http(s) URL, else raise InvalidURL."""
    if not isinstance(url, str) or not url.strip():
        raise InvalidURL(f"Invalid URL: {url!r}")
    try:
        parsed = urlparse(url)
        host = parsed.hostname
    except ValueError as e:
        raise InvalidURL(f"Invalid URL: {url}") from e
    if parsed.scheme.lower() not in _WEB_SCHEMES or not host:
        raise InvalidURL(f"Invalid URL: {url}")
    return url


def get_host(url: str) -> str | None:
    """Extract the lowercased hostname from a URL, or None if it has none."""
    try:
        return urlparse(url).hostname
    except ValueError:
        return None


def is_same_domain(url1: str, url2: str) -> bool:
    """Check if two URLs share the same host (port ignored)."""
    host1 = get_host(url1)
    return host1 is not None and host1 == get_host(url2)


def make_absolute(base_url: str, href: str) -> str:
    """Convert a potentially relative URL to absolute."""
    return urljoin(base_url, href)


def is_web_url(url: str) -> bool:
    """Whether ``url`` is an absolute http(s) URL with a host."""
    try:
        validate_url(url)
    except InvalidURL:
        return False
    return True
