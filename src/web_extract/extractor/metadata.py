"""Page metadata from standard <meta> and <link> tags."""

from bs4 import BeautifulSoup, Tag

from web_extract.extractor.main_content import ExtractedContent
from web_extract.models import PageMetadata
from web_extract.utils.url_utils import make_absolute

# Candidate sources per field, tried in order. Each entry is a CSS selector and
# the attribute holding the value.
_DESCRIPTION_SOURCES = [
    ('meta[name="description"]', "content"),
    ('meta[property="og:description"]', "content"),
]
_AUTHOR_SOURCES = [
    ('meta[name="author"]', "content"),
    ('meta[property="article:author"]', "content"),
]
_PUBLISHED_SOURCES = [
    ('meta[property="article:published_time"]', "content"),
    ('meta[name="date"]', "content"),
]
_IMAGE_SOURCES = [
    ('meta[property="og:image"]', "content"),
    ('meta[name="twitter:image"]', "content"),
]
_FAVICON_SOURCES = [
    ('link[rel~="icon"]', "href"),
    ('link[rel="shortcut icon"]', "href"),
]
_SITE_NAME_SOURCES = [
    ('meta[property="og:site_name"]', "content"),
]


def extract_metadata(
    html: str, url: str, article: ExtractedContent | None = None
) -> PageMetadata:
    """Build page metadata from the raw document and the extracted article.

    Fallback order per field:
      title: article title, <title>, og:title
      description: meta description, og:description
      author: meta author, article:author, article byline
      publishedDate: article:published_time, meta date
      image: og:image, twitter:image
      favicon: link rel=icon, link rel="shortcut icon"
      language: <html lang>
    """
    soup = BeautifulSoup(html, "lxml")

    title = _first(
        article.title if article else None,
        _tag_text(soup.find("title")),
        _select_attr(soup, [('meta[property="og:title"]', "content")]),
    )
    favicon = _select_attr(soup, _FAVICON_SOURCES)

    return PageMetadata(
        title=title,
        description=_select_attr(soup, _DESCRIPTION_SOURCES),
        author=_first(
            _select_attr(soup, _AUTHOR_SOURCES),
            article.byline if article else None,
        ),
        published_date=_select_attr(soup, _PUBLISHED_SOURCES),
        image=_select_attr(soup, _IMAGE_SOURCES),
        favicon=make_absolute(url, favicon) if favicon else None,
        language=_html_lang(soup),
        excerpt=article.excerpt if article else None,
        siteName=_first(
            _select_attr(soup, _SITE_NAME_SOURCES),
            article.site_name if article else None,
        ),
        sourceURL=url,
    )


def _first(*values: str | None) -> str | None:
    for value in values:
        if value and value.strip():
            return value.strip()
    return None


def _tag_text(tag) -> str | None:
    if isinstance(tag, Tag):
        return tag.get_text(strip=True) or None
    return None


def _select_attr(soup: BeautifulSoup, sources: list[tuple[str, str]]) -> str | None:
    for selector, attr in sources:
        for elem in soup.select(selector):
            value = elem.get(attr)
            if isinstance(value, list):
                value = " ".join(value)
            if value and value.strip():
                return value.strip()
    return None


def _html_lang(soup: BeautifulSoup) -> str | None:
    root = soup.find("html")
    if isinstance(root, Tag):
        lang = root.get("lang")
        if isinstance(lang, str) and lang.strip():
            return lang.strip()
    return None
