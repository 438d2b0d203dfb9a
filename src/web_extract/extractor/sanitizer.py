"""Allow-list HTML sanitization."""

from bs4 import BeautifulSoup, Comment, Tag

from web_extract.config import ExtractorConfig

# Tags whose content is dropped along with the tag. Anything else outside the
# allow-list is unwrapped so its text survives.
_DROP_WITH_CONTENT = frozenset({
    "script", "style", "noscript", "template", "iframe", "frame", "frameset",
    "object", "embed", "applet", "svg", "math", "canvas", "form", "input",
    "button", "select", "textarea", "link", "meta", "base", "head", "title",
})

_URL_ATTRIBUTES = frozenset({"href", "src"})
_SAFE_SCHEMES = ("http:", "https:", "mailto:", "tel:")


class HtmlSanitizer:
    """Strip tags and attributes outside a fixed allow-list."""

    def __init__(self, config: ExtractorConfig | None = None):
        config = config or ExtractorConfig()
        self.allowed_tags = frozenset(t.lower() for t in config.allowed_tags)
        self.allowed_attributes = frozenset(a.lower() for a in config.allowed_attributes)

    def sanitize(self, html: str) -> str:
        """Return a sanitized HTML fragment."""
        if not html:
            return ""

        soup = BeautifulSoup(html, "lxml")
        root = soup.body or soup

        for comment in root.find_all(string=lambda s: isinstance(s, Comment)):
            comment.extract()

        # Process leaves first so unwrapping a parent never revisits children.
        for elem in reversed(root.find_all(True)):
            name = (elem.name or "").lower()
            if name in _DROP_WITH_CONTENT:
                elem.decompose()
            elif name not in self.allowed_tags:
                elem.unwrap()
            else:
                self._clean_attributes(elem)

        return "".join(str(child) for child in root.children).strip()

    def _clean_attributes(self, elem: Tag) -> None:
        for attr in list(elem.attrs):
            name = attr.lower()
            if name not in self.allowed_attributes or name.startswith("on"):
                del elem.attrs[attr]
                continue
            if name in _URL_ATTRIBUTES and not _is_safe_url(elem.attrs[attr]):
                del elem.attrs[attr]


def _is_safe_url(value) -> bool:
    if isinstance(value, list):
        value = " ".join(value)
    compact = "".join(str(value).split()).lower()
    if ":" not in compact.split("/", 1)[0]:
        return True  # Relative URL
    return compact.startswith(_SAFE_SCHEMES)
