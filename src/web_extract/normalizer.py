"""Content normalization: raw page content to text, markdown, html and metadata.

The pipeline always runs in the same order:

    extract -> sanitize -> convert -> truncate

Extraction selects the main article, sanitization strips everything outside
the tag/attribute allow-list, conversion derives markdown from the sanitized
fragment, and truncation cuts ``text`` and ``markdown`` independently to
``max_chars`` characters once everything else is done.
"""

from bs4 import BeautifulSoup
from pydantic import BaseModel, Field

from web_extract.config import ExtractorConfig, ProviderName, RequestOptions
from web_extract.converter.markdown import html_to_markdown
from web_extract.errors import ParseFailure
from web_extract.extractor.main_content import ContentExtractor
from web_extract.extractor.metadata import extract_metadata
from web_extract.extractor.sanitizer import HtmlSanitizer
from web_extract.models import PageMetadata, PageResult


class NormalizedContent(BaseModel):
    """Provider-independent page fragment produced by the normalizer."""

    text: str
    markdown: str | None = None
    html: str | None = None
    metadata: PageMetadata = Field(default_factory=PageMetadata)

    def to_page(
        self, url: str, provider: ProviderName, depth: int | None = None
    ) -> PageResult:
        return PageResult(
            url=url,
            text=self.text,
            markdown=self.markdown,
            html=self.html,
            metadata=self.metadata,
            provider=provider,
            depth=depth,
        )


def looks_like_html(content: str) -> bool:
    """Whether ``content`` carries tag delimiters."""
    return "<" in content and ">" in content


def truncate(value: str | None, max_chars: int | None) -> str | None:
    """Cut ``value`` to at most ``max_chars`` characters (plain prefix cut)."""
    if value is None or not max_chars or len(value) <= max_chars:
        return value
    return value[:max_chars]


def html_to_text(html: str) -> str:
    """Visible text of an HTML fragment."""
    if not html:
        return ""
    return BeautifulSoup(html, "lxml").get_text(separator=" ", strip=True)


class ContentNormalizer:
    """Converts fetched documents or provider text into the common result shape."""

    def __init__(self, config: ExtractorConfig | None = None):
        self.config = config or ExtractorConfig()
        self.extractor = ContentExtractor(self.config)
        self.sanitizer = HtmlSanitizer(self.config)

    def normalize(self, content: str, url: str, options: RequestOptions) -> NormalizedContent:
        """Normalize a full page fetched by us.

        HTML goes through main-content extraction; anything else is treated as
        plain text and used verbatim as markdown.

        Raises:
            ParseFailure: if no readable content could be extracted.
        """
        if not looks_like_html(content):
            if not content.strip():
                raise ParseFailure(f"Page has no content: {url}")
            return self._from_plain_text(content, options, PageMetadata(sourceURL=url))

        article = self.extractor.extract(content, url)
        if article is None or not article.html:
            raise ParseFailure(f"Failed to parse readable content from: {url}")

        metadata = extract_metadata(content, url, article)
        clean_html = self.sanitizer.sanitize(article.html)
        text = html_to_text(clean_html)
        if not text:
            raise ParseFailure(f"Failed to parse readable content from: {url}")

        markdown = html_to_markdown(clean_html) if options.markdown else None
        return self._finish(text, markdown, clean_html, metadata, options)

    def normalize_provider_content(
        self,
        content: str,
        options: RequestOptions,
        *,
        html: str | None = None,
        metadata: PageMetadata | None = None,
        content_is_html: bool | None = None,
    ) -> NormalizedContent:
        """Normalize content a remote provider already extracted.

        No main-content extraction happens here; HTML-bearing text is
        sanitized and converted, plain text (or markdown) is used verbatim.
        ``content_is_html`` overrides tag-delimiter detection. ``html`` is the
        provider's own HTML rendition, preferred for the ``html`` output.
        An empty page yields empty text, not an error.
        """
        metadata = metadata or PageMetadata()
        if content_is_html is None:
            content_is_html = looks_like_html(content)
        if not content_is_html:
            result = self._from_plain_text(content, options, metadata)
            if options.html and html:
                result.html = self.sanitizer.sanitize(html)
            return result

        clean_html = self.sanitizer.sanitize(content)
        text = html_to_text(clean_html)
        markdown = html_to_markdown(clean_html) if options.markdown else None
        output_html = self.sanitizer.sanitize(html) if html else clean_html
        return self._finish(text, markdown, output_html, metadata, options)

    def _from_plain_text(
        self, content: str, options: RequestOptions, metadata: PageMetadata
    ) -> NormalizedContent:
        text = content.strip()
        markdown = text if options.markdown else None
        return self._finish(text, markdown, None, metadata, options)

    def _finish(
        self,
        text: str,
        markdown: str | None,
        html: str | None,
        metadata: PageMetadata,
        options: RequestOptions,
    ) -> NormalizedContent:
        return NormalizedContent(
            text=truncate(text, options.max_chars) or "",
            markdown=truncate(markdown, options.max_chars),
            html=html if options.html else None,
            metadata=metadata,
        )
