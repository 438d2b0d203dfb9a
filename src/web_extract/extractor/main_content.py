"""Main content extraction from HTML pages."""

import logging

import trafilatura
from bs4 import BeautifulSoup
from pydantic import BaseModel
from readability import Document  # type: ignore[import-untyped]

from web_extract.config import ExtractorConfig

logger = logging.getLogger(__name__)


class ExtractedContent(BaseModel):
    """Main content extracted from a page."""

    html: str
    title: str | None = None
    byline: str | None = None
    excerpt: str | None = None
    site_name: str | None = None
    text: str | None = None  # Plain text version


class ContentExtractor:
    """Extract the article body from a full HTML document."""

    def __init__(self, config: ExtractorConfig | None = None):
        self.config = config or ExtractorConfig()

    def extract(self, html: str, url: str) -> ExtractedContent | None:
        """Extract main content from HTML, or None if nothing readable remains."""
        if not html or len(html.strip()) == 0:
            return None

        cleaned_html = self._pre_clean_html(html)

        content = self._extract_with_readability(cleaned_html)

        if not self._is_substantial(content):
            # Fall back to trafilatura (handles pages readability scores poorly)
            content = self._extract_with_trafilatura(cleaned_html, url)

        if not self._is_substantial(content):
            logger.debug("No readable content extracted from %s", url)
            return None

        return content

    def _is_substantial(self, content: ExtractedContent | None) -> bool:
        if content is None or not content.text:
            return False
        return len(content.text) >= max(self.config.min_content_length, 1)

    def _pre_clean_html(self, html: str) -> str:
        """Remove navigation, sidebar, and footer elements before extraction."""
        soup = BeautifulSoup(html, "lxml")
        for selector in self.config.remove_selectors:
            for elem in soup.select(selector):
                elem.decompose()
        return str(soup)

    def _extract_with_readability(self, html: str) -> ExtractedContent | None:
        """Extract using readability-lxml."""
        try:
            doc = Document(html)
            content_html = doc.summary(html_partial=True)
            title = doc.short_title() or doc.title()

            if content_html:
                soup = BeautifulSoup(content_html, "lxml")
                text = soup.get_text(separator=" ", strip=True)

                return ExtractedContent(
                    html=content_html,
                    title=title or None,
                    text=text,
                )
        except Exception:
            logger.debug("Readability extraction failed", exc_info=True)

        return None

    def _extract_with_trafilatura(self, html: str, url: str) -> ExtractedContent | None:
        """Extract using trafilatura."""
        try:
            result = trafilatura.extract(
                html,
                url=url,
                include_comments=False,
                include_tables=True,
                include_images=True,
                include_links=True,
                output_format="html",
                deduplicate=True,
            )

            if result:
                metadata = trafilatura.extract_metadata(html, default_url=url)
                soup = BeautifulSoup(result, "lxml")

                return ExtractedContent(
                    html=result,
                    title=metadata.title if metadata else None,
                    byline=metadata.author if metadata else None,
                    excerpt=metadata.description if metadata else None,
                    site_name=metadata.sitename if metadata else None,
                    text=soup.get_text(separator=" ", strip=True),
                )
        except Exception:
            logger.debug("Trafilatura extraction failed", exc_info=True)

        return None
