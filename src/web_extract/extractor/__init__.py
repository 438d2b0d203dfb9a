"""Content extraction from HTML pages."""

from web_extract.extractor.main_content import ContentExtractor, ExtractedContent
from web_extract.extractor.metadata import extract_metadata
from web_extract.extractor.sanitizer import HtmlSanitizer

__all__ = [
    "ContentExtractor",
    "ExtractedContent",
    "HtmlSanitizer",
    "extract_metadata",
]
