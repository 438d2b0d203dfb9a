"""HTML to Markdown conversion."""

from web_extract.converter.markdown import MarkdownConverter, html_to_markdown

__all__ = [
    "MarkdownConverter",
    "html_to_markdown",
]
