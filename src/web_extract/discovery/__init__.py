"""Subpage link discovery."""

from web_extract.discovery.links import extract_links

__all__ = [
    "extract_links",
]
