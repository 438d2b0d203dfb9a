"""Utility functions."""

from web_extract.utils.url_utils import get_host, is_same_domain, is_web_url, make_absolute, validate_url

__all__ = [
    "get_host",
    "is_same_domain",
    "is_web_url",
    "make_absolute",
    "validate_url",
]
