"""Multi-provider web content extraction."""

__version__ = "0.1.0"

from web_extract.config import AppConfig, Credentials, LiveCrawl, ProviderName, RequestOptions
from web_extract.errors import (
    FetchFailure,
    InvalidURL,
    NoProviderAvailable,
    ParseFailure,
    ProviderUnavailable,
    RateLimited,
    WebExtractError,
)
from web_extract.models import BatchResult, BatchStatus, PageMetadata, PageResult, to_wire
from web_extract.service import WebExtractor

__all__ = [
    "AppConfig",
    "BatchResult",
    "BatchStatus",
    "Credentials",
    "FetchFailure",
    "InvalidURL",
    "LiveCrawl",
    "NoProviderAvailable",
    "PageMetadata",
    "PageResult",
    "ParseFailure",
    "ProviderName",
    "ProviderUnavailable",
    "RateLimited",
    "RequestOptions",
    "WebExtractError",
    "WebExtractor",
    "to_wire",
]
