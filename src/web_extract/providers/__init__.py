"""Content-acquisition providers and the policies that choose between them."""

import httpx

from web_extract.config import AppConfig, ProviderName
from web_extract.normalizer import ContentNormalizer
from web_extract.providers.base import BaseProvider, RemoteProvider
from web_extract.providers.exa import ExaProvider
from web_extract.providers.fallback import ALTERNATES, FallbackOrchestrator
from web_extract.providers.firecrawl import FirecrawlProvider
from web_extract.providers.local import LocalProvider
from web_extract.providers.selection import PRIORITY_ORDER, SelectionPolicy
from web_extract.providers.state import ProviderStateTracker

__all__ = [
    "ALTERNATES",
    "PRIORITY_ORDER",
    "BaseProvider",
    "ExaProvider",
    "FallbackOrchestrator",
    "FirecrawlProvider",
    "LocalProvider",
    "ProviderStateTracker",
    "RemoteProvider",
    "SelectionPolicy",
    "build_providers",
]


def build_providers(
    config: AppConfig,
    client: httpx.AsyncClient,
    normalizer: ContentNormalizer,
) -> dict[ProviderName, BaseProvider]:
    """Instantiate one adapter per provider, sharing the HTTP client."""
    return {
        ProviderName.EXA: ExaProvider(client, config, normalizer),
        ProviderName.FIRECRAWL: FirecrawlProvider(client, config, normalizer),
        ProviderName.LOCAL: LocalProvider(client, config, normalizer),
    }
