"""Configuration management with Pydantic models."""

import os
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class ProviderName(str, Enum):
    """Content-acquisition backends."""

    EXA = "exa"
    FIRECRAWL = "firecrawl"
    LOCAL = "local"


class LiveCrawl(str, Enum):
    """Exa freshness preference."""

    NEVER = "never"
    FALLBACK = "fallback"
    ALWAYS = "always"
    PREFERRED = "preferred"


class RequestOptions(BaseModel):
    """Caller-supplied options for a single fetch or crawl request."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    provider: ProviderName | None = None
    fallback: bool = True
    markdown: bool = True
    html: bool = False
    max_chars: int | None = Field(default=None, ge=1, alias="maxChars")

    # Provider-specific hints
    livecrawl: LiveCrawl | None = None
    max_age: int | None = Field(default=None, ge=0, alias="maxAge")  # milliseconds

    # Crawling
    max_subpages: int = Field(default=0, ge=0, alias="maxSubpages")  # 0 = no recursion
    max_depth: int = Field(default=1, ge=0, alias="maxDepth")
    concurrency: int = Field(default=5, ge=1, le=100)
    same_domain_only: bool = Field(default=True, alias="sameDomainOnly")
    subpage_target: str | list[str] | None = Field(default=None, alias="subpageTarget")

    @property
    def wants_subpages(self) -> bool:
        return self.max_subpages > 0 and self.max_depth > 0


class FetcherConfig(BaseModel):
    """Configuration for outbound page fetching."""

    timeout_ms: int = Field(default=30000, ge=1000, le=120000)
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    )
    max_retries: int = Field(default=2, ge=0, le=10)
    retry_base_delay: float = Field(default=0.5, ge=0.0, le=30.0)


class ExtractorConfig(BaseModel):
    """Configuration for content extraction and sanitization."""

    remove_selectors: list[str] = Field(
        default_factory=lambda: [
            "nav",
            "header",
            "footer",
            "aside",
            ".navigation",
            ".navbar",
            ".sidebar",
            ".breadcrumb",
            ".breadcrumbs",
            ".advertisement",
            ".cookie-banner",
            "script",
            "style",
            "noscript",
            "template",
            '[role="navigation"]',
            '[role="banner"]',
        ]
    )
    allowed_tags: list[str] = Field(
        default_factory=lambda: [
            "p", "br", "strong", "em", "u",
            "h1", "h2", "h3", "h4", "h5", "h6",
            "ul", "ol", "li", "blockquote", "pre", "code",
            "a", "img",
            "table", "thead", "tbody", "tr", "th", "td",
            "div", "span", "article", "section",
        ]
    )
    allowed_attributes: list[str] = Field(
        default_factory=lambda: [
            "href", "src", "alt", "title", "class", "id",
            "width", "height", "align",
        ]
    )
    min_content_length: int = Field(default=1, ge=0)


class Credentials(BaseModel):
    """API keys for the remote providers."""

    exa_api_key: str | None = None
    firecrawl_api_key: str | None = None

    @classmethod
    def from_env(cls) -> "Credentials":
        """Read keys from EXA_API_KEY and FIRECRAWL_API_KEY (or FC_API_KEY)."""
        return cls(
            exa_api_key=os.environ.get("EXA_API_KEY") or None,
            firecrawl_api_key=(
                os.environ.get("FIRECRAWL_API_KEY") or os.environ.get("FC_API_KEY") or None
            ),
        )


class AppConfig(BaseModel):
    """Main application configuration."""

    credentials: Credentials = Field(default_factory=Credentials)
    fetcher: FetcherConfig = Field(default_factory=FetcherConfig)
    extractor: ExtractorConfig = Field(default_factory=ExtractorConfig)
    rate_limit_cooldown_seconds: float = Field(default=60.0, gt=0.0)
    exa_base_url: str = "https://api.exa.ai"
    firecrawl_base_url: str = "https://api.firecrawl.dev"

    @classmethod
    def from_toml(cls, path: Path) -> "AppConfig":
        """Load config from a TOML file."""
        import tomllib

        with open(path, "rb") as f:
            data = tomllib.load(f)
        return cls.model_validate(data)
