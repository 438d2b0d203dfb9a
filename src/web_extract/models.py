"""Result shapes returned by every provider."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from web_extract.config import ProviderName


class PageMetadata(BaseModel):
    """Page metadata with recognized keys plus provider-specific passthrough."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    title: str | None = None
    description: str | None = None
    language: str | None = None
    author: str | None = None
    published_date: str | None = Field(default=None, alias="publishedDate")
    image: str | None = None
    favicon: str | None = None
    status_code: int | None = Field(default=None, alias="statusCode")


class PageResult(BaseModel):
    """Normalized content of one page.

    ``depth`` and ``subpages`` are only set for crawl results. ``subpages`` is
    either ``None`` or a non-empty list.
    """

    model_config = ConfigDict(populate_by_name=True)

    url: str
    text: str
    markdown: str | None = None
    html: str | None = None
    metadata: PageMetadata = Field(default_factory=PageMetadata)
    provider: ProviderName
    depth: int | None = Field(default=None, ge=0)
    subpages: list["PageResult"] | None = None

    def iter_tree(self):
        """Yield this page and every descendant, depth-first."""
        yield self
        for child in self.subpages or []:
            yield from child.iter_tree()


class StatusError(BaseModel):
    """Error detail attached to a failed batch entry."""

    model_config = ConfigDict(populate_by_name=True)

    tag: str
    http_status_code: int | None = Field(default=None, alias="httpStatusCode")


class BatchStatus(BaseModel):
    """Per-URL outcome of a batch call, positionally aligned with the input."""

    id: str
    status: Literal["success", "error"]
    error: StatusError | None = None

    @classmethod
    def ok(cls, url: str) -> "BatchStatus":
        return cls(id=url, status="success")

    @classmethod
    def failed(cls, url: str, exc: Exception) -> "BatchStatus":
        tag = getattr(exc, "tag", "UNKNOWN_ERROR")
        code = getattr(exc, "http_status_code", None)
        return cls(id=url, status="error", error=StatusError(tag=tag, http_status_code=code))


class BatchResult(BaseModel):
    """Successful results plus one status per requested URL."""

    results: list[PageResult] = Field(default_factory=list)
    statuses: list[BatchStatus] = Field(default_factory=list)


class FetchResult(BaseModel):
    """Raw result of fetching a page over HTTP."""

    url: str
    final_url: str  # After redirects
    html: str
    status_code: int
    error: str | None = None
    attempts: int = 1

    @property
    def success(self) -> bool:
        return self.status_code >= 200 and self.status_code < 400 and not self.error


def to_wire(result: PageResult | BatchResult) -> dict[str, Any]:
    """Dump a result using camelCase keys and without unset optional fields."""
    return result.model_dump(mode="json", by_alias=True, exclude_none=True)
