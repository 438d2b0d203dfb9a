"""Recursive, budget-bounded subpage crawling."""

import asyncio
import logging
from dataclasses import dataclass, field

from web_extract.config import RequestOptions
from web_extract.errors import WebExtractError
from web_extract.models import BatchResult, PageResult
from web_extract.providers.base import BaseProvider, run_batch
from web_extract.providers.local import LocalProvider

logger = logging.getLogger(__name__)


@dataclass
class CrawlState:
    """Bookkeeping for one root request."""

    root_url: str
    max_depth: int
    max_subpages: int
    semaphore: asyncio.Semaphore
    visited: set[str] = field(default_factory=set)

    @classmethod
    def for_root(cls, url: str, options: RequestOptions) -> "CrawlState":
        return cls(
            root_url=url,
            max_depth=options.max_depth,
            max_subpages=options.max_subpages,
            semaphore=asyncio.Semaphore(options.concurrency),
        )


class CrawlEngine:
    """Crawl a root page and its linked subpages.

    Providers with native subpage discovery crawl server-side. For every
    other provider the root is fetched through that provider and the
    subpages through the local provider, tracking a visited set so no URL
    is fetched twice per root. Requested and post-redirect URLs both count
    as visited, and the same-domain filter always uses the root's host. At
    most ``concurrency`` subpage fetches are in flight per root. Children
    come back in candidate-link order regardless of completion order, and a
    child that fails is left out.
    """

    def __init__(self, local: LocalProvider):
        self.local = local

    async def crawl(
        self, provider: BaseProvider, url: str, options: RequestOptions
    ) -> PageResult:
        """Crawl ``url`` starting with ``provider``."""
        if provider.native_subpages:
            return await provider.crawl_one(url, options)

        state = CrawlState.for_root(url, options)
        state.visited.add(url)
        root = await provider.discover(url, options, scope_url=url)
        state.visited.update((root.page.url, root.final_url))
        return await self._expand(root.page, root.links, 0, options, state)

    async def crawl_many(
        self, provider: BaseProvider, urls: list[str], options: RequestOptions
    ) -> BatchResult:
        """Crawl several roots, each with its own visited set and budget."""
        if provider.native_subpages:
            return await provider.crawl_many(urls, options)
        return await run_batch(
            urls,
            lambda url: self.crawl(provider, url, options),
            provider.batch_concurrency(options),
        )

    async def _expand(
        self,
        page: PageResult,
        links: list[str],
        depth: int,
        options: RequestOptions,
        state: CrawlState,
    ) -> PageResult:
        page.depth = depth
        if depth >= state.max_depth or state.max_subpages <= 0:
            return page

        # Candidates are claimed before any child is dispatched.
        candidates: list[str] = []
        for link in links:
            if len(candidates) >= state.max_subpages:
                break
            if link not in state.visited:
                state.visited.add(link)
                candidates.append(link)
        if not candidates:
            return page

        children = await asyncio.gather(
            *(self._crawl_child(link, depth + 1, options, state) for link in candidates)
        )
        subpages = [child for child in children if child is not None]
        if subpages:
            page.subpages = subpages
        return page

    async def _crawl_child(
        self, url: str, depth: int, options: RequestOptions, state: CrawlState
    ) -> PageResult | None:
        try:
            async with state.semaphore:
                found = await self.local.discover(url, options, scope_url=state.root_url)
        except WebExtractError:
            logger.debug("Skipping subpage %s", url, exc_info=True)
            return None

        state.visited.update((found.page.url, found.final_url))
        return await self._expand(found.page, found.links, depth, options, state)
