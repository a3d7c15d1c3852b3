"""
Crawl orchestration: request-context lifecycle and the pipeline entry points.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from playwright.async_api import APIRequestContext, async_playwright

from .categories import CategoryDiscoverer
from .config import FetchSettings
from .enricher import ListingEnricher
from .errors import AvitologError
from .fallback import fallback_categories
from .fetcher import PageFetcher
from .governor import FetchGovernor, get_governor
from .listings import ListingDiscoverer
from .models import Category, Listing


logger = logging.getLogger(__name__)


async def _with_deadline(coro, deadline: Optional[float]):
    if deadline is None:
        return await coro
    return await asyncio.wait_for(coro, timeout=deadline)


class Pipeline:
    """
    The three crawl operations wired to one fetcher and one governor.

    All requests made by a pipeline, and by every other pipeline sharing
    the same governor, are spaced by the governor's minimum interval.
    """

    def __init__(
        self,
        request: APIRequestContext,
        settings: Optional[FetchSettings] = None,
        governor: Optional[FetchGovernor] = None,
    ):
        self.settings = settings or FetchSettings()
        self.governor = governor or get_governor(self.settings)
        self.fetcher = PageFetcher(request, self.governor, self.settings)
        self.categories = CategoryDiscoverer(self.fetcher)
        self.enricher = ListingEnricher(self.fetcher)
        self.listings = ListingDiscoverer(self.fetcher, self.enricher)

    async def discover_categories(
        self, use_fallback: bool = True, deadline: Optional[float] = None
    ) -> List[Category]:
        """
        Category tree of the site.

        When the root page cannot be loaded (or yields nothing) and
        use_fallback is set, the static tree is returned instead of raising.
        """
        try:
            categories = await _with_deadline(self.categories.discover(), deadline)
        except AvitologError as e:
            if not use_fallback:
                raise
            logger.warning(f"Live category discovery failed, using fallback list: {e}")
            return fallback_categories(self.settings.base_url)
        if not categories and use_fallback:
            logger.warning("No categories found on the site, using fallback list")
            return fallback_categories(self.settings.base_url)
        return categories

    async def discover_listings(
        self, url: str, limit: int = 0, enrich: bool = True, deadline: Optional[float] = None
    ) -> List[Listing]:
        return await _with_deadline(self.listings.discover(url, limit, enrich), deadline)

    async def enrich_listing(self, listing: Listing, deadline: Optional[float] = None) -> Listing:
        return await _with_deadline(self.enricher.enrich(listing), deadline)


@asynccontextmanager
async def open_session(
    settings: Optional[FetchSettings] = None,
    governor: Optional[FetchGovernor] = None,
) -> AsyncIterator[Pipeline]:
    """Start Playwright's HTTP client and yield a pipeline bound to it."""
    settings = settings or FetchSettings()
    async with async_playwright() as p:
        request = await p.request.new_context(
            base_url=settings.base_url,
            user_agent=settings.user_agent,
            extra_http_headers={
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "ru-RU,ru;q=0.9,en-US;q=0.8,en;q=0.7",
            },
            timeout=settings.request_timeout * 1000,
        )
        logger.info(f">>> HTTP session opened for {settings.base_url}")
        try:
            yield Pipeline(request, settings, governor)
        finally:
            await request.dispose()
            logger.info(">>> HTTP session closed")


async def discover_categories(
    settings: Optional[FetchSettings] = None, use_fallback: bool = True
) -> List[Category]:
    async with open_session(settings) as pipeline:
        return await pipeline.discover_categories(use_fallback=use_fallback)


async def discover_listings(
    url: str, limit: int = 0, enrich: bool = True, settings: Optional[FetchSettings] = None
) -> List[Listing]:
    async with open_session(settings) as pipeline:
        return await pipeline.discover_listings(url, limit, enrich)


async def enrich_listing(listing: Listing, settings: Optional[FetchSettings] = None) -> Listing:
    async with open_session(settings) as pipeline:
        return await pipeline.enrich_listing(listing)
