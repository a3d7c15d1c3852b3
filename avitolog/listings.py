"""
Listing discovery on category, search and catalog pages.
"""
import asyncio
import logging
from typing import List, Optional, Sequence

from bs4 import BeautifulSoup, Tag

from .config import config
from .enricher import ListingEnricher
from .errors import AvitologError, ParseFailure
from .extract import attr, first_href, first_text, node_text
from .fetcher import PageFetcher, parse_document
from .models import Listing
from .utils import extract_category_id, extract_item_id, is_same_site, normalize_url, parse_price


logger = logging.getLogger(__name__)

# URL markers
ITEM_PATH = "/item/"
CATALOG_MARKER = "/catalog/"

# Standard results page
RESULTS_CONTAINER = "div[data-marker='catalog-serp']"
ITEM_CARD_SELECTORS = [
    "div[data-marker='item']",
    "div[data-marker='item-card']",
    "div.item",
    "div.item-card",
    "div.iva-item-root",
]
# Saved pages are scanned without a container, so a wider net is used
PAGE_ITEM_SELECTORS = [
    "div[data-marker='item']",
    "div[data-marker='item-card']",
    "div.iva-item-root",
    "div.styles-item-m0DD4",
    "div.js-item",
    "div.item",
    "div.item-card",
]
TITLE_SELECTORS = [
    "h3[itemprop='name']",
    "[data-marker='item-title']",
    "h3.title",
    "div.title",
    "a.title",
    "div.snippet-title",
]
HEADING_FALLBACK = "h3, h2, a.snippet-link"
ANCHOR_TITLE_FALLBACK = "h3, h4, h2, div.title, div.snippet-title, span.title"
PRICE_SELECTORS = [
    "[data-marker='item-price']",
    "span.price-text-_YGDY",
    "span.price",
    "div.price",
    "span[itemprop='price']",
    "div.snippet-price",
    ".price",
    ".snippet-price",
    ".price-text",
]
NEARBY_PRICE_SELECTOR = "span.price, div.price, [data-marker='item-price']"
ITEM_LINK_SELECTOR = f"a[href*='{ITEM_PATH}']"
LOCATION_SELECTORS = [
    "div.geo-georeferences",
    "[data-marker='item-address']",
    ".geo-georeferences",
    ".item-address",
    ".snippet-address",
]

# Catalog pages
CATALOG_CONTAINER = "div.items-items, div.catalog-items"
CATALOG_ITEM_SELECTORS = [
    "div[data-item-id]",
    "div.item-wrapper",
    "div.catalog-item",
    "div.item",
]
CATALOG_CARD_SELECTOR = "div.catalog-card, div.catalog-list-item, div.item-panel"
EXCLUDED_PATHS = ("/favorites", "/profile", "/auth", "/support", "/stat")


def _limit_reached(items: Sequence, limit: int) -> bool:
    return limit > 0 and len(items) >= limit


def _card_id(item: Tag, href: str) -> str:
    listing_id = attr(item, "data-item-id")
    if listing_id:
        return listing_id
    element_id = attr(item, "id")
    if element_id and element_id.lstrip("i").isdigit():
        return element_id.lstrip("i")
    return extract_item_id(href)


def _card_image(item: Tag, base_url: str) -> str:
    img = item.select_one("img")
    if img is None:
        return ""
    return normalize_url(attr(img, "src") or attr(img, "data-src"), base_url)


def parse_card(item: Tag, category_url: str = "", base_url: str = config.BASE_URL) -> Listing:
    """Build a listing summary from one result card."""
    href = first_href(item, ITEM_PATH) or first_href(item)

    title = first_text(item, TITLE_SELECTORS) or first_text(item, [HEADING_FALLBACK])
    if not title:
        item_link = item.select_one(ITEM_LINK_SELECTOR)
        title = node_text(item_link)

    listing = Listing(
        id=_card_id(item, href),
        title=title,
        url=normalize_url(href, base_url),
        location=first_text(item, LOCATION_SELECTORS),
        category_url=category_url,
        category_id=extract_category_id(category_url),
    )

    price_text = first_text(item, PRICE_SELECTORS)
    if price_text:
        listing.price = parse_price(price_text)

    image = _card_image(item, base_url)
    if image:
        listing.image_urls.append(image)
    return listing


def parse_cards(
    roots: Sequence[Tag],
    selectors: Sequence[str],
    limit: int = 0,
    category_url: str = "",
    base_url: str = config.BASE_URL,
) -> List[Listing]:
    """Parse cards matched by the first selector that finds anything under the roots."""
    for sel in selectors:
        matches = [m for root in roots for m in root.select(sel)]
        if not matches:
            continue
        listings: List[Listing] = []
        for item in matches:
            if _limit_reached(listings, limit):
                break
            listing = parse_card(item, category_url, base_url)
            if listing.is_valid():
                listings.append(listing)
        logger.debug(f"Found {len(listings)} listings using selector: {sel}")
        return listings
    return []


def _item_links(node: Tag) -> set:
    return {attr(x, "href") for x in node.select(ITEM_LINK_SELECTOR)}


def _nearby_text(a: Tag, selector: str) -> str:
    """
    Text next to an item anchor that belongs to that item only.

    A parent holding links to other items is shared between listings, so
    only the anchor's following siblings up to the next item link count.
    """
    parent = a.parent
    if not isinstance(parent, Tag):
        return ""
    if len(_item_links(parent)) <= 1:
        return node_text(parent.select_one(selector))

    for sibling in a.find_next_siblings():
        if sibling.css.match(ITEM_LINK_SELECTOR) or sibling.select_one(ITEM_LINK_SELECTOR) is not None:
            break
        if sibling.css.match(selector):
            text = node_text(sibling)
        else:
            text = node_text(sibling.select_one(selector))
        if text:
            return text
    return ""


def scan_item_anchors(
    document: BeautifulSoup,
    limit: int = 0,
    category_url: str = "",
    base_url: str = config.BASE_URL,
) -> List[Listing]:
    """Fallback: treat every link to an item page as a listing."""
    listings: List[Listing] = []
    seen = set()
    for a in document.select("a[href]"):
        if _limit_reached(listings, limit):
            break
        href = attr(a, "href")
        if ITEM_PATH not in href:
            continue
        url = normalize_url(href, base_url)
        if url in seen:
            continue

        title = (
            node_text(a)
            or node_text(a.select_one(ANCHOR_TITLE_FALLBACK))
            or _nearby_text(a, ANCHOR_TITLE_FALLBACK)
        )
        if not title:
            continue
        seen.add(url)

        listing = Listing(
            id=extract_item_id(url),
            title=title,
            url=url,
            category_url=category_url,
            category_id=extract_category_id(category_url),
        )
        price_text = node_text(a.select_one(NEARBY_PRICE_SELECTOR)) or _nearby_text(a, NEARBY_PRICE_SELECTOR)
        if price_text:
            listing.price = parse_price(price_text)
        listings.append(listing)

    logger.debug(f"Found {len(listings)} listings using alternative method")
    return listings


def parse_items_from_html(html: str, category_url: str = "", base_url: str = config.BASE_URL) -> List[Listing]:
    """Extract listing summaries from a saved results page without any network access."""
    document = parse_document(html)
    listings = parse_cards([document], PAGE_ITEM_SELECTORS, 0, category_url, base_url)
    if not listings:
        logger.debug("No items found with specific selectors, trying fallback approach")
        listings = scan_item_anchors(document, 0, category_url, base_url)
    return listings


def collect_catalog_urls(
    document: BeautifulSoup,
    catalog_url: str,
    limit: int = 0,
    base_url: str = config.BASE_URL,
    allowed_domain: str = config.ALLOWED_DOMAIN,
) -> List[str]:
    """Candidate item or sub-catalog URLs found on a catalog page, in page order."""
    urls: List[str] = []

    def add(href: str) -> None:
        url = normalize_url(href, base_url)
        if url and url not in urls and not _limit_reached(urls, limit):
            urls.append(url)

    containers = document.select(CATALOG_CONTAINER)
    for sel in CATALOG_ITEM_SELECTORS:
        for container in containers:
            for item in container.select(sel):
                add(first_href(item, ITEM_PATH) or first_href(item))
        if urls:
            logger.debug(f"Found {len(urls)} item URLs using selector: {sel}")
            break

    for card in document.select(CATALOG_CARD_SELECTOR):
        add(first_href(card))

    if not urls:
        for a in document.select("a[href]"):
            href = attr(a, "href")
            if ITEM_PATH in href:
                add(href)

    if not urls:
        own_url = normalize_url(catalog_url, base_url)
        for a in document.select("a[href]"):
            href = attr(a, "href")
            if not (href.startswith("/") or allowed_domain in href):
                continue
            if any(p in href for p in EXCLUDED_PATHS):
                continue
            url = normalize_url(href, base_url)
            if url == own_url or not is_same_site(url, allowed_domain):
                continue
            add(url)
        logger.debug(f"Found {len(urls)} potential items or subcategories with fallback method")

    return urls


class ListingDiscoverer:
    """Collects listing summaries from a category or catalog URL and enriches them."""

    def __init__(
        self,
        fetcher: PageFetcher,
        enricher: ListingEnricher,
        catalog_delay: Optional[float] = None,
        base_url: Optional[str] = None,
    ):
        self.fetcher = fetcher
        self.enricher = enricher
        self.catalog_delay = fetcher.settings.catalog_delay if catalog_delay is None else catalog_delay
        self.base_url = base_url or fetcher.settings.base_url

    @staticmethod
    def is_catalog(url: str) -> bool:
        return CATALOG_MARKER in url

    async def discover(self, url: str, limit: int = 0, enrich: bool = True) -> List[Listing]:
        """Listings reachable from url, at most limit of them (0 or less means no cap)."""
        if self.is_catalog(url):
            return await self._discover_catalog(url, limit, enrich)
        return await self._discover_standard(url, limit, enrich)

    async def _discover_standard(self, url: str, limit: int, enrich: bool) -> List[Listing]:
        logger.info(f">>> Opening listings page: {url}")
        try:
            page = await self.fetcher.fetch(url)
        except ParseFailure as e:
            logger.warning(f"Listings page could not be parsed: {e}")
            return []

        containers = page.document.select(RESULTS_CONTAINER)
        listings = parse_cards(containers, ITEM_CARD_SELECTORS, limit, url, self.base_url)
        if not listings:
            logger.info("Trying alternative method to find listings")
            listings = scan_item_anchors(page.document, limit, url, self.base_url)
        logger.info(f">>> Collected {len(listings)} listings from {url}")

        if enrich:
            listings = await self._enrich_all(listings)
        if limit > 0:
            listings = listings[:limit]
        return listings

    async def _enrich_all(self, listings: List[Listing]) -> List[Listing]:
        enriched: List[Listing] = []
        for i, listing in enumerate(listings, 1):
            if listing.url:
                logger.info(f"Fetching details for listing {i} of {len(listings)}")
                try:
                    listing = await self.enricher.enrich(listing)
                except AvitologError as e:
                    logger.warning(f"Error fetching details for listing {listing.id or listing.url}: {e}")
            enriched.append(listing)
        return enriched

    async def _discover_catalog(self, catalog_url: str, limit: int, enrich: bool) -> List[Listing]:
        logger.info(f">>> Handling catalog page: {catalog_url}")
        try:
            page = await self.fetcher.fetch(catalog_url)
        except ParseFailure as e:
            logger.warning(f"Catalog page could not be parsed: {e}")
            return []

        urls = collect_catalog_urls(
            page.document, catalog_url, limit, self.base_url, self.fetcher.settings.allowed_domain
        )
        logger.info(f">>> Processing {len(urls)} URLs from catalog")

        listings: List[Listing] = []
        for i, url in enumerate(urls, 1):
            if _limit_reached(listings, limit):
                break
            if i > 1 and self.catalog_delay > 0:
                await asyncio.sleep(self.catalog_delay)
            logger.debug(f"Processing catalog URL {i} of {len(urls)}: {url}")

            if ITEM_PATH in url:
                listing = Listing(
                    id=extract_item_id(url),
                    url=url,
                    category_url=catalog_url,
                    category_id=extract_category_id(catalog_url),
                )
                if enrich:
                    try:
                        listing = await self.enricher.enrich(listing)
                    except AvitologError as e:
                        logger.warning(f"Error fetching details for URL {url}: {e}")
                        if not listing.id:
                            continue
                listings.append(listing)
                continue

            # Possibly a nested catalog or category: take one listing from it
            try:
                found = await self._discover_standard(url, 1, enrich)
            except AvitologError as e:
                logger.warning(f"Error processing potential subcategory {url}: {e}")
                continue
            for listing in found:
                if _limit_reached(listings, limit):
                    break
                listings.append(listing)

        return listings
