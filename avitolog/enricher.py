"""
Detail-page enrichment of listing summaries.
"""
import copy
import logging
from typing import Dict, List, Optional

from bs4 import BeautifulSoup, Tag

from .errors import MissingURL
from .extract import attr, first_match, first_text, node_text
from .fetcher import PageFetcher
from .models import Listing
from .utils import clean_text, extract_item_id, normalize_url, parse_date, parse_price


logger = logging.getLogger(__name__)

DESCRIPTION_SELECTORS = [
    "div[data-marker='item-description']",
    "div[itemprop='description']",
    "div.item-description",
]
GALLERY_IMAGE_SELECTOR = (
    "div.gallery-img-wrapper img, div.photo-slider-image-wrapper img, "
    "[data-marker='image-frame/image-wrapper'] img"
)
ADDRESS_SELECTORS = [
    "div[data-marker='item-address']",
    "[data-marker='item-view/item-address']",
    "div.item-address",
]
PRICE_SELECTORS = [
    "span.price-value",
    "[data-marker='item-view/item-price']",
    "div.item-price",
    "[data-marker='item-price']",
]
DATE_SELECTORS = [
    "div[data-marker='item-date']",
    "[data-marker='item-view/item-date']",
    "div.item-date",
]
PARAMS_SELECTOR = "div.item-params, ul.item-params-list li, li.params-paramsList__item-_2Y2O"


def image_source(img: Tag) -> str:
    """src, else the first srcset candidate, else data-src."""
    src = attr(img, "src")
    if src:
        return src
    srcset = attr(img, "srcset")
    if srcset:
        first = srcset.split(",")[0].split()
        if first:
            return first[0]
    return attr(img, "data-src")


def parse_attributes(document: BeautifulSoup) -> Dict[str, str]:
    """Key/value pairs from the params list; entries must split on exactly one colon."""
    attributes: Dict[str, str] = {}
    for node in document.select(PARAMS_SELECTOR):
        text = clean_text(node.get_text(" "))
        if not text:
            continue
        parts = text.split(":")
        if len(parts) != 2:
            continue
        key, value = parts[0].strip(), parts[1].strip()
        if key:
            attributes[key] = value
    return attributes


class ListingEnricher:
    """Fills a listing's missing fields from its detail page."""

    def __init__(self, fetcher: PageFetcher, base_url: Optional[str] = None):
        self.fetcher = fetcher
        self.base_url = base_url or fetcher.settings.base_url

    async def enrich(self, listing: Listing) -> Listing:
        """
        Return a copy of the listing completed from its detail page.

        Fields that already hold a value are left alone; regions missing on
        the page leave the corresponding field as it was.
        """
        if not listing.url:
            raise MissingURL(listing.id)

        logger.debug(f"Visiting listing page: {listing.url}")
        page = await self.fetcher.fetch(listing.url)
        return self.apply_detail_page(listing, page.document)

    def apply_detail_page(self, listing: Listing, document: BeautifulSoup) -> Listing:
        enriched = copy.deepcopy(listing)

        if not enriched.id:
            enriched.id = extract_item_id(enriched.url)

        if not enriched.title:
            enriched.title = node_text(document.select_one("h1"))

        if not enriched.description:
            desc = first_match(document, DESCRIPTION_SELECTORS)
            if desc is not None:
                enriched.description = desc.get_text("\n", strip=True)

        enriched.image_urls = self._images(document, enriched.image_urls)

        if not enriched.location:
            enriched.location = first_text(document, ADDRESS_SELECTORS)

        if enriched.price.value == 0:
            price_text = first_text(document, PRICE_SELECTORS)
            if price_text:
                enriched.price = parse_price(price_text)

        if enriched.published_at is None:
            date_text = first_text(document, DATE_SELECTORS)
            if date_text:
                enriched.published_at = parse_date(date_text)

        for key, value in parse_attributes(document).items():
            enriched.attributes.setdefault(key, value)

        return enriched

    def _images(self, document: BeautifulSoup, known: List[str]) -> List[str]:
        images = list(known)
        for img in document.select(GALLERY_IMAGE_SELECTOR):
            src = image_source(img)
            if not src:
                continue
            url = normalize_url(src, self.base_url)
            if url not in images:
                images.append(url)
        return images
