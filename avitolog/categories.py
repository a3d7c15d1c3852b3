"""
Category tree discovery from the site root.
"""
import logging
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from .errors import AvitologError, ParseFailure
from .extract import Rule, apply_rule, attr, node_text
from .fetcher import PageFetcher
from .models import Category
from .utils import normalize_url


logger = logging.getLogger(__name__)

# Categories whose URL contains this marker aggregate listings and carry subcategories
AGGREGATE_MARKER = "/all/"


def _anchor_with_label(label_selector: Optional[str] = None):
    def extract(a: Tag) -> Optional[Tuple[str, str]]:
        href = attr(a, "href")
        if not href:
            return None
        label = a.select_one(label_selector) if label_selector else a
        return node_text(label), href
    return extract


def _root_relative_anchor(a: Tag) -> Optional[Tuple[str, str]]:
    href = attr(a, "href")
    if not href.startswith("/"):
        return None
    return node_text(a), href


def _service_tile(tile: Tag) -> Optional[Tuple[str, str]]:
    parent = tile.parent
    href = attr(parent, "href") if isinstance(parent, Tag) else ""
    if not href:
        return None
    return node_text(tile.select_one("span")), href


ROOT_RULES = [
    Rule("visual grid",
         "div.visual-rubricator-grid-s6aQm a.visual-rubricator-gridItem-MiBU_",
         _anchor_with_label("p")),
    Rule("dropdown menu",
         "div.index-module-nav-catalogs-_9ZX2 div.index-module-nav-catalog-item-a9Xx9 a",
         _anchor_with_label()),
    Rule("mini menu", "div.top-rubricator-hide-PSmtS a", _anchor_with_label()),
    Rule("top navigation",
         "ul.index-module-nav-stRnY li.index-module-nav-item-queVi a",
         _root_relative_anchor),
    Rule("services menu", "div.service-item-QPvjs", _service_tile),
]

SUBCATEGORY_RULES = [
    Rule("category map", "div[data-marker='category-map'] a", _anchor_with_label()),
    Rule("rubricator list", "ul.rubricator-list li a", _anchor_with_label()),
]


def merge_category(index: Dict[str, Category], name: str, href: str, base_url: str) -> Optional[Category]:
    """
    Add a (name, href) pair to a URL-keyed category index.

    The first non-empty name seen for a URL wins; later names never replace it.
    """
    url = normalize_url(href, base_url)
    if not url:
        return None
    existing = index.get(url)
    if existing is None:
        existing = index[url] = Category(name=name, url=url)
    elif not existing.name and name:
        existing.name = name
    return existing


class CategoryDiscoverer:
    """Builds the top-level categories and one level of subcategories."""

    def __init__(self, fetcher: PageFetcher, base_url: Optional[str] = None):
        self.fetcher = fetcher
        self.base_url = base_url or fetcher.settings.base_url

    def extract_root(self, document: BeautifulSoup) -> List[Category]:
        index: Dict[str, Category] = {}
        for rule in ROOT_RULES:
            found = apply_rule(rule, document)
            for name, href in found:
                merge_category(index, name, href, self.base_url)
            if found:
                logger.debug(f"Found {len(found)} categories in {rule.name}")
        return list(index.values())

    def extract_subcategories(self, document: BeautifulSoup) -> List[Category]:
        index: Dict[str, Category] = {}
        for rule in SUBCATEGORY_RULES:
            for name, href in apply_rule(rule, document):
                if name:
                    merge_category(index, name, href, self.base_url)
        return list(index.values())

    async def discover(self) -> List[Category]:
        """Fetch the root page and build the category tree. Root failures propagate."""
        root_url = normalize_url("/", self.base_url)
        logger.info(f">>> Discovering categories from {root_url}")
        try:
            page = await self.fetcher.fetch(root_url)
            categories = self.extract_root(page.document)
        except ParseFailure as e:
            logger.warning(f"Root page could not be parsed: {e}")
            categories = []
        logger.info(f">>> Found {len(categories)} top-level categories")

        for cat in categories:
            if AGGREGATE_MARKER not in cat.url:
                continue
            try:
                cat.subcategories = await self.discover_subcategories(cat.url)
            except AvitologError as e:
                logger.warning(f"Error getting subcategories for {cat.url}: {e}")
                continue
        return categories

    async def discover_subcategories(self, category_url: str) -> List[Category]:
        try:
            page = await self.fetcher.fetch(category_url)
        except ParseFailure as e:
            logger.warning(f"Category page could not be parsed: {e}")
            return []
        subcategories = self.extract_subcategories(page.document)
        logger.debug(f"Found {len(subcategories)} subcategories for {category_url}")
        return subcategories
