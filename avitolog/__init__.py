"""
Avito category and listing crawler package
"""
from .models import Category, Listing, Price
from .core import (
    Pipeline,
    open_session,
    discover_categories,
    discover_listings,
    enrich_listing
)
from .errors import (
    AvitologError,
    FetchError,
    RateLimitExceeded,
    ParseFailure,
    MissingURL
)
from .governor import FetchGovernor, get_governor
from .listings import parse_items_from_html
from .fallback import fallback_categories
from .export import (
    save_categories_json,
    load_categories_json,
    save_listings_json,
    save_output_rows
)
from .utils import init_logger, now_iso

__version__ = "1.0.0"

__all__ = [
    "Category",
    "Listing",
    "Price",
    "Pipeline",
    "open_session",
    "discover_categories",
    "discover_listings",
    "enrich_listing",
    "AvitologError",
    "FetchError",
    "RateLimitExceeded",
    "ParseFailure",
    "MissingURL",
    "FetchGovernor",
    "get_governor",
    "parse_items_from_html",
    "fallback_categories",
    "save_categories_json",
    "load_categories_json",
    "save_listings_json",
    "save_output_rows",
    "init_logger",
    "now_iso"
]
