"""
Export utilities for crawled categories and listings.
"""
import json
import logging
import os
from typing import List

import pandas as pd

from .models import Category, Listing


logger = logging.getLogger(__name__)


def _ensure_parent(path: str) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)


def save_categories_json(categories: List[Category], out_path: str) -> None:
    """Write the category tree as a JSON array."""
    _ensure_parent(out_path)
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump([c.to_dict() for c in categories], f, ensure_ascii=False, indent=2)
    logger.info(f">>> Saved {len(categories)} categories to {out_path}")


def load_categories_json(path: str) -> List[Category]:
    """Read a category tree written by save_categories_json (or any file of the same shape)."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    return [Category.from_dict(item) for item in data]


def save_listings_json(listings: List[Listing], out_path: str) -> None:
    """Write listings as a JSON array with camelCase keys."""
    _ensure_parent(out_path)
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump([x.to_dict() for x in listings], f, ensure_ascii=False, indent=2)
    logger.info(f">>> Saved {len(listings)} listings to {out_path}")


def listings_frame(listings: List[Listing]) -> pd.DataFrame:
    """Flatten listings into one row each."""
    rows = []
    for x in listings:
        rows.append({
            "id": x.id,
            "title": x.title,
            "price_value": x.price.value,
            "price_currency": x.price.currency,
            "price_text": x.price.text,
            "location": x.location,
            "published_at": x.published_at.isoformat() if x.published_at else "",
            "img_urls": "|".join(x.image_urls) if x.image_urls else "",
            "description": x.description,
            "attributes_json": json.dumps(x.attributes, ensure_ascii=False),
            "url": x.url,
            "category_url": x.category_url,
        })
    return pd.DataFrame(rows)


def save_output_rows(listings: List[Listing], out_path: str) -> None:
    """Save listings to a JSON, CSV or Excel file depending on the extension."""
    lower = out_path.lower()
    if lower.endswith(".json"):
        save_listings_json(listings, out_path)
        return

    _ensure_parent(out_path)
    df = listings_frame(listings)
    if lower.endswith(".xlsx"):
        df.to_excel(out_path, index=False)
    else:
        df.to_csv(out_path, index=False)
    logger.info(f">>> Saved {len(df)} rows to {out_path}")
