#!/usr/bin/env python3
"""
Unit tests for the data models, the static tree and the exporters.
This uses Python's built-in unittest framework.
"""
import json
import os
import tempfile
import unittest
from datetime import datetime

import pandas as pd

from avitolog.export import (
    listings_frame,
    load_categories_json,
    save_categories_json,
    save_listings_json,
    save_output_rows,
)
from avitolog.fallback import fallback_categories
from avitolog.models import Category, Listing, Price


def sample_listing():
    return Listing(
        id="123",
        title="Велосипед",
        url="https://www.avito.ru/moskva/velosipedy/velosiped_123",
        price=Price(value=15000.0, currency="RUB", text="15 000 ₽"),
        location="Москва",
        category_url="https://www.avito.ru/moskva/velosipedy",
        image_urls=["https://img.avito.st/1.jpg", "https://img.avito.st/2.jpg"],
        published_at=datetime(2024, 3, 5),
        attributes={"Тип": "горный"},
    )


class TestModels(unittest.TestCase):
    """Serialization shape of the models."""

    def test_listing_to_dict_uses_camel_case(self):
        data = sample_listing().to_dict()
        self.assertEqual(data["imageUrls"], ["https://img.avito.st/1.jpg", "https://img.avito.st/2.jpg"])
        self.assertEqual(data["categoryUrl"], "https://www.avito.ru/moskva/velosipedy")
        self.assertEqual(data["publishedAt"], "2024-03-05T00:00:00")
        self.assertEqual(data["price"], {"value": 15000.0, "currency": "RUB", "text": "15 000 ₽"})
        self.assertNotIn("categoryId", data)
        self.assertNotIn("description", data)

    def test_listing_to_dict_omits_empty_fields(self):
        data = Listing(id="1", title="t").to_dict()
        self.assertEqual(set(data), {"id", "title", "price", "url"})

    def test_listing_from_dict(self):
        original = sample_listing()
        restored = Listing.from_dict(json.loads(json.dumps(original.to_dict())))
        self.assertEqual(restored, original)

    def test_listing_validity(self):
        self.assertFalse(Listing().is_valid())
        self.assertTrue(Listing(title="x").is_valid())
        self.assertTrue(Listing(url="https://www.avito.ru/item/1").is_valid())

    def test_category_subcategories_omitted_when_empty(self):
        leaf = Category(name="Кошки", url="https://www.avito.ru/all/koshki")
        self.assertEqual(leaf.to_dict(), {"name": "Кошки", "url": "https://www.avito.ru/all/koshki"})
        parent = Category(name="Животные", url="https://www.avito.ru/all/zhivotnye", subcategories=[leaf])
        self.assertEqual(parent.to_dict()["subcategories"], [leaf.to_dict()])


class TestFallbackTree(unittest.TestCase):

    def test_fallback_urls_are_absolute(self):
        for cat in fallback_categories("https://www.avito.ru/"):
            self.assertTrue(cat.url.startswith("https://www.avito.ru/all/"))
            for sub in cat.subcategories:
                self.assertTrue(sub.url.startswith("https://www.avito.ru/all/"))

    def test_fallback_returns_fresh_copies(self):
        first = fallback_categories()
        first[0].subcategories.clear()
        self.assertTrue(fallback_categories()[0].subcategories)


class TestExport(unittest.TestCase):
    """Files written by the exporters."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def path(self, name):
        return os.path.join(self.tmp.name, name)

    def test_categories_round_trip(self):
        out = self.path("nested/categories.json")
        tree = fallback_categories()
        save_categories_json(tree, out)
        self.assertEqual(load_categories_json(out), tree)

    def test_listings_json(self):
        out = self.path("listings.json")
        save_output_rows([sample_listing()], out)
        with open(out, encoding="utf-8") as f:
            data = json.load(f)
        self.assertEqual(len(data), 1)
        self.assertEqual(data[0]["title"], "Велосипед")
        self.assertEqual(data[0]["attributes"], {"Тип": "горный"})

    def test_listings_csv(self):
        out = self.path("listings.csv")
        save_output_rows([sample_listing(), Listing(id="2", title="пусто")], out)
        df = pd.read_csv(out, dtype=str, keep_default_na=False)
        self.assertEqual(list(df["id"]), ["123", "2"])
        self.assertEqual(df.loc[0, "img_urls"], "https://img.avito.st/1.jpg|https://img.avito.st/2.jpg")
        self.assertEqual(df.loc[1, "published_at"], "")

    def test_listings_frame_columns(self):
        df = listings_frame([sample_listing()])
        self.assertEqual(df.loc[0, "price_value"], 15000.0)
        self.assertEqual(json.loads(df.loc[0, "attributes_json"]), {"Тип": "горный"})

    def test_empty_json_export(self):
        out = self.path("empty.json")
        save_listings_json([], out)
        with open(out, encoding="utf-8") as f:
            self.assertEqual(json.load(f), [])


if __name__ == "__main__":
    unittest.main(verbosity=2)
