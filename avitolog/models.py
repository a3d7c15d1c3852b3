"""
Data models for the Avito category/listing crawler.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class Price:
    """Parsed price; value 0 means the text could not be read as a number."""

    value: float = 0.0
    currency: str = "RUB"
    text: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "currency": self.currency, "text": self.text}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Price":
        return cls(
            value=float(data.get("value") or 0.0),
            currency=data.get("currency") or "RUB",
            text=data.get("text") or "",
        )


@dataclass
class Category:
    """A node of the category tree. The URL is absolute and used as identity."""

    name: str
    url: str
    subcategories: List["Category"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"name": self.name, "url": self.url}
        if self.subcategories:
            out["subcategories"] = [c.to_dict() for c in self.subcategories]
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Category":
        return cls(
            name=data.get("name") or "",
            url=data.get("url") or "",
            subcategories=[cls.from_dict(c) for c in data.get("subcategories") or []],
        )


@dataclass
class Listing:
    """Represents an Avito listing with all extracted data."""

    # Summary info (from the results page)
    id: str = ""
    title: str = ""
    url: str = ""
    price: Price = field(default_factory=Price)
    location: str = ""
    category_url: str = ""
    category_id: str = ""

    # Detailed info (populated by enrichment)
    description: str = ""
    image_urls: List[str] = field(default_factory=list)
    published_at: Optional[datetime] = None
    attributes: Dict[str, str] = field(default_factory=dict)

    def is_valid(self) -> bool:
        """A listing needs at least a title or a URL to be worth keeping."""
        return bool(self.title or self.url)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with camelCase keys, leaving out empty optional fields."""
        out: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
        }
        if self.description:
            out["description"] = self.description
        out["price"] = self.price.to_dict()
        out["url"] = self.url
        if self.image_urls:
            out["imageUrls"] = list(self.image_urls)
        if self.location:
            out["location"] = self.location
        if self.category_id:
            out["categoryId"] = self.category_id
        if self.category_url:
            out["categoryUrl"] = self.category_url
        if self.published_at is not None:
            out["publishedAt"] = self.published_at.isoformat()
        if self.attributes:
            out["attributes"] = dict(self.attributes)
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Listing":
        published = data.get("publishedAt")
        return cls(
            id=data.get("id") or "",
            title=data.get("title") or "",
            url=data.get("url") or "",
            price=Price.from_dict(data.get("price") or {}),
            location=data.get("location") or "",
            category_url=data.get("categoryUrl") or "",
            category_id=data.get("categoryId") or "",
            description=data.get("description") or "",
            image_urls=list(data.get("imageUrls") or []),
            published_at=datetime.fromisoformat(published) if published else None,
            attributes=dict(data.get("attributes") or {}),
        )
