"""
Exceptions raised by the fetch and extraction pipeline.
"""
from typing import Optional


class AvitologError(Exception):
    """Base class for every error the pipeline raises on purpose."""


class FetchError(AvitologError):
    """Transport failure or a non-2xx, non-429 response for one URL."""

    def __init__(self, url: str, cause: object):
        self.url = url
        self.cause = cause
        super().__init__(f"Failed to fetch {url}: {cause}")


class RateLimitExceeded(FetchError):
    """The site kept answering 429 after every retry."""

    def __init__(self, url: str, attempts: int):
        self.attempts = attempts
        super().__init__(url, f"rate limited after {attempts} attempts")


class ParseFailure(AvitologError):
    """Response body could not be turned into a document."""

    def __init__(self, url: str, cause: Optional[object] = None):
        self.url = url
        self.cause = cause
        super().__init__(f"Failed to parse {url}: {cause}")


class MissingURL(AvitologError, ValueError):
    """Enrichment was requested for a listing without a URL."""

    def __init__(self, listing_id: str = ""):
        self.listing_id = listing_id
        super().__init__(f"Listing {listing_id or '<no id>'} has no URL")
