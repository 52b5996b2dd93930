"""SQLite cache for API listings."""

from .listing_cache import ListingCache
from .schema import ensure_schema

__all__ = [
    "ListingCache",
    "ensure_schema",
]
