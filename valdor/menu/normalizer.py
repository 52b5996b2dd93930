"""Raw extraction record → CandidateRecord normalization."""

from __future__ import annotations

import math
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from . import CandidateRecord

# Logical field → raw keys, checked in order. The first present,
# non-null, non-blank value wins.
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "name_english": ("name_english", "nameEnglish", "name", "title"),
    "name_local": ("name_tamil", "name_local", "nameLocal", "name_sinhala"),
    "description": ("description_english", "description", "desc"),
    "price": ("price", "priceLKR", "price_lkr", "cost"),
    "category": ("category", "categoryId", "category_id"),
    "ingredients": ("ingredients",),
    "dietary_tags": ("dietaryTags", "dietary_tags", "tags"),
    "is_vegetarian": ("isVeg", "isVegetarian", "is_vegetarian", "vegetarian"),
    "is_spicy": ("isSpicy", "is_spicy", "spicy"),
    "confidence": ("confidence", "score"),
    "source_image_ref": ("sourceImageRef", "source_image_ref", "sourceImage"),
    "image_url": ("imageUrl", "image_url", "image"),
    "cooking_time": ("cookingTime", "cooking_time"),
}

# Ordered (category key, keywords) pairs; the first pair with a keyword
# at a word start in the dish name wins.
DEFAULT_CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("rice", ("rice", "biriyani", "biryani", "fried rice", "nasi", "pulao", "pilaf")),
    ("noodles", ("noodles", "noodle", "pasta", "spaghetti", "mee", "mie")),
    ("curry", ("curry", "masala", "gravy", "korma")),
    ("appetizers", ("starter", "appetizer", "samosa", "pakora", "vadai", "vada", "fritter")),
    ("breads", ("bread", "roti", "naan", "paratha", "chapati", "dosa", "idli", "appam")),
    ("beverages", ("tea", "coffee", "juice", "drink", "shake", "smoothie", "lassi")),
    ("desserts", ("dessert", "sweet", "cake", "ice cream", "pudding", "kheer", "halwa")),
    ("seafood", ("fish", "prawn", "shrimp", "crab", "seafood", "squid")),
    ("chicken", ("chicken", "fowl")),
    ("mutton", ("mutton", "lamb", "goat")),
    ("vegetarian", ("vegetable", "veg", "paneer", "tofu")),
)

_BEVERAGE_MARKERS = ("beverage", "drink")
_MAIN_MARKERS = ("main", "course")
_TRUE_STRINGS = {"true", "yes", "y", "1", "on"}
_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")


def _category_id(category: Mapping) -> str:
    return str(category.get("_id") or category.get("id") or category.get("name") or "")


def _category_name(category: Mapping) -> str:
    return str(category.get("name") or "").strip().lower()


@dataclass(frozen=True)
class CategoryPolicy:
    """Keyword heuristic that guesses a menu category from a dish name."""

    keywords: tuple[tuple[str, tuple[str, ...]], ...] = DEFAULT_CATEGORY_KEYWORDS
    default_category: str = "Main Course"

    def matching_keys(self, name: str) -> list[str]:
        """Return every category key whose keywords occur in the name."""
        lowered = name.lower()
        keys: list[str] = []
        for key, words in self.keywords:
            for word in words:
                if re.search(rf"\b{re.escape(word)}", lowered):
                    keys.append(key)
                    break
        return keys

    def infer(self, name: str, categories: Sequence[Mapping] | None = None) -> str:
        """Guess a category for a dish.

        With a category list, returns a category id using the chain
        keyword match → "main course" → first non-beverage → first category.
        Without one, returns the matched key (title-cased) or the default.
        """
        keys = self.matching_keys(name)

        if not categories:
            return keys[0].title() if keys else self.default_category

        for key in keys:
            for category in categories:
                cat_name = _category_name(category)
                if cat_name and (key in cat_name or cat_name in key):
                    return _category_id(category)

        for category in categories:
            cat_name = _category_name(category)
            if any(marker in cat_name for marker in _MAIN_MARKERS):
                return _category_id(category)

        for category in categories:
            cat_name = _category_name(category)
            if not any(marker in cat_name for marker in _BEVERAGE_MARKERS):
                return _category_id(category)

        return _category_id(categories[0]) or self.default_category


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def resolve_field(raw: Mapping, field_name: str) -> Any:
    """Return the first non-blank raw value for a logical field, or None."""
    for key in FIELD_ALIASES[field_name]:
        value = raw.get(key)
        if not _is_blank(value):
            return value
    return None


def parse_price(value: Any) -> Decimal:
    """Parse a price; anything unusable or negative becomes 0."""
    if value is None or isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return Decimal("0")
        price = Decimal(str(value))
    else:
        # "LKR 1,250.00", "Rs. 450" → first number in the string
        match = _NUMBER_RE.search(str(value).replace(",", ""))
        if match is None:
            return Decimal("0")
        try:
            price = Decimal(match.group())
        except InvalidOperation:
            return Decimal("0")
    if not price.is_finite() or price < 0:
        return Decimal("0")
    return price


def _as_text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple, set)):
        items = list(value)
    else:
        return []
    return [str(i).strip() for i in items if i is not None and str(i).strip()]


def _as_confidence(value: Any) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(confidence):
        return 0.0
    # Some extractors report 0.0〜1.0
    if 0 < confidence <= 1:
        confidence *= 100
    return max(0.0, min(100.0, confidence))


def _as_minutes(value: Any) -> int | None:
    try:
        minutes = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None
    return minutes if minutes > 0 else None


def normalize(
    raw: Any,
    categories: Sequence[Mapping] | None = None,
    policy: CategoryPolicy | None = None,
) -> CandidateRecord:
    """Normalize one raw extraction record. Never raises."""
    if not isinstance(raw, Mapping):
        return CandidateRecord()

    policy = policy or CategoryPolicy()
    name = _as_text(resolve_field(raw, "name_english"))

    category = resolve_field(raw, "category")
    if isinstance(category, Mapping):
        category = _category_id(category)
    category = _as_text(category) or policy.infer(name, categories)

    return CandidateRecord(
        name_english=name,
        name_local=_as_text(resolve_field(raw, "name_local")),
        description=_as_text(resolve_field(raw, "description")),
        price=parse_price(resolve_field(raw, "price")),
        category=category,
        ingredients=_as_list(resolve_field(raw, "ingredients")),
        dietary_tags=set(_as_list(resolve_field(raw, "dietary_tags"))),
        is_vegetarian=_as_bool(resolve_field(raw, "is_vegetarian")),
        is_spicy=_as_bool(resolve_field(raw, "is_spicy")),
        confidence=_as_confidence(resolve_field(raw, "confidence")),
        source_image_ref=_as_text(resolve_field(raw, "source_image_ref")),
        image_url=_as_text(resolve_field(raw, "image_url")),
        cooking_time=_as_minutes(resolve_field(raw, "cooking_time")),
    )


def to_payload(record: CandidateRecord) -> dict:
    """Build the create-menu-item request body for a record."""
    payload = {
        "name": record.name_english.strip(),
        "description": record.description,
        "price": float(record.price),
        "category": record.category,
        "ingredients": list(record.ingredients),
        "dietaryTags": sorted(record.dietary_tags),
        "isVeg": record.is_vegetarian,
        "isSpicy": record.is_spicy,
        "isAvailable": True,
        "imageUrl": record.image_url,
        "cookingTime": record.cooking_time or 30,
    }
    if record.name_local:
        payload["nameLocal"] = record.name_local
    return payload
