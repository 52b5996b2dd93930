"""Local input checks run before any extraction or save request."""

from __future__ import annotations

import math
import mimetypes
from dataclasses import fields
from decimal import Decimal, InvalidOperation
from typing import Any
from urllib.parse import urlsplit

from ..config import DEFAULT_ALLOWED_TYPES
from . import CandidateRecord

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
HEIC_TYPES = ("image/heic", "image/heif")

_EDITABLE_FIELDS = {f.name for f in fields(CandidateRecord)}


class ValidationError(ValueError):
    """Input rejected locally; carries the offending field name."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


def validate_upload(
    filename: str,
    size: int,
    content_type: str | None = None,
    *,
    allowed_types: list[str] | None = None,
    max_bytes: int = MAX_UPLOAD_BYTES,
    allow_heic: bool = False,
) -> str:
    """Check an image upload against the type allow-list and size ceiling.

    Returns:
        The resolved content type.

    Raises:
        ValidationError: If the file type or size is not acceptable.
    """
    if not content_type:
        content_type = mimetypes.guess_type(filename)[0] or ""
    content_type = content_type.lower()

    allowed = list(allowed_types or DEFAULT_ALLOWED_TYPES)
    if allow_heic:
        allowed.extend(HEIC_TYPES)
    if content_type not in allowed:
        accepted = "JPEG, PNG, WEBP" + (", HEIC" if allow_heic else "")
        raise ValidationError(
            "file", f"Invalid file type {content_type or 'unknown'!r}. Accepted: {accepted}"
        )

    if size <= 0:
        raise ValidationError("file", "The selected file is empty")
    if size > max_bytes:
        raise ValidationError(
            "file",
            f"File too large: {size / (1024 * 1024):.1f} MB "
            f"(max {max_bytes / (1024 * 1024):.0f} MB). Compress the image and try again",
        )
    return content_type


def image_quality_hint(size: int) -> str:
    """Classify an upload by size; small photos usually extract poorly."""
    kb = size / 1024
    if kb < 100:
        return "low"
    if kb < 500:
        return "medium"
    return "high"


def validate_url(url: str | None) -> str:
    """Return the stripped URL if it parses as an absolute http(s) URL."""
    if url is None or not url.strip():
        raise ValidationError("url", "Please enter a website URL")
    url = url.strip()
    try:
        parts = urlsplit(url)
    except ValueError:
        parts = None
    if parts is None or parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValidationError(
            "url", "Invalid URL format, e.g. https://example.com/menu"
        )
    return url


def _strict_price(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError("price", "Price must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValidationError("price", "Price must be a finite number")
    try:
        price = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError("price", "Price must be a number") from None
    if not price.is_finite():
        raise ValidationError("price", "Price must be a finite number")
    if price < 0:
        raise ValidationError("price", "Price cannot be negative")
    return price


def validate_patch(record: CandidateRecord, patch: dict[str, Any]) -> dict[str, Any]:
    """Validate an edit to a candidate and return the cleaned changes.

    Raises:
        ValidationError: On unknown fields, an empty name or a bad price.
    """
    cleaned: dict[str, Any] = {}
    for key, value in patch.items():
        if key not in _EDITABLE_FIELDS:
            raise ValidationError(key, f"Unknown field: {key}")
        cleaned[key] = value

    name = str(cleaned.get("name_english", record.name_english) or "").strip()
    if not name:
        raise ValidationError("name_english", "Name is required")
    if "name_english" in cleaned:
        cleaned["name_english"] = name

    if "price" in cleaned:
        cleaned["price"] = _strict_price(cleaned["price"])

    if "ingredients" in cleaned:
        value = cleaned["ingredients"] or []
        if isinstance(value, str):
            value = value.split(",")
        cleaned["ingredients"] = [str(i).strip() for i in value if str(i).strip()]

    if "dietary_tags" in cleaned:
        value = cleaned["dietary_tags"] or []
        if isinstance(value, str):
            value = value.split(",")
        cleaned["dietary_tags"] = {str(t).strip() for t in value if str(t).strip()}

    return cleaned


def confidence_level(confidence: float) -> str:
    if confidence >= 90:
        return "high"
    if confidence >= 75:
        return "medium"
    if confidence >= 60:
        return "low"
    return "very_low"
