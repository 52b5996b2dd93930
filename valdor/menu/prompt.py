"""Shared prompt and response parsing for the model-backed extractors."""

from __future__ import annotations

import json

from ..client import ExtractionResponse

PROMPT = """\
This image is a photo of a restaurant menu.
List every dish on the menu that has a price.

Reply with JSON only, in this shape (no other text):
{
  "text": "all legible text on the menu, verbatim",
  "confidence": 0-100,
  "items": [
    {
      "name_english": "dish name in English",
      "name_local": "dish name in Tamil or Sinhala if printed, else empty",
      "description": "short description",
      "price": 0.0,
      "category": "rice | noodles | curry | appetizers | breads | beverages | desserts | seafood | chicken | mutton | vegetarian",
      "ingredients": ["..."],
      "dietaryTags": ["..."],
      "isVeg": false,
      "isSpicy": false,
      "confidence": 0-100
    }
  ]
}

Prices are plain numbers without currency symbols.
confidence is 80-100 when the text is clearly legible, 50-80 when
partially legible, and below 50 when mostly guessed.
"""


def _strip_fences(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        # Remove first and last fence lines
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines)
    return cleaned


def _item_name(item: dict) -> str:
    return str(item.get("name_english") or item.get("name") or "").strip()


def _item_confidence(item: dict) -> float:
    try:
        return float(item.get("confidence", 0) or 0)
    except (TypeError, ValueError):
        return 0.0


def parse_model_response(text: str, source: str = "") -> ExtractionResponse:
    """Parse the JSON a vision model returned for a menu image.

    Accepts either the requested object or a bare array of items.
    Duplicate dish names keep the higher-confidence entry.
    """
    data = json.loads(_strip_fences(text))
    if isinstance(data, list):
        data = {"items": data}
    if not isinstance(data, dict):
        raise ValueError("Model response is not a JSON object or array")

    seen: dict[str, dict] = {}
    unnamed: list[dict] = []
    for item in data.get("items") or data.get("menuItems") or []:
        if not isinstance(item, dict):
            continue
        name = _item_name(item).lower()
        if not name:
            unnamed.append(item)
        elif name not in seen or _item_confidence(item) > _item_confidence(seen[name]):
            seen[name] = item

    try:
        confidence = float(data.get("confidence", 0) or 0)
    except (TypeError, ValueError):
        confidence = 0.0

    return ExtractionResponse(
        items=list(seen.values()) + unnamed,
        confidence=confidence,
        diagnostic_text=str(data.get("text") or ""),
        source=source,
    )
