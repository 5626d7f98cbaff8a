"""
Response validator for Braindump.

Extracts the JSON object from the oracle's reply and validates every item
independently. Structural problems raise ResponseParseError; a bad date or
time only nulls that field.
"""

import json
import logging
import re
from datetime import date
from typing import Any

from pydantic import ValidationError

from braindump.errors import ResponseParseError
from braindump.models import CATEGORY_LABELS, Category, CategoryItem

logger = logging.getLogger(__name__)

# ```json {...} ``` with the tag on its own line or followed by a space
FENCED_JSON = re.compile(r"```json\s*(.*?)\s*```", re.IGNORECASE | re.DOTALL)


def extract_json(text: str) -> dict[str, Any]:
    """Return the JSON object from a fenced ``json`` block or a bare object."""
    if not isinstance(text, str):
        raise ResponseParseError("Oracle reply is not text", raw=repr(text))

    stripped = text.strip()
    if match := FENCED_JSON.search(stripped):
        payload = match.group(1)
    elif stripped.startswith("{"):
        payload = stripped
    else:
        raise ResponseParseError("No JSON object or fenced json block in reply", raw=text)

    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"Invalid JSON in reply: {e}", raw=text) from e

    if not isinstance(data, dict):
        raise ResponseParseError(f"Expected a JSON object, got {type(data).__name__}", raw=text)
    return data


def validate_items(
    raw_items: list[Any], anchor_date: date, label: str = ""
) -> list[CategoryItem]:
    """Validate one category's items; malformed fields degrade to None."""
    items = []
    for raw in raw_items:
        try:
            items.append(CategoryItem.model_validate(raw, context={"anchor_date": anchor_date}))
        except ValidationError as e:
            # Only an item without usable text ends up here
            logger.warning(f"Dropping unusable item in {label or 'reply'}: {raw!r} ({e.error_count()} errors)")
    return items


def parse_response(text: str, anchor_date: date) -> dict[Category, list[CategoryItem]]:
    """
    Parse and validate an oracle reply.

    Returns every category in taxonomy order; missing ones are empty lists.
    """
    data = extract_json(text)

    known = set(CATEGORY_LABELS.values())
    for key in data:
        if key not in known:
            logger.warning(f"Ignoring unknown category in reply: {key!r}")

    parsed: dict[Category, list[CategoryItem]] = {}
    for category, label in CATEGORY_LABELS.items():
        raw_items = data.get(label)
        if raw_items is None:
            parsed[category] = []
            continue
        if not isinstance(raw_items, list):
            raise ResponseParseError(f"Category {label!r} is not a list", raw=text)
        parsed[category] = validate_items(raw_items, anchor_date, label)

    return parsed
