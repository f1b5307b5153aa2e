"""
shared/utils/normalize.py
Read-side adapters for loosely typed legacy columns.
"""

import json
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

_NON_NUMERIC = re.compile(r"[^0-9.]")


def normalize_to_string_array(value: Any) -> list[str]:
    """
    Normalize a specialties/languages value to a list of strings.

    Accepts:
        - None / empty            -> []
        - list or tuple           -> stripped, non-empty str() of each item
        - JSON array string       -> parsed, then normalized as a list
        - any other string        -> split on commas
        - any other scalar        -> [str(value)]

    Never raises.
    """
    if value is None:
        return []

    if isinstance(value, (list, tuple)):
        items = []
        for item in value:
            if item is None:
                continue
            text = str(item).strip()
            if text:
                items.append(text)
        return items

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        if text.startswith("["):
            try:
                parsed = json.loads(text)
            except ValueError:
                parsed = None
            if isinstance(parsed, list):
                return normalize_to_string_array(parsed)
            # Postgres array literal, e.g. {a,b}, falls through to comma split
            text = text.strip("[]")
        if text.startswith("{") and text.endswith("}"):
            text = text[1:-1]
        return [part.strip().strip('"') for part in text.split(",") if part.strip().strip('"')]

    return [str(value)]


def parse_compensation(value: Optional[str]) -> Optional[Decimal]:
    """'$1,500/day' -> Decimal('1500'). Returns None when nothing numeric is left."""
    if not value:
        return None
    digits = _NON_NUMERIC.sub("", value)
    if not digits:
        return None
    try:
        return Decimal(digits)
    except InvalidOperation:
        return None
