"""
shared/utils/slug.py
URL slugs for public talent profile links.
"""

import re
import uuid
from typing import Optional

_STRIP = re.compile(r"[^\w\s-]", re.ASCII)
_SPACES = re.compile(r"\s+")
_DASHES = re.compile(r"-+")


def create_slug(text: str) -> str:
    """'  Jane O'Neil ' -> 'jane-oneil'"""
    slug = (text or "").lower().strip()
    slug = _STRIP.sub("", slug)
    slug = _SPACES.sub("-", slug)
    slug = _DASHES.sub("-", slug)
    return slug.strip("-")


def create_name_slug(first_name: Optional[str], last_name: Optional[str]) -> str:
    return create_slug(f"{first_name or ''} {last_name or ''}")


def parse_uuid(value: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(value)
    except (ValueError, AttributeError, TypeError):
        return None
