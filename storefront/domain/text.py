"""
Text helpers shared by the catalog components.

Slug generation, format checks for emails and URLs.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from uuid import UUID

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
IMAGE_URL_PATTERN = re.compile(r"^https?://.+\.(jpg|jpeg|png|gif|webp|svg)(\?.*)?$", re.IGNORECASE)
HTTP_URL_PATTERN = re.compile(r"^https?://[^\s/$.?#].[^\s]*$", re.IGNORECASE)


def slugify(value: str) -> str:
    """
    Build a URL slug.

    "Acme Tools & Co." -> "acme-tools-co"
    """
    slug = value.lower().strip()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def unique_slug(base: str, exists: Callable[[str], bool]) -> str:
    """Append -1, -2, ... until `exists` reports the slug free."""
    candidate = base
    counter = 1
    while exists(candidate):
        candidate = f"{base}-{counter}"
        counter += 1
    return candidate


def is_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value))


def is_http_url(value: str) -> bool:
    return bool(HTTP_URL_PATTERN.match(value))


def is_image_url(value: str) -> bool:
    return bool(IMAGE_URL_PATTERN.match(value))


def parse_uuid(value: str | UUID | None) -> UUID | None:
    if isinstance(value, UUID):
        return value
    if not value:
        return None
    try:
        return UUID(str(value))
    except ValueError:
        return None


def truncate(value: str, limit: int) -> str:
    """Cut to `limit` characters, ending with '...' when shortened."""
    if len(value) <= limit:
        return value
    return value[: limit - 3] + "..."
