"""
Shared utility functions for the news service.
"""
from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from typing import Any, Optional

import tldextract

# Bundled public suffix snapshot only, no network fetch at runtime
_tld_extract = tldextract.TLDExtract(suffix_list_urls=())

_JSON_ARRAY_RE = re.compile(r"\[.*\]", re.DOTALL)
_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


def now_utc() -> datetime:
    """
    Get current UTC datetime with timezone information.

    Returns:
        Current UTC datetime
    """
    return datetime.now(timezone.utc)


def normalize_text(text: str | None) -> str:
    """
    Normalize whitespace in text content.

    Args:
        text: Input text string (can be None)

    Returns:
        Normalized text with single spaces and trimmed edges
    """
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def extract_domain_from_url(url: str | None) -> str:
    """
    Extract the registered domain from a URL.

    Args:
        url: Full URL string

    Returns:
        Lowercase domain such as "theverge.com", or "" when none can be found
    """
    if not url:
        return ""
    extracted = _tld_extract(url)
    domain = f"{extracted.domain}.{extracted.suffix}" if extracted.suffix else extracted.domain
    return domain.lower()


def clamp_to_unit_range(value: float) -> float:
    """
    Clamp a float value to the range [0.0, 1.0].

    Args:
        value: Input float value

    Returns:
        Value clamped to [0.0, 1.0] range
    """
    return max(0.0, min(1.0, value))


def _extract_json(text: str | None, pattern: re.Pattern) -> Optional[Any]:
    if not text:
        return None
    match = pattern.search(text)
    if not match:
        return None
    try:
        return json.loads(match.group(0))
    except ValueError:
        return None


def extract_json_array(text: str | None) -> Optional[list]:
    """
    Pull the first bracketed JSON array out of model output.

    Models often wrap the requested JSON in prose or code fences; everything
    outside the outermost brackets is ignored.

    Returns:
        The parsed list, or None if nothing parsable was found
    """
    data = _extract_json(text, _JSON_ARRAY_RE)
    return data if isinstance(data, list) else None


def extract_json_object(text: str | None) -> Optional[dict]:
    """Same as extract_json_array, for a braced JSON object."""
    data = _extract_json(text, _JSON_OBJECT_RE)
    return data if isinstance(data, dict) else None
