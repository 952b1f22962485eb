"""
Common utilities for news source fetchers.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from dateutil import parser as dateparser


def parse_utc_datetime(date_string: Optional[str]) -> datetime:
    """
    Parse a date string and convert to UTC datetime.

    Args:
        date_string: Date string in various formats, or None

    Returns:
        UTC datetime object, or current UTC time if input is None/empty/unparsable
    """
    if not date_string:
        return datetime.now(timezone.utc)

    try:
        parsed_date = dateparser.parse(date_string)
    except (ValueError, OverflowError):
        return datetime.now(timezone.utc)

    if parsed_date.tzinfo:
        return parsed_date.astimezone(timezone.utc)
    else:
        return parsed_date.replace(tzinfo=timezone.utc)


def make_article_id(source_id: Optional[str], published_at: datetime, index: int) -> str:
    """
    Generate the listing ID for an article.

    Args:
        source_id: Provider source identifier, may be None
        published_at: Publication timestamp
        index: Position of the article in the upstream page

    Returns:
        "<source>-<epoch millis>-<index>"
    """
    millis = int(published_at.timestamp() * 1000)
    return f"{source_id or 'src'}-{millis}-{index}"


def clean_text(text: Optional[str]) -> str:
    """
    Clean and normalize text content.

    Args:
        text: Raw text string or None

    Returns:
        Cleaned text string, empty string if input is None
    """
    if not text:
        return ""
    return text.strip()
