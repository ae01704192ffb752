"""Parsing and formatting of dates and timestamps at the API boundary."""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional

from .errors import ParseError

DATE_FMT = "%Y-%m-%d"
_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


def parse_date(value: Optional[str]) -> date:
    """Parse a ``YYYY-MM-DD`` string; an empty value means today."""
    if not value:
        return date.today()
    text = value.strip()
    message = f"Invalid date {value!r}; expected YYYY-MM-DD"
    # strptime alone would also take single-digit fields such as 2026-1-5.
    if not _DATE_RE.fullmatch(text):
        raise ParseError(message)
    try:
        return datetime.strptime(text, DATE_FMT).date()
    except ValueError as exc:
        raise ParseError(message) from exc


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC3339 / ISO-8601 timestamp into naive local time.

    Offsets (including a trailing ``Z``) are converted to the local zone;
    naive input is taken to already be local time.
    """
    if not value or not value.strip():
        raise ParseError("Timestamp is required")
    text = value.strip()
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ParseError(f"Invalid timestamp {value!r}; expected RFC3339") from exc
    return to_local_naive(parsed)


def parse_optional_timestamp(value: Optional[str]) -> Optional[datetime]:
    if value is None or not value.strip():
        return None
    return parse_timestamp(value)


def to_local_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def format_timestamp(value: datetime) -> str:
    """Render a naive local timestamp as RFC3339 with the local UTC offset."""
    if value.tzinfo is None:
        value = value.astimezone()
    return value.isoformat()
