# Overview: UTC timestamp helpers shared by models, services and routes.

"""
All stored timestamps are UTC-naive (tzinfo=None). Responses render them as
ISO-8601 with a trailing 'Z'. Query parameters may carry any offset and are
normalized to UTC-naive before they reach a filter.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from .errors import ValidationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.replace(microsecond=0).isoformat() + "Z"


def parse_timestamp_param(field: str, raw: Optional[str]) -> Optional[datetime]:
    """
    Parse an optional ISO-8601 query parameter ("2026-10-19T08:00:00Z",
    "...+08:00", or naive, which is taken as UTC).

    Blank -> None. Anything unparseable -> ValidationError naming the field.
    """
    if raw is None or not raw.strip():
        return None

    text = raw.strip()
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime", [field])

    if parsed.tzinfo is None:
        return parsed
    return parsed.astimezone(timezone.utc).replace(tzinfo=None)
