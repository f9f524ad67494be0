# Overview: UTC clock helpers; every stored timestamp is naive UTC.

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utctoday() -> date:
    """Business date for promotion windows and log ids."""
    return utcnow().date()


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Naive UTC datetime -> "2026-01-15T09:30:00Z" (None stays None)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
