"""
resto_api.utils.dates

Human-readable timestamps stored on every document.
"""

from __future__ import annotations

from datetime import datetime

FULL_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def full_date(now: datetime | None = None) -> str:
    """Format `now` (defaults to the current local time) as `YYYY-MM-DD HH:MM:SS`."""
    return (now or datetime.now()).strftime(FULL_DATE_FORMAT)
