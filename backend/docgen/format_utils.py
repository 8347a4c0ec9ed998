"""Consistent formatting for dates and sizes shown in generated documents."""
from __future__ import annotations

from datetime import date, datetime


def format_date(d: date | datetime | None = None) -> str:
    """Long US form, e.g. 'October 19, 2026'."""
    d = d or datetime.now()
    return f"{d.strftime('%B')} {d.day}, {d.year}"


def bytes_to_mb(size: int) -> float:
    return size / (1024 * 1024)


def format_megabytes(size: int, precision: int = 2) -> str:
    return f"{bytes_to_mb(size):,.{precision}f} MB"
