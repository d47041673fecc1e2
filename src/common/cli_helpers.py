"""Common CLI helper utilities."""

from __future__ import annotations

import argparse
import logging
from datetime import date, datetime, time, timedelta, timezone


def setup_logging(level: int = logging.INFO) -> None:
    """Configure standard logging format for CLI tools."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


def parse_date(value: str, field_name: str = "date") -> date:
    """Parse a date string for argparse arguments.

    Args:
        value: Date string in YYYY-MM-DD format.
        field_name: Name of the field for error messages.

    Returns:
        Parsed date object.

    Raises:
        argparse.ArgumentTypeError: If the value is not a valid date.
    """
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"{field_name} must be YYYY-MM-DD") from exc


def parse_id_list(value: str | None) -> list[str]:
    """Parse a comma-separated list of ids, dropping blanks and duplicates."""
    if not value:
        return []
    ids: list[str] = []
    for part in value.split(","):
        item = part.strip()
        if item and item not in ids:
            ids.append(item)
    return ids


def date_range_to_datetimes(start: date, end: date) -> tuple[datetime, datetime]:
    """Convert an inclusive date range to UTC datetimes.

    The start is midnight of `start`; the end is the last microsecond of `end`
    so that articles published any time on the end date are included.
    """
    if end < start:
        raise ValueError("end date must not be before start date")
    start_dt = datetime.combine(start, time.min, tzinfo=timezone.utc)
    end_dt = datetime.combine(end, time.min, tzinfo=timezone.utc) + timedelta(days=1) - timedelta(microseconds=1)
    return start_dt, end_dt
