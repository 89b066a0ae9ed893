"""Date parsing helpers shared by sources, sorting and event records."""
from datetime import date, datetime
from typing import Optional

DATE_FORMATS = [
    '%Y-%m-%d',      # ISO 8601
    '%m/%d/%Y',      # US format
    '%m-%d-%Y',      # US format with dashes
    '%B %d, %Y',     # Full month name
    '%b %d, %Y',     # Abbreviated month name
    '%Y/%m/%d',      # Alternative ISO format
]


def parse_date(date_str: Optional[str]) -> Optional[date]:
    """
    Parse a date string in any of the supported formats.

    ISO datetimes ("2025-05-01T10:00:00") are accepted and truncated to the
    date.

    Args:
        date_str: Date string

    Returns:
        date object or None if parsing fails
    """
    if not date_str or not isinstance(date_str, str):
        return None

    text = date_str.strip()
    if 'T' in text:
        text = text.split('T', 1)[0]

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    return None


def normalize_date(date_str: Optional[str]) -> Optional[str]:
    """Normalize a date string to ISO 8601 (YYYY-MM-DD), or None."""
    parsed = parse_date(date_str)
    return parsed.isoformat() if parsed else None


def calculate_days(start_date: str, end_date: Optional[str] = None) -> int:
    """
    Inclusive number of days an event runs.

    Args:
        start_date: First day (ISO 8601)
        end_date: Last day, defaults to the start date

    Returns:
        Day count, at least 1
    """
    start = parse_date(start_date)
    end = parse_date(end_date) if end_date else start
    if start is None or end is None:
        return 1
    return abs((end - start).days) + 1


def time_status(start_date: str, today: Optional[date] = None) -> str:
    """Bucket an event's start date relative to today."""
    today = today or date.today()
    start = parse_date(start_date)
    if start is None:
        return 'Upcoming'
    if start < today:
        return 'Past'
    if start == today:
        return 'Today'

    days_until = (start - today).days
    if days_until <= 7:
        return 'This Week'
    if days_until <= 30:
        return 'This Month'
    return 'Upcoming'
