from datetime import UTC, date, datetime, timedelta
from typing import Tuple

from libs.py.errors import ValidationError
from libs.py.series import parse_day


def today_utc() -> date:
    return datetime.now(UTC).date()


def resolve_range(
    days: int,
    start_date: str | None = None,
    end_date: str | None = None,
    today: date | None = None,
) -> Tuple[date, date]:
    """Explicit [start_date, end_date] when both are given, else the last `days` days up to today."""
    if start_date and end_date:
        start, end = parse_day(start_date), parse_day(end_date)
        if start > end:
            raise ValidationError(f"start_date {start} is after end_date {end}")
        return start, end
    if days < 0:
        raise ValidationError("days must be non-negative")
    end = today or today_utc()
    return end - timedelta(days=days), end
