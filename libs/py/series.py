import re
from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator

from libs.py.errors import ValidationError

Status = Literal["normal", "alert"]
STATUSES = ("normal", "alert")
ISO_DAY = re.compile(r"\d{4}-\d{2}-\d{2}")


def parse_day(value: Any) -> date:
    """Coerce a store value (date, datetime) or a strict 'YYYY-MM-DD' string to a calendar day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value)
    if not ISO_DAY.fullmatch(s):
        raise ValidationError(f"invalid date {value!r}, expected YYYY-MM-DD")
    try:
        return date.fromisoformat(s)
    except ValueError:
        raise ValidationError(f"invalid date {value!r}, expected YYYY-MM-DD")


def normalize_status(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip().lower()
    return s if s in STATUSES else None


class Observation(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: date
    value: Optional[float] = None
    status: Optional[Status] = None
    status_reason: Optional[str] = None


class Indicator(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    display_name: Optional[str] = None
    indicator_cn: Optional[str] = None
    indicator_en: Optional[str] = None
    factor: str
    tier: Optional[str] = None
    source: Optional[str] = None
    series_id: Optional[str] = None
    frequency: Optional[str] = None
    rule_description: Optional[str] = None
    investment_implication: Optional[str] = None
    why_it_matter: Optional[str] = None
    url: Optional[str] = None
    source_url: Optional[str] = None
    is_active: bool = True


class Series(BaseModel):
    """Observations for one indicator, ascending by date, no duplicate days."""

    model_config = ConfigDict(frozen=True)

    indicator_id: str
    points: Tuple[Observation, ...] = ()

    @field_validator("points")
    @classmethod
    def _sorted_unique(cls, points):
        ordered = tuple(sorted(points, key=lambda p: p.date))
        for prev, cur in zip(ordered, ordered[1:]):
            if prev.date == cur.date:
                raise ValueError(f"duplicate date {cur.date} in series")
        return ordered

    def __len__(self) -> int:
        return len(self.points)

    @property
    def is_empty(self) -> bool:
        return not self.points

    @property
    def first_date(self) -> Optional[date]:
        return self.points[0].date if self.points else None

    @property
    def last_date(self) -> Optional[date]:
        return self.points[-1].date if self.points else None

    @classmethod
    def empty(cls, indicator_id: str = "") -> "Series":
        return cls(indicator_id=indicator_id)


class AlertRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: date
    end: date


class Stats(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_days: int
    alert_days: int
    alert_rate: float
    latest_value: float
    latest_status: Optional[Status] = None


def observation_from_row(row: Dict[str, Any]) -> Observation:
    return Observation(
        date=parse_day(row["date"]),
        value=float(row["value"]) if row.get("value") is not None else None,
        status=normalize_status(row.get("status")),
        status_reason=row.get("status_reason"),
    )


def series_from_rows(indicator_id: str, rows: List[Dict[str, Any]]) -> Series:
    # value-less rows still carry a status and count toward the stats
    return Series(indicator_id=indicator_id, points=tuple(observation_from_row(r) for r in rows))


def sample_points(points: List[Any], max_points: int) -> List[Any]:
    if max_points <= 0 or len(points) <= max_points:
        return list(points)
    stride = -(-len(points) // max_points)
    return [p for i, p in enumerate(points) if i % stride == 0]
