from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, List, Optional, Sequence, Tuple, Union

from libs.py.series import AlertRange, Series, Stats

ONE_DAY = timedelta(days=1)


def _rate(alerts: int, total: int) -> float:
    # half-up to one decimal, so 1 of 80 reads 1.3 rather than banker's 1.2
    if not total:
        return 0.0
    return float(Decimal(str(100 * alerts / total)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def detect_alert_ranges(points: Union[Series, Sequence[Any]]) -> List[AlertRange]:
    """Collapse runs of alert days into inclusive [start, end] ranges.

    Accepts a Series or any ascending sequence of points with `date` and
    `status` (e.g. comparison rows). Two alert points belong to the same range
    only if they are exactly one calendar day apart, so a weekend or holiday
    inside an alert window splits it.
    """
    pts = points.points if isinstance(points, Series) else points
    ranges: List[AlertRange] = []
    current: Optional[Tuple[date, date]] = None
    for p in pts:
        if p.status == "alert":
            if current is None:
                current = (p.date, p.date)
            elif p.date - current[1] == ONE_DAY:
                current = (current[0], p.date)
            else:
                ranges.append(AlertRange(start=current[0], end=current[1]))
                current = (p.date, p.date)
        elif current is not None:
            ranges.append(AlertRange(start=current[0], end=current[1]))
            current = None
    if current is not None:
        ranges.append(AlertRange(start=current[0], end=current[1]))
    return ranges


def compute_stats(series: Series) -> Stats:
    total = len(series.points)
    alerts = sum(1 for p in series.points if p.status == "alert")
    latest = series.points[-1] if series.points else None
    return Stats(
        total_days=total,
        alert_days=alerts,
        alert_rate=_rate(alerts, total),
        latest_value=latest.value if latest and latest.value is not None else 0.0,
        latest_status=latest.status if latest else None,
    )
