from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from libs.py.series import Observation, Series, Status


class ComparisonPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: date
    value1: Optional[float] = None
    value2: Optional[float] = None
    status: Optional[Status] = None
    status_reason: Optional[str] = None


def _by_date(series: Series) -> Dict[date, Observation]:
    return {p.date: p for p in series.points}


def align_series(base: Series, main: Series, status_source: Series) -> List[ComparisonPoint]:
    """Inner-join base and main on date.

    value1 is the base leg, value2 the main leg. Status and reason are read from
    status_source only; the alert condition lives on the spread, not on either leg.
    """
    # index the smaller leg and walk the other one in date order
    if len(base) <= len(main):
        lookup, walk, base_is_lookup = _by_date(base), main.points, True
    else:
        lookup, walk, base_is_lookup = _by_date(main), base.points, False
    statuses = _by_date(status_source)

    out: List[ComparisonPoint] = []
    for p in walk:
        other = lookup.get(p.date)
        if other is None:
            continue
        b, m = (other, p) if base_is_lookup else (p, other)
        s = statuses.get(p.date)
        out.append(
            ComparisonPoint(
                date=p.date,
                value1=b.value,
                value2=m.value,
                status=s.status if s else None,
                status_reason=s.status_reason if s else None,
            )
        )
    return out
