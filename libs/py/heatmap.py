from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from libs.py.series import Indicator, Observation, Status
from libs.py.store import SeriesStore


class HeatmapCell(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Optional[Status] = None
    status_reason: Optional[str] = None
    value: Optional[float] = None


class HeatmapGrid(BaseModel):
    model_config = ConfigDict(frozen=True)

    dates: List[date]
    indicators_by_factor: Dict[str, List[Indicator]]
    status_map: Dict[str, Dict[date, Optional[HeatmapCell]]]

    def cell(self, indicator_id: str, day: date) -> Optional[HeatmapCell]:
        return self.status_map.get(indicator_id, {}).get(day)


def date_window(end: date, days: int) -> List[date]:
    """`days` consecutive calendar days ending at `end`, oldest first."""
    if days <= 0:
        return []
    return [end - timedelta(days=i) for i in range(days - 1, -1, -1)]


def group_by_factor(indicators: Iterable[Indicator], factors: Sequence[str] = ()) -> Dict[str, List[Indicator]]:
    grouped: Dict[str, List[Indicator]] = {f: [] for f in factors}
    for ind in indicators:
        grouped.setdefault(ind.factor, []).append(ind)
    return grouped


def build_heatmap_grid(
    store: SeriesStore,
    end: date,
    days: int,
    hidden_ids: Iterable[str] = (),
    factors: Sequence[str] = (),
) -> HeatmapGrid:
    dates = date_window(end, days)
    hidden = set(hidden_ids)
    indicators = [ind for ind in store.list_active_indicators() if ind.id not in hidden]
    if not dates or not indicators:
        return HeatmapGrid(
            dates=dates,
            indicators_by_factor=group_by_factor(indicators, factors),
            status_map={ind.id: {d: None for d in dates} for ind in indicators},
        )

    ids = [ind.id for ind in indicators]
    lookup: Dict[Tuple[str, date], Observation] = {
        (iid, obs.date): obs for iid, obs in store.fetch_window(dates[0], dates[-1], ids)
    }

    status_map: Dict[str, Dict[date, Optional[HeatmapCell]]] = {}
    for iid in ids:
        row: Dict[date, Optional[HeatmapCell]] = {}
        for d in dates:
            obs = lookup.get((iid, d))
            row[d] = (
                HeatmapCell(status=obs.status, status_reason=obs.status_reason, value=obs.value)
                if obs is not None
                else None
            )
        status_map[iid] = row
    return HeatmapGrid(
        dates=dates,
        indicators_by_factor=group_by_factor(indicators, factors),
        status_map=status_map,
    )
