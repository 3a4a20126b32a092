import logging
from datetime import date
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from libs.py.alerts import compute_stats, detect_alert_ranges
from libs.py.alignment import ComparisonPoint, align_series
from libs.py.errors import NotFound, UpstreamFailure, ValidationError
from libs.py.resolver import resolve_source
from libs.py.series import AlertRange, Indicator, Series, Stats
from libs.py.store import SeriesStore


class PairLabels(BaseModel):
    model_config = ConfigDict(frozen=True)

    line1: str
    line2: str
    spread: str


class PairConfig(BaseModel):
    """A combined indicator: main leg vs. the first base candidate with data, plus their spread."""

    model_config = ConfigDict(frozen=True)

    pair_id: str
    base_candidates: Tuple[str, ...]
    main_indicator: str
    spread_indicator: str
    labels: PairLabels
    hidden: Tuple[str, ...] = ()


class PairRegistry:
    """Pair configs keyed by both main and spread id. Built once, never mutated."""

    def __init__(self, pairs: List[PairConfig]):
        index: Dict[str, PairConfig] = {}
        for p in pairs:
            for key in (p.main_indicator, p.spread_indicator):
                if key in index and index[key].pair_id != p.pair_id:
                    raise ValueError(f"{key} is claimed by pairs {index[key].pair_id} and {p.pair_id}")
                index[key] = p
        self._index: Mapping[str, PairConfig] = MappingProxyType(index)
        self._pairs: Tuple[PairConfig, ...] = tuple(pairs)
        self._hidden: FrozenSet[str] = frozenset(h for p in pairs for h in p.hidden)

    @classmethod
    def from_config(cls, combined_cfg: Dict[str, Any]) -> "PairRegistry":
        pairs = []
        for pair_id, pair_cfg in (combined_cfg or {}).items():
            pairs.append(
                PairConfig(
                    pair_id=pair_id,
                    base_candidates=tuple(pair_cfg.get("base_candidates", []) or []),
                    main_indicator=pair_cfg["main"],
                    spread_indicator=pair_cfg["spread"],
                    labels=PairLabels(**pair_cfg["labels"]),
                    hidden=tuple(pair_cfg.get("hidden", []) or []),
                )
            )
        return cls(pairs)

    def lookup(self, indicator_id: str) -> Optional[PairConfig]:
        return self._index.get(indicator_id)

    @property
    def pairs(self) -> Tuple[PairConfig, ...]:
        return self._pairs

    @property
    def hidden_ids(self) -> FrozenSet[str]:
        return self._hidden


class CombinedIndicatorView(BaseModel):
    model_config = ConfigDict(frozen=True)

    main_indicator: Indicator
    base_source: Optional[str] = None
    comparison: List[ComparisonPoint]
    spread: Series
    labels: PairLabels
    stats: Stats
    spread_alert_ranges: List[AlertRange]
    comparison_alert_ranges: List[AlertRange] = []
    warnings: List[str] = []


def resolve_display_indicator(store: SeriesStore, requested_id: str, pair: PairConfig) -> Indicator:
    ind = store.get_indicator(requested_id)
    if ind is None and requested_id != pair.main_indicator:
        ind = store.get_indicator(pair.main_indicator)
    if ind is None:
        raise NotFound("Indicator not found or inactive")
    return ind


def assemble_combined(
    store: SeriesStore,
    registry: PairRegistry,
    requested_id: str,
    start: date,
    end: date,
) -> CombinedIndicatorView:
    if not requested_id:
        raise ValidationError("main_indicator parameter is required")
    pair = registry.lookup(requested_id)
    if pair is None:
        raise ValidationError(f"Indicator {requested_id} does not support combined view")

    display = resolve_display_indicator(store, requested_id, pair)
    # required leg: failures propagate
    main = store.fetch_series(pair.main_indicator, start, end)

    warnings: List[str] = []
    base_id, base = resolve_source(store, pair.base_candidates, start, end)
    if base_id is None:
        warnings.append(f"No base data from {', '.join(pair.base_candidates)}")

    try:
        spread = store.fetch_series(pair.spread_indicator, start, end)
    except UpstreamFailure as e:
        logging.error(f"Failed to fetch spread data for {pair.spread_indicator}: {e}")
        warnings.append(f"spread fetch failed: {pair.spread_indicator}")
        spread = Series.empty(pair.spread_indicator)

    # comparison runs split wherever the base leg has a gap
    comparison = align_series(base, main, status_source=spread)
    return CombinedIndicatorView(
        main_indicator=display,
        base_source=base_id,
        comparison=comparison,
        spread=spread,
        labels=pair.labels,
        stats=compute_stats(spread),
        spread_alert_ranges=detect_alert_ranges(spread),
        comparison_alert_ranges=detect_alert_ranges(comparison),
        warnings=warnings,
    )
