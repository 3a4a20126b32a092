import logging
from datetime import date
from typing import NamedTuple, Optional, Sequence

from libs.py.errors import UpstreamFailure
from libs.py.series import Series
from libs.py.store import SeriesStore


class ResolvedSource(NamedTuple):
    indicator_id: Optional[str]
    series: Series


def resolve_source(store: SeriesStore, candidates: Sequence[str], start: date, end: date) -> ResolvedSource:
    """Return the first candidate, in priority order, that has data in [start, end].

    Candidates after the first hit are never queried. A failing lookup counts as
    no data. With no hit the result is an empty series, not an error.
    """
    for cid in candidates:
        try:
            series = store.fetch_series(cid, start, end)
        except UpstreamFailure as e:
            logging.warning(f"Base candidate {cid} lookup failed: {e}")
            continue
        if not series.is_empty:
            return ResolvedSource(cid, series)
    logging.info(f"No base candidate has data in {start}..{end}: {list(candidates)}")
    return ResolvedSource(None, Series.empty())
