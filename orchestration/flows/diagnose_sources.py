import os, json
from datetime import date, timedelta
from typing import Any, Dict, List

import polars as pl
from dotenv import load_dotenv
from prefect import flow, task, get_run_logger

from libs.py.combined import PairConfig, PairRegistry
from libs.py.config_loader import get_combined_config, load_dashboard_config
from libs.py.dates import today_utc
from libs.py.errors import UpstreamFailure
from libs.py.resolver import resolve_source
from libs.py.series import Series
from libs.py.store import DB_PATH, DuckDBSeriesStore, SeriesStore

OUT = "data/_diagnostics"


def _dates_frame(series: Series) -> pl.DataFrame:
    return pl.DataFrame({"date": [p.date for p in series.points]}, schema={"date": pl.Date})


def missing_dates(left: Series, right: Series, tail: int = 10) -> List[str]:
    """Dates in `left` with no observation in `right`, most recent `tail` only."""
    d = _dates_frame(left).join(_dates_frame(right), on="date", how="anti").sort("date")
    return [str(x) for x in d.tail(tail)["date"].to_list()]


@task
def scan_candidates(store: SeriesStore, pair: PairConfig, start: date, end: date) -> List[Dict[str, Any]]:
    logger = get_run_logger()
    scans = []
    for cid in pair.base_candidates:
        try:
            s = store.fetch_series(cid, start, end)
        except UpstreamFailure as e:
            logger.warning(f"{cid}: query error - {e}")
            scans.append({"indicator_id": cid, "error": str(e)})
            continue
        logger.info(f"{cid}: {len(s)} rows, {s.first_date} .. {s.last_date}")
        scans.append({
            "indicator_id": cid,
            "rows": len(s),
            "date_min": str(s.first_date) if s.first_date else None,
            "date_max": str(s.last_date) if s.last_date else None,
        })
    return scans


@task
def diagnose_pair(store: SeriesStore, pair: PairConfig, start: date, end: date) -> Dict[str, Any]:
    logger = get_run_logger()
    report: Dict[str, Any] = {"pair_id": pair.pair_id, "start_date": str(start), "end_date": str(end)}
    report["candidates"] = scan_candidates.fn(store, pair, start, end)

    base_id, base = resolve_source(store, pair.base_candidates, start, end)
    report["selected_base"] = base_id
    if base_id is None:
        logger.warning(f"{pair.pair_id}: no base candidate has data")

    try:
        main = store.fetch_series(pair.main_indicator, start, end)
    except UpstreamFailure as e:
        logger.error(f"{pair.pair_id}: main series {pair.main_indicator} failed - {e}")
        report["error"] = str(e)
        return report

    shared = _dates_frame(base).join(_dates_frame(main), on="date", how="inner").sort("date")
    report["main_rows"] = len(main)
    report["overlap_rows"] = shared.height
    report["overlap_last"] = str(shared["date"].max()) if shared.height else None
    report["missing_in_base"] = missing_dates(main, base)
    report["missing_in_main"] = missing_dates(base, main)
    if shared.height and main.last_date and shared["date"].max() < main.last_date:
        logger.warning(f"{pair.pair_id}: comparison chart stops at {shared['date'].max()}, main runs to {main.last_date}")

    try:
        spread_meta = store.get_indicator(pair.spread_indicator)
    except UpstreamFailure as e:
        spread_meta = None
        logger.warning(f"{pair.spread_indicator}: metadata lookup failed - {e}")
    report["spread_indicator"] = pair.spread_indicator
    report["spread_metadata_active"] = spread_meta is not None
    if spread_meta is None:
        logger.warning(f"{pair.spread_indicator}: metadata missing or inactive")
    return report


@flow(name="diagnose_sources")
def run(days: int = 730, db_path: str | None = None, write: bool = True) -> List[Dict[str, Any]]:
    load_dotenv()
    logger = get_run_logger()
    registry = PairRegistry.from_config(get_combined_config(load_dashboard_config()))
    store = DuckDBSeriesStore(db_path or os.getenv("DUCKDB_PATH", DB_PATH))
    end = today_utc()
    start = end - timedelta(days=days)
    logger.info(f"Diagnosing {len(registry.pairs)} combined pairs over {start} .. {end}")
    reports = [diagnose_pair(store, p, start, end) for p in registry.pairs]
    if write:
        os.makedirs(OUT, exist_ok=True)
        with open(os.path.join(OUT, "sources.json"), "w") as f:
            json.dump({"generated_at": end.isoformat(), "items": reports}, f, indent=2)
    return reports


if __name__ == "__main__":
    run()
