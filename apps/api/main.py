from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from datetime import datetime, UTC
import logging, os
from typing import List

from apps.api.models import (
    CombinedIndicatorResponse,
    HeatmapResponse,
    IndicatorSeriesResponse,
    IndicatorsResponse,
)
from libs.py.alerts import compute_stats, detect_alert_ranges
from libs.py.combined import PairRegistry, assemble_combined
from libs.py.config_loader import (
    get_combined_config,
    get_default_days,
    get_factor_keys,
    get_factors,
    load_dashboard_config,
)
from libs.py.dates import resolve_range, today_utc
from libs.py.errors import DashboardError, NotFound
from libs.py.heatmap import build_heatmap_grid, group_by_factor
from libs.py.series import parse_day, sample_points
from libs.py.store import DB_PATH, DuckDBSeriesStore, SeriesStore

app = FastAPI(title="Risk Indicator Dashboard API", version="0.1.0")

# CORS for local Next.js dev server
_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
origins = [o.strip() for o in _origins if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _load_config() -> dict:
    try:
        return load_dashboard_config()
    except FileNotFoundError:
        logging.warning("config/dashboard.yaml not found; running without combined pairs")
        return {}


CONFIG = _load_config()
REGISTRY = PairRegistry.from_config(get_combined_config(CONFIG))
FACTOR_KEYS = get_factor_keys(CONFIG)
SERIES_DAYS = get_default_days(CONFIG, "series", 30)
COMBINED_DAYS = get_default_days(CONFIG, "combined", 730)
HEATMAP_DAYS = get_default_days(CONFIG, "heatmap", 30)


def get_store() -> SeriesStore:
    return DuckDBSeriesStore(os.getenv("DUCKDB_PATH", DB_PATH))


def get_registry() -> PairRegistry:
    return REGISTRY


def meta_with_warnings(extra: dict | None = None, warnings: List[str] | None = None):
    m = {"generated_at": datetime.now(UTC).isoformat(), "config_version": str(CONFIG.get("version", "v0"))}
    if extra:
        m.update(extra)
    if warnings:
        m["warnings"] = warnings
    return m


@app.exception_handler(DashboardError)
def dashboard_error_handler(request: Request, exc: DashboardError):
    if exc.status_code >= 500:
        logging.error(f"{request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


@app.exception_handler(Exception)
def unhandled_error_handler(request: Request, exc: Exception):
    logging.error(f"API error on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/health")
def health():
    return {"status": "ok", "ts": datetime.now(UTC).isoformat()}


@app.get("/api/indicators", response_model=IndicatorsResponse)
def indicators(store: SeriesStore = Depends(get_store)):
    grouped = group_by_factor(store.list_active_indicators(), FACTOR_KEYS)
    return {"factors": get_factors(CONFIG), "indicators": grouped}


# registered before /api/data/{indicator_id} so "combined" is not taken as an id
@app.get("/api/data/combined", response_model=CombinedIndicatorResponse)
def combined_series(
    main_indicator: str | None = None,
    days: int = Query(COMBINED_DAYS, ge=0),
    start_date: str | None = None,
    end_date: str | None = None,
    store: SeriesStore = Depends(get_store),
    registry: PairRegistry = Depends(get_registry),
):
    start, end = resolve_range(days, start_date, end_date)
    view = assemble_combined(store, registry, main_indicator or "", start, end)
    return {
        "main_indicator": view.main_indicator,
        "comparison_data": view.comparison,
        "spread_data": list(view.spread.points),
        "labels": view.labels,
        "stats": view.stats,
        "alert_ranges": view.spread_alert_ranges,
        "comparison_alert_ranges": view.comparison_alert_ranges,
        "meta": meta_with_warnings(
            extra={"start_date": str(start), "end_date": str(end), "base_source": view.base_source},
            warnings=view.warnings,
        ),
    }


@app.get("/api/data/{indicator_id}", response_model=IndicatorSeriesResponse)
def indicator_series(
    indicator_id: str,
    days: int = Query(SERIES_DAYS, ge=0),
    start_date: str | None = None,
    end_date: str | None = None,
    max_points: int = Query(0, ge=0),
    store: SeriesStore = Depends(get_store),
):
    start, end = resolve_range(days, start_date, end_date)
    indicator = store.get_indicator(indicator_id)
    if indicator is None:
        raise NotFound("Indicator not found or inactive")
    series = store.fetch_series(indicator_id, start, end)
    # stats and ranges always see the full series; only the plotted points are thinned
    data = sample_points(list(series.points), max_points)
    return {
        "indicator": indicator,
        "data": data,
        "stats": compute_stats(series),
        "alert_ranges": detect_alert_ranges(series),
        "meta": meta_with_warnings(extra={"start_date": str(start), "end_date": str(end), "points": len(data)}),
    }


@app.get("/api/heatmap", response_model=HeatmapResponse)
def heatmap(
    end_date: str | None = None,
    days: int = Query(HEATMAP_DAYS, ge=1, le=3660),
    store: SeriesStore = Depends(get_store),
    registry: PairRegistry = Depends(get_registry),
):
    end = parse_day(end_date) if end_date else today_utc()
    grid = build_heatmap_grid(store, end, days, hidden_ids=registry.hidden_ids, factors=FACTOR_KEYS)
    status_map = {
        iid: {str(d): cell for d, cell in row.items()}
        for iid, row in grid.status_map.items()
    }
    return {
        "dates": [str(d) for d in grid.dates],
        "indicators": grid.indicators_by_factor,
        "status_map": status_map,
        "meta": meta_with_warnings(extra={"start_date": str(grid.dates[0]), "end_date": str(end)}),
    }
