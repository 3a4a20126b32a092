from datetime import date

import duckdb
import pytest

from libs.py.store import ensure_schema


@pytest.fixture
def catalog_path(tmp_path):
    """DuckDB catalog seeded with a handful of indicators and observations."""
    path = str(tmp_path / "catalog.duckdb")
    con = duckdb.connect(path)
    ensure_schema(con)
    con.executemany(
        "INSERT INTO indicators (id, display_name, indicator_en, factor, tier, rule_description, is_active) VALUES (?, ?, ?, ?, ?, ?, ?)",
        [
            ("FRED_DFII10", "Real rate", "10Y real yield", "D", "Core", "above 2%", True),
            ("FRED_BAMLH0A0HYM2", "HY OAS", "US HY OAS", "C", "Core", "above 500bp", True),
            ("FRED_RETIRED", "Retired", "Retired", "C", "Watch", "", False),
            ("FRED_VIXCLS", "VIX", "VIX", "V", "Confirm", "", True),
            ("yhfinance_^VIX3M", "VIX3M", "VIX 3M", "V", "Core", "", True),
            ("yhfinance_VIX-VIX3M", "VIX-VIX3M", "VIX minus VIX3M", "V", "Core", "spread above 0", True),
        ],
    )
    con.executemany(
        "INSERT INTO indicator_data VALUES (?, ?, ?, ?, ?)",
        [
            ("FRED_DFII10", date(2024, 1, 1), 10.0, "normal", None),
            ("FRED_DFII10", date(2024, 1, 2), 12.0, "alert", "above threshold"),
            ("FRED_DFII10", date(2024, 1, 3), 11.0, "alert", "above threshold"),
            ("FRED_RETIRED", date(2024, 1, 2), 1.0, "alert", None),
            ("FRED_VIXCLS", date(2024, 1, 1), 13.0, "normal", None),
            ("FRED_VIXCLS", date(2024, 1, 2), 14.0, "normal", None),
            ("FRED_VIXCLS", date(2024, 1, 3), 19.0, "normal", None),
            ("yhfinance_^VIX3M", date(2024, 1, 2), 15.0, "normal", None),
            ("yhfinance_^VIX3M", date(2024, 1, 3), 17.5, "normal", None),
            ("yhfinance_^VIX3M", date(2024, 1, 4), 16.0, "normal", None),
            ("yhfinance_VIX-VIX3M", date(2024, 1, 2), -1.0, "normal", None),
            ("yhfinance_VIX-VIX3M", date(2024, 1, 3), 1.5, "alert", "backwardation"),
        ],
    )
    con.close()
    return path


@pytest.fixture
def client(catalog_path):
    from fastapi.testclient import TestClient

    from apps.api.main import app, get_registry, get_store
    from libs.py.combined import PairRegistry
    from libs.py.store import DuckDBSeriesStore

    registry = PairRegistry.from_config({
        "vix3m": {
            "base_candidates": ["bbg_VIX_Index", "FRED_VIXCLS"],
            "main": "yhfinance_^VIX3M",
            "spread": "yhfinance_VIX-VIX3M",
            "labels": {"line1": "VIX", "line2": "VIX3M", "spread": "VIX-VIX3M"},
            "hidden": ["yhfinance_^VIX3M"],
        },
    })
    app.dependency_overrides[get_store] = lambda: DuckDBSeriesStore(catalog_path)
    app.dependency_overrides[get_registry] = lambda: registry
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
