import logging
import os
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

import duckdb

from libs.py.errors import UpstreamFailure
from libs.py.series import Indicator, Observation, Series, observation_from_row, series_from_rows

DB_PATH = os.getenv("DUCKDB_PATH", "db/catalog.duckdb")

INDICATOR_COLUMNS = [
    "id",
    "display_name",
    "indicator_cn",
    "indicator_en",
    "factor",
    "tier",
    "source",
    "series_id",
    "frequency",
    "rule_description",
    "investment_implication",
    "why_it_matter",
    "url",
    "source_url",
    "is_active",
]

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS indicators (
    id VARCHAR PRIMARY KEY,
    display_name VARCHAR,
    indicator_cn VARCHAR,
    indicator_en VARCHAR,
    factor VARCHAR NOT NULL,
    tier VARCHAR,
    source VARCHAR,
    series_id VARCHAR,
    frequency VARCHAR,
    rule_description VARCHAR,
    investment_implication VARCHAR,
    why_it_matter VARCHAR,
    url VARCHAR,
    source_url VARCHAR,
    is_active BOOLEAN DEFAULT TRUE
);

CREATE TABLE IF NOT EXISTS indicator_data (
    indicator_id VARCHAR NOT NULL,
    date DATE NOT NULL,
    value DOUBLE,
    status VARCHAR,
    status_reason VARCHAR,
    PRIMARY KEY (indicator_id, date)
);
"""


class SeriesStore(Protocol):
    def get_indicator(self, indicator_id: str) -> Optional[Indicator]: ...

    def list_active_indicators(self) -> List[Indicator]: ...

    def fetch_series(self, indicator_id: str, start: date, end: date) -> Series: ...

    def fetch_window(
        self, start: date, end: date, indicator_ids: Optional[Iterable[str]] = None
    ) -> List[Tuple[str, Observation]]: ...


def ensure_schema(con: duckdb.DuckDBPyConnection) -> None:
    con.execute(SCHEMA_SQL)


def _rows(cur) -> List[Dict[str, Any]]:
    cols = [d[0] for d in cur.description]
    return [dict(zip(cols, r)) for r in cur.fetchall()]


class DuckDBSeriesStore:
    """Read-only view over the indicator catalog; one connection per call."""

    def __init__(self, path: str = DB_PATH):
        self.path = path

    def _query(self, sql: str, params: List[Any]) -> List[Dict[str, Any]]:
        try:
            con = duckdb.connect(self.path, read_only=True)
        except duckdb.Error as e:
            raise UpstreamFailure(f"cannot open catalog at {self.path}: {e}") from e
        try:
            return _rows(con.execute(sql, params))
        except duckdb.Error as e:
            raise UpstreamFailure(f"catalog query failed: {e}") from e
        finally:
            con.close()

    def get_indicator(self, indicator_id: str) -> Optional[Indicator]:
        rows = self._query(
            f"SELECT {', '.join(INDICATOR_COLUMNS)} FROM indicators WHERE id = ? AND is_active",
            [indicator_id],
        )
        return Indicator(**rows[0]) if rows else None

    def list_active_indicators(self) -> List[Indicator]:
        rows = self._query(
            f"SELECT {', '.join(INDICATOR_COLUMNS)} FROM indicators WHERE is_active ORDER BY factor, tier, id",
            [],
        )
        return [Indicator(**r) for r in rows]

    def fetch_series(self, indicator_id: str, start: date, end: date) -> Series:
        rows = self._query(
            """
            SELECT date, value, status, status_reason
            FROM indicator_data
            WHERE indicator_id = ? AND date BETWEEN ? AND ?
            ORDER BY date
            """,
            [indicator_id, start, end],
        )
        return series_from_rows(indicator_id, rows)

    def fetch_window(
        self, start: date, end: date, indicator_ids: Optional[Iterable[str]] = None
    ) -> List[Tuple[str, Observation]]:
        sql = """
            SELECT indicator_id, date, value, status, status_reason
            FROM indicator_data
            WHERE date BETWEEN ? AND ?
        """
        params: List[Any] = [start, end]
        if indicator_ids is not None:
            ids = list(indicator_ids)
            if not ids:
                return []
            sql += f" AND indicator_id IN ({', '.join('?' for _ in ids)})"
            params.extend(ids)
        rows = self._query(sql + " ORDER BY date", params)
        logging.debug(f"fetch_window {start}..{end}: {len(rows)} rows")
        return [(r["indicator_id"], observation_from_row(r)) for r in rows]
