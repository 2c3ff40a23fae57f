"""
Shared helpers for API routes.
Contains: DB access, type coercion, research row loading.
"""

from __future__ import annotations

import logging
import os
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

import psycopg2
from dotenv import load_dotenv
from psycopg2.extras import RealDictCursor

from constants import RESEARCH_RECORD_FIELDS

load_dotenv()

log = logging.getLogger("api")

RESEARCH_VIEW = "research_data_complete"


# ─── DB helpers ─────────────────────────────────────────────

def _normalize_db_url(value: str) -> str:
    db_url = (value or "").strip()
    if db_url.startswith("postgres://"):
        db_url = db_url.replace("postgres://", "postgresql://", 1)
    return db_url


def _conn_str() -> str:
    return _normalize_db_url(
        os.getenv("POSTGRES_CONNECTION_STRING") or os.getenv("DATABASE_URL") or ""
    )


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def _fetch_all(query: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
    cs = _conn_str()
    if not cs:
        raise RuntimeError("POSTGRES_CONNECTION_STRING is not set")
    conn = psycopg2.connect(cs)
    try:
        with conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(query, params or ())
            rows = cur.fetchall()
            return [{k: _to_jsonable(v) for k, v in dict(row).items()} for row in rows]
    finally:
        conn.close()


def _fetch_one(query: str, params: Optional[tuple] = None) -> Optional[Dict[str, Any]]:
    rows = _fetch_all(query, params=params)
    return rows[0] if rows else None


# ─── Type coercion ──────────────────────────────────────────

def _num(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


# ─── Research data ─────────────────────────────────────────

def fetch_research_records(start: Optional[str] = None, end: Optional[str] = None) -> List[Dict[str, Any]]:
    """Load analysable research rows, oldest first.

    Rows without a mood score or sleep duration are excluded in SQL so the
    insight engine never sees them.
    """
    where = ["mood_score IS NOT NULL", "sleep_duration IS NOT NULL"]
    params: List[Any] = []
    if start:
        where.append("entry_date >= %s")
        params.append(start)
    if end:
        where.append("entry_date <= %s")
        params.append(end)

    rows = _fetch_all(
        f"""
        SELECT {", ".join(RESEARCH_RECORD_FIELDS)}
        FROM {RESEARCH_VIEW}
        WHERE {" AND ".join(where)}
        ORDER BY entry_date ASC
        """,
        tuple(params),
    )
    for row in rows:
        row["mood_score"] = _num(row.get("mood_score"))
        row["sleep_duration"] = _num(row.get("sleep_duration"))
        if "moon_degree" in row:
            row["moon_degree"] = _num(row.get("moon_degree"))
        row["disturbances"] = bool(row.get("disturbances"))
    log.info("Loaded %d research rows (%s -> %s)", len(rows), start or "start", end or "now")
    return rows
