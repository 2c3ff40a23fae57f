"""
FastAPI backend for the astrology research dashboard.

Route handlers are defined here; DB utilities live in routes/helpers.py and
all statistics come from research_insights.py.
"""

from __future__ import annotations

import logging
import os
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from admin_overview import admin_overview
from research_charts import (
    average_mood,
    correlation_heatmap,
    nakshatra_distribution,
    phase_mood_distribution,
    research_progress,
)
from research_exports import get_exporter
from research_insights import calculate_research_metrics, generate_research_insights
from routes.helpers import _fetch_one, fetch_research_records
from validation import is_user_admin, sanitize_input, validate_journal_entry

log = logging.getLogger("api")

EXPORT_MEDIA_TYPES = {
    "csv": ("text/csv", "csv"),
    "json": ("application/json", "json"),
    "academic": ("text/markdown", "md"),
}


# ─── App setup ─────────────────────────────────────────────

app = FastAPI(title="Astrology Research API", version="1.0.0")

_origin_env = os.getenv("FRONTEND_ORIGINS", "")
_origins = [o.strip() for o in _origin_env.split(",") if o.strip()] or [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


class JournalEntryPayload(BaseModel):
    date: str
    sleep_duration: Optional[float] = None
    mood_score: Optional[int] = None
    disturbances: bool = False
    notes: Optional[str] = None


def _require_admin(email: Optional[str]) -> None:
    if not is_user_admin(email):
        log.warning("Research access denied for %r", email)
        raise HTTPException(status_code=403, detail="Research dashboard requires admin access")


# ─── Routes ────────────────────────────────────────────────

@app.get("/")
def root() -> Dict[str, Any]:
    return {"service": "astrology-research-api", "status": "ok"}


@app.get("/health-check")
def health_check() -> JSONResponse:
    try:
        _fetch_one("SELECT 1 AS ok")
        return JSONResponse({"status": "Online", "message": "Online"})
    except Exception as e:
        return JSONResponse(
            status_code=200,
            content={
                "status": "Waking up",
                "message": f"Service starting or DB unavailable: {e}",
            },
        )


@app.get("/api/v1/research/insights")
def research_insights(
    start: Optional[str] = None,
    end: Optional[str] = None,
    x_user_email: Optional[str] = Header(default=None),
) -> Dict[str, Any]:
    _require_admin(x_user_email)
    try:
        records = fetch_research_records(start, end)
        insights = [i.to_dict() for i in generate_research_insights(records)]
        return {"insights": insights, "data": insights}
    except Exception as e:
        log.exception("Insight generation failed")
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/api/v1/research/metrics")
def research_metrics(
    start: Optional[str] = None,
    end: Optional[str] = None,
    x_user_email: Optional[str] = Header(default=None),
) -> Dict[str, Any]:
    _require_admin(x_user_email)
    try:
        records = fetch_research_records(start, end)
        metrics = calculate_research_metrics(records).to_dict()
        return {"metrics": metrics, "data": metrics}
    except Exception as e:
        log.exception("Research metrics failed")
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/api/v1/research/charts")
def research_charts(
    start: Optional[str] = None,
    end: Optional[str] = None,
    x_user_email: Optional[str] = Header(default=None),
) -> Dict[str, Any]:
    _require_admin(x_user_email)
    try:
        records = fetch_research_records(start, end)
        return {
            "correlation_heatmap": correlation_heatmap(records),
            "moon_phase_mood": phase_mood_distribution(records),
            "nakshatra_distribution": nakshatra_distribution(records),
            "progress": research_progress(records),
            "average_mood": average_mood(records),
        }
    except Exception as e:
        log.exception("Research chart datasets failed")
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/api/v1/research/export")
def research_export(
    format: str = "csv",
    start: Optional[str] = None,
    end: Optional[str] = None,
    x_user_email: Optional[str] = Header(default=None),
) -> Response:
    _require_admin(x_user_email)
    try:
        exporter = get_exporter(format)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    fmt = format.strip().lower()
    try:
        records = fetch_research_records(start, end)
        body = exporter(records)
    except Exception as e:
        log.exception("Research export (%s) failed", fmt)
        raise HTTPException(status_code=500, detail=str(e))

    media_type, ext = EXPORT_MEDIA_TYPES[fmt]
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    return Response(
        content=body,
        media_type=media_type,
        headers={
            "Content-Disposition": f'attachment; filename="astrology_research_data_{stamp}.{ext}"',
        },
    )


@app.get("/api/v1/admin/overview")
def admin_dashboard_overview(
    x_user_email: Optional[str] = Header(default=None),
) -> Dict[str, Any]:
    _require_admin(x_user_email)
    try:
        return admin_overview(fetch_research_records())
    except Exception as e:
        log.exception("Admin overview failed")
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/v1/journal/validate")
def journal_validate(body: JournalEntryPayload) -> Dict[str, Any]:
    errors: List[str] = validate_journal_entry(body.mood_score, body.sleep_duration, body.notes)
    try:
        entry_date = date.fromisoformat(body.date)
    except ValueError:
        errors.append("Date must be an ISO date (YYYY-MM-DD)")
    if errors:
        raise HTTPException(status_code=400, detail=errors)

    entry = body.model_dump()
    entry["date"] = entry_date.isoformat()
    entry["notes"] = sanitize_input(body.notes) if body.notes else None
    return {"valid": True, "entry": entry}
