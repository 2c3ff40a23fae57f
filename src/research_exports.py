"""
Research dataset export formatters.

Pure transforms of the research rows into CSV text, JSON text or a Markdown
report.  Writing files or streaming downloads is left to the caller
(api.py, export_research.py).
"""

from __future__ import annotations

import json
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from analytics.grouping import Records, column
from constants import CSV_EXPORT_FIELDS
from research_insights import Insight, calculate_research_metrics, generate_research_insights
from routes.helpers import _to_jsonable as helpers_to_jsonable

# Export column -> record keys to read it from, first present wins
CSV_FIELD_SOURCES: Dict[str, Sequence[str]] = {
    "birth_rasi": ("birth_rasi", "user_birth_rasi"),
    "birth_nakshatra": ("birth_nakshatra", "user_birth_nakshatra"),
}

EXPORT_FORMATS = ("csv", "json", "academic")


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (float, np.floating)):
        return bool(np.isnan(value))
    return value is pd.NaT or value is pd.NA


def _rows(records: Records) -> List[Dict[str, Any]]:
    if isinstance(records, pd.DataFrame):
        records = records.astype(object).to_dict(orient="records")
    return [{k: None if _is_missing(v) else v for k, v in dict(r).items()} for r in records]


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    plain = helpers_to_jsonable(value)
    if plain is value:
        raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
    return plain


def _csv_value(value: Any) -> str:
    if _is_missing(value):
        return ""
    if isinstance(value, (bool, np.bool_)):
        return "true" if value else "false"
    if isinstance(value, (float, np.floating)):
        return str(int(value)) if float(value).is_integer() else repr(float(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _pick(row: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        if not _is_missing(row.get(key)):
            return row.get(key)
    return None


def _parse_dates(values: pd.Series) -> pd.Series:
    return pd.to_datetime(values, errors="coerce", utc=True, format="ISO8601")


# ─── CSV ──────────────────────────────────────────────────────

def generate_csv_export(records: Records) -> str:
    """CSV with the CSV_EXPORT_FIELDS header and one line per record.

    Missing values render as empty cells.  ``day_of_week`` falls back to
    the weekday of ``entry_date``; ``user_hash`` is only exported when the
    row carries one (raw user ids are never written).  No trailing newline.
    """
    rows = _rows(records)
    weekdays = _parse_dates(pd.Series([r.get("entry_date") for r in rows], dtype=object))

    lines = []
    for row, weekday in zip(rows, weekdays):
        out = {}
        for name in CSV_EXPORT_FIELDS:
            value = _pick(row, CSV_FIELD_SOURCES.get(name, (name,)))
            if name == "day_of_week" and value is None and not pd.isna(weekday):
                value = weekday.day_name()
            out[name] = _csv_value(value)
        lines.append(out)

    table = pd.DataFrame(lines, columns=list(CSV_EXPORT_FIELDS), dtype=object)
    text = table.to_csv(index=False, lineterminator="\n")
    return text[:-1] if text.endswith("\n") else text


# ─── JSON ─────────────────────────────────────────────────────

def generate_json_export(records: Records, now: Optional[datetime] = None) -> str:
    """JSON document: export metadata plus the rows as given."""
    rows = _rows(records)
    frame = pd.DataFrame.from_records(rows)
    dates = _parse_dates(column(frame, "entry_date")).dropna() if rows else pd.Series(dtype=object)

    metadata = {
        "exported_at": (now or datetime.now(timezone.utc)).isoformat(),
        "total_entries": len(rows),
        "unique_users": int(column(frame, "user_id").nunique(dropna=False)) if rows else 0,
        "date_range": {
            "start": dates.min().strftime("%Y-%m-%d") if len(dates) else None,
            "end": dates.max().strftime("%Y-%m-%d") if len(dates) else None,
        },
    }
    return json.dumps(
        {"metadata": metadata, "research_data": rows},
        indent=2,
        default=_to_jsonable,
    )


# ─── Academic report ──────────────────────────────────────────

def generate_academic_report(
    records: Records,
    insights: Optional[Sequence[Insight]] = None,
    now: Optional[datetime] = None,
) -> str:
    """Markdown research report.  Insights are composed when not given."""
    rows = _rows(records)
    metrics = calculate_research_metrics(rows)
    if insights is None:
        insights = generate_research_insights(rows, now=now)
    generated = now or datetime.now(timezone.utc)

    findings = "\n".join(
        f"### {i.title}\n"
        f"{i.description}\n"
        f"- Confidence: {i.confidence}%\n"
        f"- Sample Size: n={i.sample_size}\n"
        f"- Significance: {i.significance}\n"
        for i in insights
    ) or "No findings yet.\n"

    return (
        "# Astrology Research Report\n"
        f"Generated: {generated:%Y-%m-%d}\n"
        "\n"
        "## Dataset Overview\n"
        f"- Total Entries: {metrics.total_entries}\n"
        f"- Unique Participants: {metrics.unique_users}\n"
        f"- Date Range: {metrics.date_range_days} days\n"
        f"- Moon Phases Covered: {metrics.moon_phases_covered}/4\n"
        f"- Rasi Positions: {metrics.rasi_positions_covered}/12\n"
        f"- Statistical Power: {metrics.statistical_power}%\n"
        "\n"
        "## Key Findings\n"
        f"{findings}"
        "\n"
        "## Methodology\n"
        "- Data Collection: Daily self-reported mood and sleep metrics\n"
        "- Astronomical Data: Precomputed daily planetary positions\n"
        f"- Analysis Period: {metrics.date_range_days} days\n"
        f"- Participants: {metrics.unique_users} individuals with known birth charts\n"
        "\n"
        "## Statistical Notes\n"
        "- Minimum group size for a moon phase finding: n>=5\n"
        "- Confidence and significance are data-volume heuristics, not p-values\n"
        "- Entries missing mood or sleep values are excluded before analysis\n"
    )


def get_exporter(fmt: str) -> Callable[..., str]:
    """Return the formatter for *fmt* (csv, json or academic)."""
    exporters = {
        "csv": generate_csv_export,
        "json": generate_json_export,
        "academic": generate_academic_report,
    }
    key = (fmt or "").strip().lower()
    if key not in exporters:
        raise ValueError(f"Unknown export format {fmt!r}; expected one of {', '.join(EXPORT_FORMATS)}")
    return exporters[key]
