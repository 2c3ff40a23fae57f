"""
Admin dashboard aggregations.

Per-participant activity rows, the summary cards shown above them and the
most recent entries, all computed from the research rows.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from analytics.grouping import Records, column, group_summaries, records_frame

log = logging.getLogger("admin_overview")

RECENT_ENTRIES_LIMIT = 20
RECENT_ENTRY_FIELDS = ("user_id", "entry_date", "mood_score", "sleep_duration", "disturbances")


def _plain(value: Any) -> Any:
    if value is None or value is pd.NaT or value is pd.NA:
        return None
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and np.isnan(value):
        return None
    return value


def _entry_dates(frame: pd.DataFrame) -> pd.Series:
    return pd.to_datetime(column(frame, "entry_date"), errors="coerce", utc=True, format="ISO8601")


def user_overview(records: Records) -> List[Dict[str, Any]]:
    """One row per user: entry count, mean mood/sleep and last entry date.

    Rows are ordered by most recent activity; users whose dates are all
    unparseable sort last.
    """
    frame = records_frame(records)
    groups = group_summaries(frame, "user_id", ["mood_score", "sleep_duration"])
    if not groups:
        return []

    last_seen: Dict[Any, pd.Timestamp] = {}
    for user, when in zip(column(frame, "user_id"), _entry_dates(frame)):
        user = _plain(user)
        if pd.isna(when):
            continue
        if user not in last_seen or when > last_seen[user]:
            last_seen[user] = when

    rows = [
        {
            "user_id": g.key[0],
            "total_entries": g.count,
            "avg_mood": g.mean("mood_score"),
            "avg_sleep": g.mean("sleep_duration"),
            "last_entry_date": (
                last_seen[g.key[0]].strftime("%Y-%m-%d") if g.key[0] in last_seen else None
            ),
        }
        for g in groups
    ]
    rows.sort(key=lambda r: r["last_entry_date"] or "", reverse=True)
    return rows


def recent_entries(records: Records, limit: int = RECENT_ENTRIES_LIMIT) -> List[Dict[str, Any]]:
    """The *limit* newest entries by entry_date, newest first."""
    frame = records_frame(records)
    if frame.empty:
        return []
    order = (
        _entry_dates(frame)
        .reset_index(drop=True)
        .sort_values(ascending=False, kind="mergesort", na_position="last")
        .index[:limit]
    )
    picked = pd.DataFrame({f: column(frame, f) for f in RECENT_ENTRY_FIELDS}).reset_index(drop=True)
    return [
        {f: _plain(picked.at[i, f]) for f in RECENT_ENTRY_FIELDS}
        for i in order
    ]


def admin_overview(records: Records, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Summary cards, per-user rows and recent entries for the admin page.

    ``avg_mood_overall`` is the mean of the per-user averages, so every
    participant weighs the same regardless of how often they journal.
    ``active_users_today`` counts distinct users with an entry dated today
    (UTC).
    """
    frame = records_frame(records)
    users = user_overview(frame)
    today: date = (now or datetime.now(timezone.utc)).date()

    active_today = set()
    for user, when in zip(column(frame, "user_id"), _entry_dates(frame)):
        if not pd.isna(when) and when.date() == today:
            active_today.add(_plain(user))

    summary = {
        "total_users": len(users),
        "total_entries": int(sum(u["total_entries"] for u in users)),
        "active_users_today": len(active_today),
        "avg_mood_overall": (
            sum(u["avg_mood"] for u in users) / len(users) if users else 0.0
        ),
    }
    log.info(
        "Admin overview: %d users, %d entries, %d active today",
        summary["total_users"], summary["total_entries"], summary["active_users_today"],
    )
    return {
        "summary": summary,
        "users": users,
        "recent_entries": recent_entries(frame),
    }
