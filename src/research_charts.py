"""Chart-ready datasets for the research dashboard."""

from __future__ import annotations

from typing import Any, Dict, List

from analytics.grouping import Records, count_by, group_summaries, records_frame
from constants import NAKSHATRAS

MIN_HEATMAP_CELL_SIZE = 2
PROGRESS_TARGET_ENTRIES = 100
PROGRESS_GOOD_ENTRIES = 50


def correlation_heatmap(records: Records) -> List[Dict[str, Any]]:
    """Mean mood per (birth rasi, moon rasi) cell with at least 2 entries."""
    groups = group_summaries(records, ["user_birth_rasi", "moon_rasi"], ["mood_score"])
    return [
        {
            "birth_rasi": g.key[0],
            "moon_rasi": g.key[1],
            "avg_mood": g.mean("mood_score"),
            "count": g.count,
        }
        for g in groups
        if g.count >= MIN_HEATMAP_CELL_SIZE
    ]


def phase_mood_distribution(records: Records) -> List[Dict[str, Any]]:
    groups = group_summaries(records, "moon_phase", ["mood_score"])
    return [
        {"phase": g.key[0], "avg_mood": g.mean("mood_score"), "count": g.count}
        for g in groups
    ]


def nakshatra_distribution(records: Records) -> List[Dict[str, Any]]:
    """Entries per birth nakshatra, in lunar-mansion order.

    Values outside the 27 nakshatras (including missing ones) follow in
    first-appearance order.
    """
    counts = count_by(records, "user_birth_nakshatra")
    ordered = [n for n in NAKSHATRAS if n in counts]
    ordered += [k for k in counts if k not in NAKSHATRAS]
    return [{"nakshatra": k, "count": counts[k]} for k in ordered]


def average_mood(records: Records) -> float:
    """Mean mood over every entry, 0.0 when there are none."""
    frame = records_frame(records)
    if frame.empty:
        return 0.0
    return float(frame["mood_score"].astype(float).mean())


def research_progress(records: Records) -> Dict[str, Any]:
    """Collection progress towards the 100-entry target."""
    total = len(records_frame(records))
    if total >= PROGRESS_TARGET_ENTRIES:
        label = "Excellent"
    elif total >= PROGRESS_GOOD_ENTRIES:
        label = "Good"
    else:
        label = "Growing"
    return {
        "total_entries": total,
        "target_entries": PROGRESS_TARGET_ENTRIES,
        "percent": min(100.0, total / PROGRESS_TARGET_ENTRIES * 100),
        "label": label,
    }
