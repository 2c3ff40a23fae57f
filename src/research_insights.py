"""
Research Insight Engine
=======================
Turns the joined research dataset (journal entry + birth chart + that
day's lunar position, one row per entry) into a ranked list of insights
for the admin research dashboard.

Architecture:
  Metrics    : dataset-level counts, date span, coverage and a heuristic
                0-100 "statistical power" score.
  Analyzers  : four independent, side-effect-free passes over the rows:
                moon phase vs mood, birth rasi x transit rasi vs mood,
                sleep by moon phase, dataset quality.  Each returns an
                AnalyzerResult or None when the data is too thin.
  Composer   : runs the analyzers in a fixed order and stamps every
                insight of the batch with the same generated_at.

Confidence and significance values are heuristics describing how much
data backs a finding.  They are not p-values or confidence intervals.

Callers must drop rows with a missing mood_score or sleep_duration before
calling in (see validation.filter_research_records).
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from analytics.grouping import Records, column, group_summaries, records_frame
from constants import (
    INSIGHT_MOON_PHASE,
    INSIGHT_RASI,
    INSIGHT_SLEEP,
    INSIGHT_STATISTICAL,
)

log = logging.getLogger("research_insights")


# ═══════════════════════════════════════════════════════════════
#  CONSTANTS
# ═══════════════════════════════════════════════════════════════

# Moon phase vs mood
MIN_GROUP_SIZE_FOR_PHASE_INSIGHT = 5
PHASE_CONFIDENCE_TIERS = ((30, 95), (15, 85))
PHASE_CONFIDENCE_FLOOR = 75
PHASE_HIGH_MOOD_DIFFERENCE = 1.5
PHASE_MEDIUM_MOOD_DIFFERENCE = 1.0

# Birth rasi x transit rasi vs mood
MIN_GROUP_SIZE_FOR_RASI_INSIGHT = 3
RASI_CONFIDENCE_TIERS = ((10, 90),)
RASI_CONFIDENCE_FLOOR = 80
RASI_HIGH_MOOD = 8.0
RASI_MEDIUM_MOOD = 7.0
RASI_TOP_GROUPS = 5

# Sleep by moon phase
MIN_SLEEP_RECORDS_FOR_INSIGHT = 10
SLEEP_CONFIDENCE_TIERS = ((50, 90),)
SLEEP_CONFIDENCE_FLOOR = 80
SLEEP_HIGH_MAX_DISTURBANCE_PCT = 20.0
SLEEP_MEDIUM_MAX_DISTURBANCE_PCT = 40.0

# Statistical power heuristic: (threshold, bonus), checked top-down
POWER_ENTRY_TIERS = ((100, 40), (50, 25), (30, 15))
POWER_USER_TIERS = ((10, 20), (5, 10))
POWER_DATE_RANGE_TIERS = ((90, 20), (30, 10))
POWER_PHASE_COVERAGE_BONUS = (4, 10)
POWER_RASI_COVERAGE_BONUS = (8, 10)
MAX_STATISTICAL_POWER = 100

# Dataset quality
EXCELLENT_DATASET_SIZE = 100
GOOD_DATASET_SIZE = 50
STAT_HIGH_POWER = 80
STAT_MEDIUM_POWER = 60


def _tier(value: float, tiers: Sequence[Tuple[float, int]], floor: int = 0) -> int:
    """Return the score of the first tier whose threshold *value* reaches."""
    for threshold, score in tiers:
        if value >= threshold:
            return score
    return floor


# ═══════════════════════════════════════════════════════════════
#  VALUE OBJECTS
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ResearchMetrics:
    total_entries: int = 0
    unique_users: int = 0
    date_range_days: int = 0
    moon_phases_covered: int = 0
    rasi_positions_covered: int = 0
    statistical_power: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class AnalyzerResult:
    description: str
    confidence: int
    sample_size: int
    significance: str
    data: Any = field(default_factory=list)


@dataclass(frozen=True)
class Insight:
    id: str
    type: str
    title: str
    description: str
    confidence: int
    sample_size: int
    significance: str
    data: Any
    generated_at: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ═══════════════════════════════════════════════════════════════
#  METRICS
# ═══════════════════════════════════════════════════════════════

def _date_range_days(entry_dates: pd.Series) -> int:
    parsed = pd.to_datetime(entry_dates, errors="coerce", utc=True, format="ISO8601")
    n_bad = int(parsed.isna().sum())
    if n_bad:
        log.warning("Ignoring %d research rows with an unparseable entry_date", n_bad)
    parsed = parsed.dropna()
    if parsed.empty:
        return 0
    span = (parsed.max() - parsed.min()) / pd.Timedelta(days=1)
    return int(math.ceil(span))


def calculate_research_metrics(records: Records) -> ResearchMetrics:
    """Dataset-level metrics for the research dashboard.

    ``statistical_power`` is an additive 0-100 heuristic built from tiered
    bonuses for entry count, distinct users, date span and moon phase /
    moon rasi coverage.  It is a data-volume signal, not a formal power
    analysis and not a p-value.

    Coverage counts every distinct value seen, including values outside
    the canonical enumerations.  An empty input yields all zeros.
    """
    frame = records_frame(records)
    if frame.empty:
        return ResearchMetrics()

    total = len(frame)
    unique_users = int(column(frame, "user_id").nunique(dropna=False))
    date_range = _date_range_days(column(frame, "entry_date"))
    phases = int(column(frame, "moon_phase").nunique(dropna=False))
    rasis = int(column(frame, "moon_rasi").nunique(dropna=False))

    power = _tier(total, POWER_ENTRY_TIERS)
    power += _tier(unique_users, POWER_USER_TIERS)
    power += _tier(date_range, POWER_DATE_RANGE_TIERS)
    if phases >= POWER_PHASE_COVERAGE_BONUS[0]:
        power += POWER_PHASE_COVERAGE_BONUS[1]
    if rasis >= POWER_RASI_COVERAGE_BONUS[0]:
        power += POWER_RASI_COVERAGE_BONUS[1]

    return ResearchMetrics(
        total_entries=total,
        unique_users=unique_users,
        date_range_days=date_range,
        moon_phases_covered=phases,
        rasi_positions_covered=rasis,
        statistical_power=min(MAX_STATISTICAL_POWER, power),
    )


# ═══════════════════════════════════════════════════════════════
#  ANALYZERS
# ═══════════════════════════════════════════════════════════════

def analyze_moon_phase_correlation(records: Records) -> Optional[AnalyzerResult]:
    """Best and worst moon phase by mean mood.

    Skipped when the best-scoring phase has fewer than
    MIN_GROUP_SIZE_FOR_PHASE_INSIGHT entries.
    """
    groups = group_summaries(records, "moon_phase", ["mood_score"])
    if not groups:
        return None

    ranked = sorted(groups, key=lambda g: g.mean("mood_score"), reverse=True)
    best, worst = ranked[0], ranked[-1]
    if best.count < MIN_GROUP_SIZE_FOR_PHASE_INSIGHT:
        log.debug("Moon phase insight skipped: best phase has %d entries", best.count)
        return None

    best_mood = best.mean("mood_score")
    difference = best_mood - worst.mean("mood_score")
    if difference >= PHASE_HIGH_MOOD_DIFFERENCE:
        significance = "high"
    elif difference >= PHASE_MEDIUM_MOOD_DIFFERENCE:
        significance = "medium"
    else:
        significance = "low"

    return AnalyzerResult(
        description=(
            f"{best.key[0]} shows highest mood scores ({best_mood:.1f}/10). "
            f"{difference:.1f} point difference from lowest phase."
        ),
        confidence=_tier(best.count, PHASE_CONFIDENCE_TIERS, PHASE_CONFIDENCE_FLOOR),
        sample_size=best.count,
        significance=significance,
        data=[
            {"phase": g.key[0], "avg_mood": g.mean("mood_score"), "count": g.count}
            for g in ranked
        ],
    )


def analyze_rasi_correlation(records: Records) -> Optional[AnalyzerResult]:
    """Birth rasi x moon transit rasi pair with the highest mean mood."""
    groups = group_summaries(records, ["user_birth_rasi", "moon_rasi"], ["mood_score"])
    eligible = [g for g in groups if g.count >= MIN_GROUP_SIZE_FOR_RASI_INSIGHT]
    if not eligible:
        log.debug("Rasi insight skipped: no pair with >= %d entries", MIN_GROUP_SIZE_FOR_RASI_INSIGHT)
        return None

    ranked = sorted(eligible, key=lambda g: g.mean("mood_score"), reverse=True)
    best = ranked[0]
    birth_rasi, transit_rasi = best.key
    avg_mood = best.mean("mood_score")
    if avg_mood >= RASI_HIGH_MOOD:
        significance = "high"
    elif avg_mood >= RASI_MEDIUM_MOOD:
        significance = "medium"
    else:
        significance = "low"

    return AnalyzerResult(
        description=(
            f"{birth_rasi} natives show best mood ({avg_mood:.1f}/10) "
            f"during {transit_rasi} moon transits."
        ),
        confidence=_tier(best.count, RASI_CONFIDENCE_TIERS, RASI_CONFIDENCE_FLOOR),
        sample_size=best.count,
        significance=significance,
        data=[
            {
                "birth_rasi": g.key[0],
                "transit_rasi": g.key[1],
                "avg_mood": g.mean("mood_score"),
                "count": g.count,
            }
            for g in ranked[:RASI_TOP_GROUPS]
        ],
    )


def analyze_sleep_patterns(records: Records) -> Optional[AnalyzerResult]:
    """Mean sleep and disturbance rate per moon phase."""
    frame = records_frame(records)
    hours = pd.to_numeric(column(frame, "sleep_duration"), errors="coerce")
    slept = hours > 0
    n_sleep = int(slept.sum())
    if n_sleep < MIN_SLEEP_RECORDS_FOR_INSIGHT:
        log.debug("Sleep insight skipped: %d entries with sleep data", n_sleep)
        return None

    disturbed = column(frame, "disturbances").fillna(False).astype(bool)
    # Known discrepancy: the overall rate uses every row as denominator while
    # the per-phase rates below only use rows with sleep_duration > 0.
    disturbance_rate = disturbed.sum() / len(frame) * 100

    subset = pd.DataFrame({
        "moon_phase": column(frame, "moon_phase")[slept],
        "sleep_duration": hours[slept],
        "disturbed": disturbed[slept].astype(int),
    })
    groups = group_summaries(subset, "moon_phase", ["sleep_duration", "disturbed"])
    ranked = sorted(groups, key=lambda g: g.mean("sleep_duration"), reverse=True)
    best = ranked[0]

    if disturbance_rate <= SLEEP_HIGH_MAX_DISTURBANCE_PCT:
        significance = "high"
    elif disturbance_rate <= SLEEP_MEDIUM_MAX_DISTURBANCE_PCT:
        significance = "medium"
    else:
        significance = "low"

    return AnalyzerResult(
        description=(
            "Sleep quality varies by moon phase. "
            f"Best sleep during {best.key[0]} ({best.mean('sleep_duration'):.1f}h avg). "
            f"Overall disturbance rate: {disturbance_rate:.1f}%"
        ),
        confidence=_tier(n_sleep, SLEEP_CONFIDENCE_TIERS, SLEEP_CONFIDENCE_FLOOR),
        sample_size=n_sleep,
        significance=significance,
        data=[
            {
                "phase": g.key[0],
                "avg_sleep": g.mean("sleep_duration"),
                "disturbance_rate": g.mean("disturbed") * 100,
                "count": g.count,
            }
            for g in ranked
        ],
    )


def analyze_statistical_significance(records: Records) -> AnalyzerResult:
    """Dataset quality summary.  Always produced, even for empty input."""
    metrics = calculate_research_metrics(records)

    description = (
        f"Research dataset contains {metrics.total_entries} entries from "
        f"{metrics.unique_users} users over {metrics.date_range_days} days."
    )
    if metrics.total_entries >= EXCELLENT_DATASET_SIZE:
        description += " Dataset size is excellent for statistical analysis."
    elif metrics.total_entries >= GOOD_DATASET_SIZE:
        description += " Dataset size is good, continue collection for stronger significance."
    else:
        description += " More data needed for statistical significance."

    power = metrics.statistical_power
    if power >= STAT_HIGH_POWER:
        significance = "high"
    elif power >= STAT_MEDIUM_POWER:
        significance = "medium"
    else:
        significance = "low"

    return AnalyzerResult(
        description=description,
        confidence=power,
        sample_size=metrics.total_entries,
        significance=significance,
        data=metrics.to_dict(),
    )


# ═══════════════════════════════════════════════════════════════
#  COMPOSER
# ═══════════════════════════════════════════════════════════════

ANALYZERS: List[Tuple[Tuple[str, str, str], Callable[[Records], Optional[AnalyzerResult]]]] = [
    (INSIGHT_MOON_PHASE, analyze_moon_phase_correlation),
    (INSIGHT_RASI, analyze_rasi_correlation),
    (INSIGHT_SLEEP, analyze_sleep_patterns),
    (INSIGHT_STATISTICAL, analyze_statistical_significance),
]


def generate_research_insights(records: Records, now: Optional[datetime] = None) -> List[Insight]:
    """Run every analyzer in order and return the insights they produced.

    All insights of one call share the same ``generated_at``.  Analyzers
    that lack data are left out; the dataset-quality insight is always
    last.
    """
    generated_at = (now or datetime.now(timezone.utc)).isoformat()
    frame = records_frame(records)

    insights: List[Insight] = []
    for (insight_id, insight_type, title), analyzer in ANALYZERS:
        result = analyzer(frame)
        if result is None:
            continue
        insights.append(Insight(
            id=insight_id,
            type=insight_type,
            title=title,
            description=result.description,
            confidence=result.confidence,
            sample_size=result.sample_size,
            significance=result.significance,
            data=result.data,
            generated_at=generated_at,
        ))

    log.info(
        "Research insights: %d rows -> %d insights (%s)",
        len(frame),
        len(insights),
        ", ".join(i.id for i in insights),
    )
    return insights
