"""
Input validation and access checks for journal and research data.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

from dotenv import load_dotenv

from constants import ADMIN_EMAILS

load_dotenv()

log = logging.getLogger("validation")

MOOD_SCORE_RANGE = (1, 10)
SLEEP_HOURS_RANGE = (0, 24)
MAX_NOTES_LENGTH = 5000

_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")
_JS_PROTOCOL_RE = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER_RE = re.compile(r'on\w+\s*=\s*"[^"]*"', re.IGNORECASE)


def sanitize_input(text: Optional[str]) -> str:
    """Strip scripts, tags, javascript: URLs and inline handlers from free text."""
    if not text:
        return ""
    cleaned = _SCRIPT_RE.sub("", text)
    cleaned = _TAG_RE.sub("", cleaned)
    cleaned = _JS_PROTOCOL_RE.sub("", cleaned)
    cleaned = _EVENT_HANDLER_RE.sub("", cleaned)
    return cleaned.strip()[:MAX_NOTES_LENGTH]


def validate_journal_entry(
    mood_score: Optional[float],
    sleep_duration: Optional[float],
    notes: Optional[str] = None,
) -> List[str]:
    """Return validation errors for a journal entry; empty means valid.

    Mood and sleep are optional, but when present must fall in range.
    """
    errors: List[str] = []
    lo, hi = MOOD_SCORE_RANGE
    if mood_score is not None and not lo <= mood_score <= hi:
        errors.append(f"Mood score must be between {lo} and {hi}")
    lo, hi = SLEEP_HOURS_RANGE
    if sleep_duration is not None and not lo <= sleep_duration <= hi:
        errors.append(f"Sleep duration must be between {lo} and {hi} hours")
    if notes and len(notes) > MAX_NOTES_LENGTH:
        errors.append(f"Notes must be less than {MAX_NOTES_LENGTH} characters")
    return errors


def filter_research_records(records: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Keep only rows with both a mood_score and a sleep_duration."""
    kept: List[Dict[str, Any]] = []
    dropped = 0
    for row in records:
        if row.get("mood_score") is None or row.get("sleep_duration") is None:
            dropped += 1
            continue
        kept.append(dict(row))
    if dropped:
        log.info("Dropped %d research rows without mood/sleep values", dropped)
    return kept


def admin_emails() -> List[str]:
    env = os.getenv("ADMIN_EMAILS", "")
    extra = [e.strip().lower() for e in env.split(",") if e.strip()]
    return [e.lower() for e in ADMIN_EMAILS] + extra


def is_user_admin(email: Optional[str]) -> bool:
    if not email:
        return False
    return email.strip().lower() in admin_emails()
