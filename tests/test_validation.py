"""
Tests for journal validation, sanitisation, research-row filtering and the
admin allow-list.
"""
import sys
import os

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from validation import (
    MAX_NOTES_LENGTH,
    filter_research_records,
    is_user_admin,
    sanitize_input,
    validate_journal_entry,
)


class TestSanitizeInput:

    def test_strips_script_blocks(self):
        assert sanitize_input("hello <script>alert(1)</script>world") == "hello world"

    def test_strips_tags(self):
        assert sanitize_input("<b>calm</b> day") == "calm day"

    def test_strips_javascript_protocol(self):
        assert "javascript:" not in sanitize_input("javascript:void(0)").lower()

    def test_strips_event_handlers(self):
        assert sanitize_input('slept well onclick="steal()"') == "slept well"

    def test_empty(self):
        assert sanitize_input(None) == ""
        assert sanitize_input("") == ""

    def test_length_cap(self):
        assert len(sanitize_input("x" * (MAX_NOTES_LENGTH + 100))) == MAX_NOTES_LENGTH


class TestValidateJournalEntry:

    def test_valid_entry(self):
        assert validate_journal_entry(7, 8.0, "fine") == []

    def test_optional_fields(self):
        assert validate_journal_entry(None, None, None) == []

    @pytest.mark.parametrize("mood", [0, 11, -3])
    def test_mood_out_of_range(self, mood):
        errors = validate_journal_entry(mood, 7.0)
        assert errors == ["Mood score must be between 1 and 10"]

    @pytest.mark.parametrize("hours", [-0.5, 24.5])
    def test_sleep_out_of_range(self, hours):
        errors = validate_journal_entry(5, hours)
        assert errors == ["Sleep duration must be between 0 and 24 hours"]

    def test_boundaries_are_valid(self):
        assert validate_journal_entry(1, 0) == []
        assert validate_journal_entry(10, 24) == []

    def test_notes_too_long(self):
        errors = validate_journal_entry(5, 7, "x" * (MAX_NOTES_LENGTH + 1))
        assert len(errors) == 1
        assert "Notes" in errors[0]

    def test_multiple_errors(self):
        assert len(validate_journal_entry(0, 30, "x" * (MAX_NOTES_LENGTH + 1))) == 3


class TestFilterResearchRecords:

    def test_drops_rows_missing_mood_or_sleep(self):
        rows = [
            {"user_id": "a", "mood_score": 7, "sleep_duration": 8},
            {"user_id": "b", "mood_score": None, "sleep_duration": 8},
            {"user_id": "c", "mood_score": 5, "sleep_duration": None},
            {"user_id": "d", "sleep_duration": 6},
        ]
        kept = filter_research_records(rows)
        assert [r["user_id"] for r in kept] == ["a"]

    def test_zero_values_are_kept(self):
        rows = [{"mood_score": 1, "sleep_duration": 0}]
        assert filter_research_records(rows) == rows

    def test_returns_copies(self):
        rows = [{"mood_score": 1, "sleep_duration": 5}]
        kept = filter_research_records(rows)
        kept[0]["mood_score"] = 9
        assert rows[0]["mood_score"] == 1


class TestIsUserAdmin:

    def test_static_allow_list(self, monkeypatch):
        monkeypatch.delenv("ADMIN_EMAILS", raising=False)
        assert is_user_admin("research-admin@example.com")
        assert is_user_admin("  Research-Admin@Example.com ")

    def test_env_allow_list(self, monkeypatch):
        monkeypatch.setenv("ADMIN_EMAILS", "lead@lab.org, second@lab.org")
        assert is_user_admin("second@lab.org")
        assert is_user_admin("LEAD@lab.org")

    def test_rejects_others(self, monkeypatch):
        monkeypatch.delenv("ADMIN_EMAILS", raising=False)
        assert not is_user_admin("someone@example.com")
        assert not is_user_admin(None)
        assert not is_user_admin("")
