"""
Tests for the group-by aggregation helpers.

Covers: counts/sums/means, composite keys, missing keys, immutability,
input preservation and frequency tables.
"""
import copy
import dataclasses
import sys
import os

import pandas as pd
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from analytics.grouping import GroupSummary, count_by, group_summaries, records_frame


ROWS = [
    {"moon_phase": "New Moon", "moon_rasi": "Mesha", "mood_score": 8, "sleep_duration": 7.0},
    {"moon_phase": "Full Moon", "moon_rasi": "Simha", "mood_score": 10, "sleep_duration": 6.0},
    {"moon_phase": "New Moon", "moon_rasi": "Simha", "mood_score": 6, "sleep_duration": 8.0},
]


class TestGroupSummaries:

    def test_counts_sums_and_means(self):
        groups = {g.key: g for g in group_summaries(ROWS, "moon_phase", ["mood_score"])}
        new_moon = groups[("New Moon",)]
        assert new_moon.count == 2
        assert new_moon.sums["mood_score"] == 14
        assert new_moon.mean("mood_score") == pytest.approx(7.0)
        assert groups[("Full Moon",)].count == 1

    def test_first_appearance_order(self):
        keys = [g.key for g in group_summaries(ROWS, "moon_phase", ["mood_score"])]
        assert keys == [("New Moon",), ("Full Moon",)]

    def test_multiple_value_columns(self):
        groups = {g.key: g for g in group_summaries(ROWS, "moon_phase", ["mood_score", "sleep_duration"])}
        assert groups[("New Moon",)].mean("sleep_duration") == pytest.approx(7.5)

    def test_composite_key_is_a_tuple(self):
        groups = group_summaries(ROWS, ["moon_phase", "moon_rasi"], ["mood_score"])
        assert len(groups) == 3
        assert ("New Moon", "Simha") in {g.key for g in groups}

    def test_composite_keys_do_not_collide(self):
        rows = [
            {"a": "x-y", "b": "z", "v": 1},
            {"a": "x", "b": "y-z", "v": 3},
        ]
        groups = group_summaries(rows, ["a", "b"], ["v"])
        assert len(groups) == 2

    def test_missing_key_kept_as_none(self):
        rows = ROWS + [{"moon_rasi": "Tula", "mood_score": 4, "sleep_duration": 5.0}]
        groups = {g.key: g for g in group_summaries(rows, "moon_phase", ["mood_score"])}
        assert (None,) in groups
        assert groups[(None,)].count == 1

    def test_missing_key_column_groups_everything_under_none(self):
        groups = group_summaries(ROWS, "user_birth_rasi", ["mood_score"])
        assert len(groups) == 1
        assert groups[0].key == (None,)
        assert groups[0].count == 3

    def test_key_only_grouping(self):
        groups = group_summaries(ROWS, "moon_rasi")
        assert {g.key: g.count for g in groups} == {("Mesha",): 1, ("Simha",): 2}
        assert all(dict(g.means) == {} for g in groups)

    def test_empty_input(self):
        assert group_summaries([], "moon_phase", ["mood_score"]) == ()

    def test_missing_value_column_raises(self):
        with pytest.raises(KeyError):
            group_summaries(ROWS, "moon_phase", ["energy_level"])

    def test_input_list_not_mutated(self):
        before = copy.deepcopy(ROWS)
        group_summaries(ROWS, ["moon_phase", "moon_rasi"], ["mood_score", "sleep_duration"])
        assert ROWS == before

    def test_input_dataframe_not_mutated(self):
        df = pd.DataFrame(ROWS)
        before = df.copy()
        group_summaries(df, "moon_phase", ["mood_score"])
        pd.testing.assert_frame_equal(df, before)

    def test_summaries_are_immutable(self):
        group = group_summaries(ROWS, "moon_phase", ["mood_score"])[0]
        assert isinstance(group, GroupSummary)
        with pytest.raises(dataclasses.FrozenInstanceError):
            group.count = 99
        with pytest.raises(TypeError):
            group.means["mood_score"] = 0.0


class TestCountBy:

    def test_frequency_table(self):
        assert count_by(ROWS, "moon_phase") == {"New Moon": 2, "Full Moon": 1}

    def test_empty(self):
        assert count_by([], "moon_phase") == {}


class TestRecordsFrame:

    def test_dataframe_passthrough(self):
        df = pd.DataFrame(ROWS)
        assert records_frame(df) is df

    def test_generator_input(self):
        frame = records_frame(r for r in ROWS)
        assert len(frame) == 3
