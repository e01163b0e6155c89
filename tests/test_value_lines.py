"""
Tests for value_lines.py
Run with: pytest tests/test_value_lines.py -v
"""

from dataclasses import fields, replace
from datetime import datetime, timezone

import pytest

from valueline.core.line_config import ConfidenceThresholds, LineSearchConfig
from valueline.services import value_lines
from valueline.services.stats_aggregator import NormalizedMatchRecord
from valueline.services.value_lines import (
    CombinedFieldDistribution,
    aged_values,
    candidate_lines,
    combine_field_distribution,
    find_best_line,
    find_value_lines,
    population_std,
    recommend_line,
)

# Simple-mean-only config: keeps expected totals easy to reason about.
SIMPLE = replace(LineSearchConfig.default(), weighted_share=0.0)


def _rows(field, values):
    return [{field: v} for v in values]


def _dist(mean, sd, n=10):
    return CombinedFieldDistribution(
        field="corners", predicted_mean=mean, predicted_std_dev=sd,
        home_mean=mean / 2, away_mean=mean / 2, sample_size=n,
    )


class TestCombinedDistribution:
    """Predicted mean and spread."""

    def test_zero_variance_blend(self):
        dist = combine_field_distribution(_rows("corners", [8] * 5), _rows("corners", [4] * 5), "corners")
        assert dist.predicted_mean == pytest.approx(12.0)
        assert dist.predicted_std_dev == 0.0
        assert dist.home_mean == 8.0
        assert dist.away_mean == 4.0
        assert dist.sample_size == 10

    def test_recency_weighting_favours_latest(self):
        # list order: oldest 0, newest 10
        dist = combine_field_distribution(_rows("corners", [0, 10]), [], "corners")
        weighted = 10 / 1.9
        assert dist.predicted_mean == pytest.approx(0.6 * weighted + 0.4 * 5.0)

    def test_kickoff_time_overrides_storage_order(self):
        home = [
            {"corners": 10, "occurred_at": "2024-02-01T15:00:00+00:00"},
            {"corners": 0, "occurred_at": "2024-01-01T15:00:00+00:00"},
        ]
        dist = combine_field_distribution(home, [], "corners")
        assert dist.predicted_mean == pytest.approx(0.6 * (10 / 1.9) + 0.4 * 5.0)

    def test_kickoff_offsets_compared_in_real_time(self):
        # 20:00 at -05:00 is 01:00 UTC next day, after 00:30 UTC
        home = [
            {"corners": 10, "occurred_at": "2024-01-01T20:00:00-05:00"},
            {"corners": 0, "occurred_at": "2024-01-02T00:30:00+00:00"},
        ]
        assert aged_values(home, "corners") == [(10.0, 0), (0.0, 1)]

    def test_kickoff_accepts_datetimes_mixed_with_strings(self):
        home = [
            {"corners": 1, "occurred_at": datetime(2024, 3, 1, tzinfo=timezone.utc)},
            {"corners": 2, "occurred_at": "2024-02-01T00:00:00Z"},
            {"corners": 3, "occurred_at": datetime(2024, 1, 1)},
        ]
        assert aged_values(home, "corners") == [(1.0, 0), (2.0, 1), (3.0, 2)]

    def test_unparseable_kickoff_falls_back_to_list_order(self):
        home = [
            {"corners": 1, "occurred_at": "2024-03-01T00:00:00Z"},
            {"corners": 2, "occurred_at": "last week"},
        ]
        assert aged_values(home, "corners") == [(2.0, 0), (1.0, 1)]

    def test_root_sum_of_squares_spread(self):
        dist = combine_field_distribution(_rows("corners", [3, 7, 3, 7]), _rows("corners", [4, 6]), "corners")
        assert dist.predicted_std_dev == pytest.approx((2.0 ** 2 + 1.0 ** 2) ** 0.5)

    def test_missing_values_skipped(self):
        home = [{"corners": 4}, {"corners": None}, {"yellowcards": 2}, {"corners": 6}]
        dist = combine_field_distribution(home, [], "corners")
        assert dist.sample_size == 2
        assert dist.home_mean == 5.0

    def test_accepts_normalized_records(self):
        records = [NormalizedMatchRecord(match_id=i, side="home", fields={"corners": 5.0}) for i in range(3)]
        dist = combine_field_distribution(records, records, "corners")
        assert dist.predicted_mean == pytest.approx(10.0)
        assert dist.sample_size == 6

    def test_distribution_carries_only_summary_numbers(self):
        names = {f.name for f in fields(CombinedFieldDistribution)}
        assert names == {"field", "predicted_mean", "predicted_std_dev", "home_mean", "away_mean", "sample_size"}

    def test_no_values(self):
        assert combine_field_distribution([{"corners": 3}], [], "redcards") is None

    def test_population_std(self):
        assert population_std([3, 7]) == pytest.approx(2.0)
        assert population_std([5]) == 0.0
        assert population_std([]) == 0.0

    def test_aged_values_newest_is_age_zero(self):
        assert aged_values(_rows("corners", [1, 2, 3]), "corners") == [(3.0, 0), (2.0, 1), (1.0, 2)]


class TestCandidateLines:

    def test_half_point_grid(self):
        assert candidate_lines(10.0, 1.0) == [8.0, 8.5, 9.0, 9.5, 10.0, 10.5, 11.0, 11.5, 12.0]

    def test_clamped_at_zero(self):
        lines = candidate_lines(1.0, 2.0)
        assert lines[0] == 0.0
        assert lines[-1] == 5.0

    def test_zero_spread(self):
        assert candidate_lines(10.0, 0.0) == [10.0]


class TestFindBestLine:
    """Band filtering and tie-breaking."""

    def test_quarter_sd_line_in_band(self):
        best = find_best_line(_dist(10.0, 2.0))
        assert (best.line, best.side) in {(9.5, "over"), (10.5, "under")}
        assert best.probability == pytest.approx(0.598706, abs=1e-6)

    def test_zero_spread_never_qualifies(self):
        assert find_best_line(_dist(10.0, 0.0)) is None

    def test_no_line_in_band(self):
        assert find_best_line(_dist(4.0, 1.0)) is None

    def test_equal_distance_prefers_lower_line(self, monkeypatch):
        probs = {9.5: 0.6, 10.5: 0.4}
        monkeypatch.setattr(value_lines, "probability_over", lambda line, m, s: probs.get(line, 0.0))
        best = find_best_line(_dist(10.0, 2.0))
        assert (best.line, best.side) == (9.5, "over")

    def test_equal_distance_prefers_over(self, monkeypatch):
        monkeypatch.setattr(value_lines, "probability_over", lambda line, m, s: 0.5)
        cfg = replace(LineSearchConfig.default(), target_probability=0.5, min_probability=0.45, max_probability=0.55)
        best = find_best_line(_dist(10.0, 2.0), cfg)
        assert (best.line, best.side) == (6.0, "over")

    def test_closest_to_target_wins(self, monkeypatch):
        probs = {9.0: 0.615, 9.5: 0.59, 10.0: 0.605}
        monkeypatch.setattr(value_lines, "probability_over", lambda line, m, s: probs.get(line, 0.0))
        best = find_best_line(_dist(10.0, 2.0))
        assert (best.line, best.side) == (10.0, "over")


class TestConfidence:

    @pytest.mark.parametrize("n, sd, expected", [
        (8, 1.9, "high"),
        (8, 2.0, "medium"),
        (5, 2.9, "medium"),
        (4, 1.0, "low"),
        (10, 3.0, "low"),
    ])
    def test_default_thresholds(self, n, sd, expected):
        assert ConfidenceThresholds().classify(n, sd) == expected

    def test_custom_thresholds(self):
        strict = ConfidenceThresholds(high_min_sample=20)
        assert strict.classify(10, 1.0) == "medium"


class TestRecommendLine:

    def test_priced_recommendation(self):
        rec = recommend_line(_rows("corners", [3, 7, 3, 7]), _rows("corners", [5, 5, 5, 5]), "corners", SIMPLE)
        assert rec.predicted_total == pytest.approx(10.0)
        assert rec.std_dev == pytest.approx(2.0)
        assert rec.probability == pytest.approx(0.598706, abs=1e-6)
        assert rec.fair_decimal_odds == 1 / rec.probability
        assert rec.sample_size == 8
        assert rec.confidence == "medium"
        assert rec.home_mean == 5.0 and rec.away_mean == 5.0

    def test_insufficient_sample_skipped(self):
        assert recommend_line(_rows("corners", [3, 7]), [], "corners", SIMPLE) is None

    def test_sample_floor_is_configurable(self):
        cfg = replace(SIMPLE, min_sample_size=2)
        rec = recommend_line(_rows("corners", [3, 7]), [], "corners", cfg)
        assert rec is not None
        assert rec.probability == pytest.approx(0.598706, abs=1e-6)


class TestFindValueLines:
    """Multi-market ranking."""

    def test_identical_histories_yield_nothing(self):
        home = _rows("corners", [6, 6, 6])
        away = _rows("corners", [4, 4, 4])
        dist = combine_field_distribution(home, away, "corners")
        assert dist.predicted_mean == pytest.approx(10.0)
        assert dist.predicted_std_dev == 0.0
        assert find_value_lines(home, away) == []

    def test_zero_variance_twelve(self):
        assert find_value_lines(_rows("corners", [8] * 5), _rows("corners", [4] * 5)) == []

    def test_ranked_by_distance_to_target(self):
        home = [
            {"corners": 3, "yellowcards": 1},
            {"corners": 7, "yellowcards": 3},
            {"corners": 3, "yellowcards": 1},
            {"corners": 7, "yellowcards": 3},
        ]
        away = [
            {"corners": 5, "yellowcards": 1},
            {"corners": 5, "yellowcards": 4},
            {"corners": 5, "yellowcards": 1},
            {"corners": 5, "yellowcards": 4},
        ]
        recs = find_value_lines(home, away, config=SIMPLE)
        assert [r.field for r in recs] == ["corners", "yellowcards"]
        assert recs[0].probability == pytest.approx(0.598706, abs=1e-6)
        assert recs[1].probability == pytest.approx(0.60925, abs=1e-4)
        for rec in recs:
            assert rec.fair_decimal_odds == 1 / rec.probability
            assert 0.58 <= rec.probability <= 0.62

    def test_field_override(self):
        home = [{"corners": 3, "yellowcards": 1}, {"corners": 7, "yellowcards": 3}] * 2
        away = [{"corners": 5, "yellowcards": 1}, {"corners": 5, "yellowcards": 4}] * 2
        recs = find_value_lines(home, away, fields=["yellowcards"], config=SIMPLE)
        assert [r.field for r in recs] == ["yellowcards"]

    def test_band_override(self):
        home = _rows("corners", [3, 7, 3, 7])
        away = _rows("corners", [5, 5, 5, 5])
        recs = find_value_lines(
            home, away, target_probability=0.70, min_probability=0.68, max_probability=0.72, config=SIMPLE,
        )
        assert len(recs) == 1
        assert 0.68 <= recs[0].probability <= 0.72

    def test_missing_markets_absent(self):
        recs = find_value_lines(_rows("corners", [3, 7, 3, 7]), _rows("corners", [5] * 4), config=SIMPLE)
        assert {r.field for r in recs} == {"corners"}

    def test_empty_inputs(self):
        assert find_value_lines([], []) == []
