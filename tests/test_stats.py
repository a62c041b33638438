# tests/test_stats.py
"""Tests for protocol_intelligence/stats.py - order statistics."""

import pytest

from protocol_intelligence.stats import (
    distribution,
    knot_percentile_rank,
    percentile,
    percentile_rank,
    summarize,
)

SAMPLE = [10, 20, 30, 40, 50]


class TestPercentile:
    """Linear interpolation between order statistics."""

    def test_median(self):
        assert percentile(SAMPLE, 50) == 30

    def test_quartile(self):
        assert percentile(SAMPLE, 25) == 20

    def test_interpolated(self):
        assert percentile(SAMPLE, 90) == pytest.approx(46)

    def test_extremes(self):
        assert percentile(SAMPLE, 0) == 10
        assert percentile(SAMPLE, 100) == 50

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            percentile([], 50)


class TestPercentileRank:
    """The inverse of percentile()."""

    def test_inverse(self):
        for p in (0, 10, 25, 50, 62.5, 90, 100):
            assert percentile_rank(SAMPLE, percentile(SAMPLE, p)) == pytest.approx(p)

    def test_between_values(self):
        assert percentile_rank(SAMPLE, 35) == pytest.approx(62.5)

    def test_outside_sample_clamps(self):
        assert percentile_rank(SAMPLE, 5) == 0.0
        assert percentile_rank(SAMPLE, 60) == 100.0

    def test_ties_use_middle_of_run(self):
        assert percentile_rank([10, 20, 20, 30], 20) == pytest.approx(50.0)

    def test_single_value(self):
        assert percentile_rank([7], 7) == 50.0
        assert percentile_rank([7], 3) == 0.0


class TestSummaries:
    """summarize(), knot_percentile_rank() and distribution()."""

    def test_summarize(self):
        summary = summarize([50, 10, None, 30, 20, 40])
        assert summary["count"] == 5
        assert summary["min"] == 10
        assert summary["max"] == 50
        assert summary["median"] == 30
        assert summary["mean"] == 30

    def test_summarize_empty(self):
        assert summarize([]) == {"count": 0}

    def test_knot_rank(self):
        stats = {"count": 100, "min": 0, "median": 10, "p90": 20, "max": 40}
        assert knot_percentile_rank(stats, 5) == pytest.approx(25)
        assert knot_percentile_rank(stats, 15) == pytest.approx(70)
        assert knot_percentile_rank(stats, -1) == 0
        assert knot_percentile_rank(stats, 99) == 100

    def test_knot_rank_needs_two_knots(self):
        assert knot_percentile_rank({"median": 10}, 5) is None

    def test_distribution(self):
        bins = [("low", 0, 25), ("high", 26, 100)]
        assert distribution([0, 25, 26, 100, 101, None], bins) == {"low": 2, "high": 2}
