"""Tests for the statistical primitives in ``stats_core``."""

from __future__ import annotations

import math

import pytest

from cognitive_metrics.stats_core import (
    coefficient_of_variation,
    erf,
    mean,
    median,
    stddev,
    trend,
    variance,
    z_score,
    z_to_percentile,
)


def test_mean_and_population_stddev_match_closed_form() -> None:
    values = [2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0]
    assert mean(values) == pytest.approx(5.0)
    assert variance(values) == pytest.approx(4.0)
    assert stddev(values) == pytest.approx(2.0)


def test_empty_and_single_value_defaults() -> None:
    assert mean([]) == 0.0
    assert variance([]) == 0.0
    assert stddev([]) == 0.0
    assert stddev([42.0]) == 0.0
    assert median([]) == 0.0


def test_median_odd_and_even() -> None:
    assert median([3.0, 1.0, 2.0]) == 2.0
    assert median([4.0, 1.0, 3.0, 2.0]) == pytest.approx(2.5)


def test_coefficient_of_variation_guards_zero_mean() -> None:
    assert coefficient_of_variation([0.0, 0.0]) == 0.0
    assert coefficient_of_variation([2.0, 4.0]) == pytest.approx(1.0 / 3.0)


def test_trend_is_bounded_percent_change() -> None:
    assert trend([50.0, 70.0]) == pytest.approx(20.0)
    # First value above 100 becomes the denominator.
    assert trend([200.0, 100.0]) == pytest.approx(-50.0)
    assert trend([10.0]) == 0.0
    assert trend([]) == 0.0


def test_z_score_zero_when_no_spread() -> None:
    assert z_score(5.0, 5.0, 0.0) == 0.0
    assert z_score(7.0, 5.0, 2.0) == pytest.approx(1.0)


def test_erf_approximation_close_to_library() -> None:
    for x in (-2.0, -0.5, 0.0, 0.3, 1.0, 2.5):
        assert erf(x) == pytest.approx(math.erf(x), abs=2e-7)


def test_z_to_percentile_follows_normal_cdf() -> None:
    assert z_to_percentile(0.0) == pytest.approx(50.0, abs=1e-4)
    assert z_to_percentile(1.0) == pytest.approx(84.1345, abs=1e-3)
    assert z_to_percentile(-1.0) == pytest.approx(15.8655, abs=1e-3)


def test_z_to_percentile_clamps_extremes() -> None:
    assert z_to_percentile(10.0) == pytest.approx(z_to_percentile(4.0))
    assert z_to_percentile(-10.0) == pytest.approx(z_to_percentile(-4.0))
    assert 0.0 <= z_to_percentile(-4.0) < 0.01
    assert 99.99 < z_to_percentile(4.0) <= 100.0
