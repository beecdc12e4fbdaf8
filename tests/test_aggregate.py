"""Tests for the population aggregate update strategies."""

from __future__ import annotations

import random

import pytest

from cognitive_metrics.aggregate import AggregateStats, FullRecomputeUpdate, IncrementalMeanUpdate
from cognitive_metrics.stats_core import mean


def _fold(strategy: IncrementalMeanUpdate | FullRecomputeUpdate, values: list[float]) -> AggregateStats:
    stats = AggregateStats()
    history: list[dict[str, dict[str, float]]] = []
    for v in values:
        scores = {"overall": {"performance_score": v}}
        history.append(scores)
        stats = strategy.update(stats, scores=scores, history=history)
    return stats


def test_incremental_mean_matches_arithmetic_mean() -> None:
    rng = random.Random(7)
    values = [rng.uniform(1.0, 100.0) for _ in range(500)]
    stats = _fold(IncrementalMeanUpdate(), values)
    assert stats.total_assessments == 500
    assert stats.average("overall", "performance_score") == pytest.approx(mean(values), rel=1e-9)


def test_full_recompute_matches_arithmetic_mean() -> None:
    values = [10.0, 20.0, 60.0]
    stats = _fold(FullRecomputeUpdate(), values)
    assert stats.total_assessments == 3
    assert stats.average("overall", "performance_score") == pytest.approx(30.0)


def test_incremental_treats_zero_average_as_empty() -> None:
    stats = AggregateStats(total_assessments=4, average_scores={"memory": {"accuracy": 0.0}})
    scores = {"memory": {"accuracy": 80.0}}
    updated = IncrementalMeanUpdate().update(stats, scores=scores, history=[scores])
    assert updated.average("memory", "accuracy") == 80.0
    assert updated.total_assessments == 5


def test_metrics_missing_from_a_submission_keep_their_average() -> None:
    stats = AggregateStats(total_assessments=1, average_scores={"memory": {"accuracy": 60.0, "span": 8.0}})
    scores = {"memory": {"accuracy": 80.0}}
    updated = IncrementalMeanUpdate().update(stats, scores=scores, history=[scores])
    assert updated.average("memory", "accuracy") == pytest.approx(70.0)
    assert updated.average("memory", "span") == 8.0


def test_total_never_decreases() -> None:
    stats = AggregateStats(total_assessments=10)
    scores = {"overall": {"performance_score": 50.0}}
    for strategy in (IncrementalMeanUpdate(), FullRecomputeUpdate()):
        updated = strategy.update(stats, scores=scores, history=[scores])
        assert updated.total_assessments == 11


def test_update_does_not_mutate_input() -> None:
    stats = AggregateStats(total_assessments=1, average_scores={"overall": {"performance_score": 10.0}})
    scores = {"overall": {"performance_score": 30.0}}
    IncrementalMeanUpdate().update(stats, scores=scores, history=[scores])
    assert stats.average("overall", "performance_score") == 10.0


def test_stats_dict_round_trip() -> None:
    stats = AggregateStats(total_assessments=2, average_scores={"attention": {"focus_score": 55.5}})
    assert AggregateStats.from_dict(stats.to_dict()) == stats
