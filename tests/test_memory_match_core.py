"""Tests for the memory-match domain calculator."""

from __future__ import annotations

import math

import pytest

from cognitive_metrics.errors import ValidationError
from cognitive_metrics.memory_match import DOMAINS, MemoryMatchGameState, calculate_memory_match_metrics


def _state() -> MemoryMatchGameState:
    return MemoryMatchGameState(
        matched_pairs=("a1", "a2", "b1", "b2"),
        attempts=4,
        view_timestamps={"a1": 1000.0, "a2": 1500.0, "b1": 2000.0},
        match_times=(2.0, 4.0),
    )


def test_memory_domain_counts_pairs() -> None:
    memory = calculate_memory_match_metrics(_state())["memory"]
    assert memory["accuracy"] == pytest.approx(50.0)
    assert memory["error_rate"] == pytest.approx(50.0)
    assert memory["reaction_time"] == pytest.approx(3.0)
    assert memory["span"] == 4.0


def test_attention_and_processing() -> None:
    scores = calculate_memory_match_metrics(_state())
    assert scores["attention"]["focus_score"] == pytest.approx(58.0)
    assert scores["attention"]["consistency"] == pytest.approx(100.0 - 100.0 / 3.0)
    assert scores["processing"]["processing_speed"] == pytest.approx(40.0)
    assert scores["processing"]["efficiency"] == pytest.approx(55.0)


def test_overall_performance_weights() -> None:
    overall = calculate_memory_match_metrics(_state())["overall"]
    assert overall["performance_score"] == pytest.approx(50.0 * 0.3 + 58.0 * 0.3 + 55.0 * 0.4)
    assert 50.0 <= overall["confidence_level"] <= 100.0


def test_no_attempts_defaults() -> None:
    scores = calculate_memory_match_metrics(MemoryMatchGameState())
    assert tuple(scores) == DOMAINS
    assert all(math.isfinite(v) for metrics in scores.values() for v in metrics.values())
    assert scores["memory"]["accuracy"] == 0.0
    assert scores["attention"]["consistency"] == 100.0
    assert scores["overall"]["confidence_level"] == 50.0


def test_from_dict_reads_browser_state() -> None:
    raw = {
        "matchedPairs": ["x", "x2"],
        "attempts": 3,
        "viewTimestamps": {"x": 100, "x2": 250},
        "matchTimes": [1.5],
        "currentPair": [],
    }
    state = MemoryMatchGameState.from_dict(raw)
    assert state.attempts == 3
    assert state.view_timestamps["x2"] == 250.0
    assert state.match_times == (1.5,)


def test_from_dict_rejects_non_numeric_times() -> None:
    with pytest.raises(ValidationError):
        MemoryMatchGameState.from_dict({"matchTimes": ["slow"]})
