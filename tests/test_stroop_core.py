"""Tests for the Stroop domain calculator."""

from __future__ import annotations

import math

import pytest

from cognitive_metrics.stroop import (
    DOMAINS,
    StroopGameState,
    StroopResponse,
    StroopStimulus,
    calculate_stroop_metrics,
)

C, I = StroopStimulus.CONGRUENT, StroopStimulus.INCONGRUENT


def _r(kind: StroopStimulus, rt: float, ok: bool = True) -> StroopResponse:
    return StroopResponse(stimulus_type=kind, response_time=rt, was_correct=ok)


def _session() -> StroopGameState:
    responses = (
        _r(C, 500.0),
        _r(I, 700.0),
        _r(C, 520.0),
        _r(I, 760.0, ok=False),
        _r(C, 480.0),
        _r(I, 690.0),
        _r(C, 510.0),
        _r(I, 710.0),
    )
    return StroopGameState(responses=responses, total_rounds=8, current_difficulty=1.0, streak=3)


def test_inhibition_slices_by_congruency() -> None:
    inhibition = calculate_stroop_metrics(_session())["inhibition"]
    assert inhibition["accuracy"] == pytest.approx(87.5)
    assert inhibition["congruent_accuracy"] == pytest.approx(100.0)
    assert inhibition["incongruent_accuracy"] == pytest.approx(75.0)
    assert inhibition["interference"] == pytest.approx(25.0)
    # mean(700, 690, 710) - mean(500, 520, 480, 510)
    assert inhibition["interference_effect"] == pytest.approx(700.0 - 502.5)


def test_processing_reaction_times_use_correct_trials() -> None:
    processing = calculate_stroop_metrics(_session())["processing"]
    assert processing["congruent_reaction_time"] == pytest.approx(502.5)
    assert processing["incongruent_reaction_time"] == pytest.approx(700.0)
    assert processing["average_reaction_time"] == pytest.approx(sum(r.response_time for r in _session().responses) / 8)


def test_domains_and_purity() -> None:
    state = _session()
    scores = calculate_stroop_metrics(state)
    assert tuple(scores) == DOMAINS
    assert scores == calculate_stroop_metrics(state)


def test_short_session_fallbacks() -> None:
    state = StroopGameState(responses=(_r(C, 500.0), _r(I, 700.0)))
    scores = calculate_stroop_metrics(state)
    assert scores["flexibility"]["adaptive_control"] == 50.0
    assert scores["flexibility"]["strategy_development"] == 50.0
    assert scores["flexibility"]["switching_cost"] == 0.0
    assert scores["attention"]["sustained_attention"] == 100.0
    assert scores["overall"]["cognitive_fatigue"] == 0.0


def test_empty_session_emits_finite_values() -> None:
    scores = calculate_stroop_metrics(StroopGameState())
    values = [v for metrics in scores.values() for v in metrics.values()]
    assert all(math.isfinite(v) for v in values)
    assert scores["inhibition"]["accuracy"] == 0.0
    assert scores["flexibility"]["error_recovery"] == 100.0


def test_zero_first_quarter_accuracy_is_clamped() -> None:
    responses = tuple(_r(C, 500.0, ok=i >= 2) for i in range(8))
    scores = calculate_stroop_metrics(StroopGameState(responses=responses))
    assert scores["attention"]["sustained_attention"] == 100.0


def test_composite_weights_include_adaptive_control() -> None:
    scores = calculate_stroop_metrics(_session())
    expected = min(
        100.0,
        scores["inhibition"]["accuracy"] * 0.25
        + scores["attention"]["sustained_attention"] * 0.25
        + scores["processing"]["processing_efficiency"] * 0.25
        + scores["flexibility"]["adaptive_control"] * 0.25,
    )
    assert scores["overall"]["composite_score"] == pytest.approx(expected)


def test_from_dict_reads_camel_case() -> None:
    raw = {
        "responses": [
            {"stimulusType": "incongruent", "responseTime": 640, "wasCorrect": False, "wordShown": "RED", "colorShown": "blue"},
        ],
        "currentDifficulty": 2,
    }
    state = StroopGameState.from_dict(raw)
    assert state.responses[0].stimulus_type is StroopStimulus.INCONGRUENT
    assert state.responses[0].word_shown == "RED"
    assert state.current_difficulty == 2.0
    assert state.total_rounds == 1
