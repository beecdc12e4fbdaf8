"""Tests for environment-driven engine configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from cognitive_metrics.config import EngineConfig, load_config
from cognitive_metrics.games import GAMES, AggregateMode, GameId, PercentileMode


def test_defaults_without_environment() -> None:
    config = load_config({})
    assert config == EngineConfig()
    assert config.db_path is None
    assert config.recent_assessments == 5


def test_per_game_defaults() -> None:
    config = EngineConfig()
    assert config.percentile_for(GAMES[GameId.STROOP]) is PercentileMode.COMPARATIVE_RANK
    assert config.aggregate_for(GAMES[GameId.STROOP]) is AggregateMode.FULL_RECOMPUTE
    for game_id in (GameId.GO_NO_GO, GameId.MAZE_2D, GameId.MEMORY_MATCH):
        assert config.percentile_for(GAMES[game_id]) is PercentileMode.RATIO_TO_MEAN
        assert config.aggregate_for(GAMES[game_id]) is AggregateMode.INCREMENTAL


def test_environment_overrides() -> None:
    config = load_config(
        {
            "COGNITIVE_METRICS_DB_PATH": "/tmp/cm.sqlite3",
            "COGNITIVE_METRICS_PERCENTILE": "Normal_Curve",
            "COGNITIVE_METRICS_AGGREGATE": "incremental",
            "COGNITIVE_METRICS_CLAMP_RATIO": "yes",
            "COGNITIVE_METRICS_RECENT": "10",
        }
    )
    assert config.db_path == Path("/tmp/cm.sqlite3")
    assert config.percentile_mode is PercentileMode.NORMAL_CURVE
    assert config.percentile_for(GAMES[GameId.STROOP]) is PercentileMode.NORMAL_CURVE
    assert config.aggregate_for(GAMES[GameId.STROOP]) is AggregateMode.INCREMENTAL
    assert config.clamp_ratio_percentiles is True
    assert config.recent_assessments == 10


@pytest.mark.parametrize(
    "env",
    [
        {"COGNITIVE_METRICS_PERCENTILE": "median"},
        {"COGNITIVE_METRICS_AGGREGATE": "sometimes"},
        {"COGNITIVE_METRICS_CLAMP_RATIO": "maybe"},
        {"COGNITIVE_METRICS_RECENT": "five"},
        {"COGNITIVE_METRICS_RECENT": "-1"},
    ],
)
def test_invalid_environment_values(env: dict[str, str]) -> None:
    with pytest.raises(ValueError):
        load_config(env)
