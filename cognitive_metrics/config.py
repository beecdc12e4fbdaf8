from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from .games import AggregateMode, GameDefinition, PercentileMode

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off", ""})


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Deployment choices for the engine.

    ``percentile_mode`` and ``aggregate_mode`` override every game's own
    default when set. ``db_path`` of None keeps stores in memory.
    """

    db_path: Path | None = None
    percentile_mode: PercentileMode | None = None
    aggregate_mode: AggregateMode | None = None
    clamp_ratio_percentiles: bool = False
    recent_assessments: int = 5

    def __post_init__(self) -> None:
        if self.recent_assessments < 0:
            raise ValueError("recent_assessments must be >= 0")

    def percentile_for(self, game: GameDefinition) -> PercentileMode:
        return self.percentile_mode or game.percentile_mode

    def aggregate_for(self, game: GameDefinition) -> AggregateMode:
        return self.aggregate_mode or game.aggregate_mode


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean, got '{raw}'")


def load_config(env: Mapping[str, str] | None = None) -> EngineConfig:
    env = os.environ if env is None else env

    raw_db = env.get("COGNITIVE_METRICS_DB_PATH", "").strip()
    db_path = Path(raw_db).expanduser() if raw_db else None

    raw_percentile = env.get("COGNITIVE_METRICS_PERCENTILE", "").strip().lower()
    raw_aggregate = env.get("COGNITIVE_METRICS_AGGREGATE", "").strip().lower()
    try:
        percentile_mode = PercentileMode(raw_percentile) if raw_percentile else None
        aggregate_mode = AggregateMode(raw_aggregate) if raw_aggregate else None
    except ValueError as exc:
        raise ValueError(f"invalid strategy in environment: {exc}") from exc

    clamp_ratio = _parse_bool("COGNITIVE_METRICS_CLAMP_RATIO", env.get("COGNITIVE_METRICS_CLAMP_RATIO", ""))

    raw_recent = env.get("COGNITIVE_METRICS_RECENT", "").strip()
    try:
        recent = int(raw_recent) if raw_recent else 5
    except ValueError as exc:
        raise ValueError(f"COGNITIVE_METRICS_RECENT must be an integer, got '{raw_recent}'") from exc

    return EngineConfig(
        db_path=db_path,
        percentile_mode=percentile_mode,
        aggregate_mode=aggregate_mode,
        clamp_ratio_percentiles=clamp_ratio,
        recent_assessments=recent,
    )
