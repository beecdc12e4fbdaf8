from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from . import go_no_go, maze2d, memory_match, stroop
from .cognitive_core import DomainScores
from .errors import ValidationError


class GameId(StrEnum):
    GO_NO_GO = "go_no_go"
    STROOP = "stroop"
    MAZE_2D = "maze2d"
    MEMORY_MATCH = "memory_match"


class PercentileMode(StrEnum):
    RATIO_TO_MEAN = "ratio_to_mean"
    COMPARATIVE_RANK = "comparative_rank"
    NORMAL_CURVE = "normal_curve"


class AggregateMode(StrEnum):
    INCREMENTAL = "incremental"
    FULL_RECOMPUTE = "full_recompute"


@dataclass(frozen=True, slots=True)
class GameDefinition:
    """Everything the engine needs to score one game.

    ``parse`` turns browser telemetry into the game's state object and
    ``calculate`` turns that state into domain scores.
    """

    game_id: GameId
    domains: tuple[str, ...]
    parse: Callable[[Mapping[str, Any]], Any]
    calculate: Callable[[Any], DomainScores]
    percentile_mode: PercentileMode
    aggregate_mode: AggregateMode
    completion_time: Callable[[DomainScores], float]

    def score_raw(self, raw: Mapping[str, Any]) -> DomainScores:
        if not isinstance(raw, Mapping):
            raise ValidationError("raw telemetry must be an object")
        return self.calculate(self.parse(raw))


def _no_completion_time(scores: DomainScores) -> float:
    return 0.0


def _maze_completion_time(scores: DomainScores) -> float:
    return float(scores.get("problem_solving", {}).get("solution_time", 0.0))


def _memory_completion_time(scores: DomainScores) -> float:
    memory = scores.get("memory", {})
    return float(memory.get("reaction_time", 0.0)) * float(memory.get("span", 0.0))


GAMES: dict[GameId, GameDefinition] = {
    GameId.GO_NO_GO: GameDefinition(
        game_id=GameId.GO_NO_GO,
        domains=go_no_go.DOMAINS,
        parse=go_no_go.GoNoGoGameState.from_dict,
        calculate=go_no_go.calculate_go_no_go_metrics,
        percentile_mode=PercentileMode.RATIO_TO_MEAN,
        aggregate_mode=AggregateMode.INCREMENTAL,
        completion_time=_no_completion_time,
    ),
    GameId.STROOP: GameDefinition(
        game_id=GameId.STROOP,
        domains=stroop.DOMAINS,
        parse=stroop.StroopGameState.from_dict,
        calculate=stroop.calculate_stroop_metrics,
        percentile_mode=PercentileMode.COMPARATIVE_RANK,
        aggregate_mode=AggregateMode.FULL_RECOMPUTE,
        completion_time=_no_completion_time,
    ),
    GameId.MAZE_2D: GameDefinition(
        game_id=GameId.MAZE_2D,
        domains=maze2d.DOMAINS,
        parse=maze2d.Maze2DGameState.from_dict,
        calculate=maze2d.calculate_maze2d_metrics,
        percentile_mode=PercentileMode.RATIO_TO_MEAN,
        aggregate_mode=AggregateMode.INCREMENTAL,
        completion_time=_maze_completion_time,
    ),
    GameId.MEMORY_MATCH: GameDefinition(
        game_id=GameId.MEMORY_MATCH,
        domains=memory_match.DOMAINS,
        parse=memory_match.MemoryMatchGameState.from_dict,
        calculate=memory_match.calculate_memory_match_metrics,
        percentile_mode=PercentileMode.RATIO_TO_MEAN,
        aggregate_mode=AggregateMode.INCREMENTAL,
        completion_time=_memory_completion_time,
    ),
}


def get_game(game_id: str) -> GameDefinition:
    try:
        return GAMES[GameId(str(game_id))]
    except ValueError as exc:
        raise ValidationError(f"unknown game '{game_id}'") from exc
