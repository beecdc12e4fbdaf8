from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .cognitive_core import (
    DomainScores,
    MetricScores,
    clamp,
    cv_score,
    percent,
    read_field,
    read_list,
    read_mapping,
    read_number,
    read_number_list,
    safe_ratio,
)
from .stats_core import mean, stddev

DOMAINS = ("spatial_navigation", "decision_making", "problem_solving", "attention", "overall")

# Solution times at or below this many seconds earn the full time score.
_TIME_SCORE_NUMERATOR = 10000.0


@dataclass(frozen=True, slots=True)
class PathPoint:
    x: int
    y: int
    timestamp: float  # ms since game start


@dataclass(frozen=True, slots=True)
class Maze2DGameState:
    path: tuple[PathPoint, ...] = field(default_factory=tuple)
    time_elapsed: float = 0.0
    wall_collisions: int = 0
    revisited_cells: int = 0
    total_cells: int = 0
    cells_visited: int = 0
    hints_used: int = 0
    difficulty: float = 1.0  # 1-10
    completed: bool = False
    optimal_path_length: float = 0.0
    actual_path_length: float = 0.0
    move_times: tuple[float, ...] = field(default_factory=tuple)
    decision_point_times: tuple[float, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Maze2DGameState":
        path: list[PathPoint] = []
        for idx, item in enumerate(read_list(data, "path")):
            p = read_mapping(item, f"path point {idx}")
            path.append(
                PathPoint(
                    x=int(read_number(p, "x")),
                    y=int(read_number(p, "y")),
                    timestamp=read_number(p, "timestamp", 0.0),
                )
            )
        return cls(
            path=tuple(path),
            time_elapsed=read_number(data, "time_elapsed", 0.0),
            wall_collisions=int(read_number(data, "wall_collisions", 0.0)),
            revisited_cells=int(read_number(data, "revisited_cells", 0.0)),
            total_cells=int(read_number(data, "total_cells", 0.0)),
            cells_visited=int(read_number(data, "cells_visited", 0.0)),
            hints_used=int(read_number(data, "hints_used", 0.0)),
            difficulty=read_number(data, "difficulty", 1.0),
            completed=bool(read_field(data, "completed", False)),
            optimal_path_length=read_number(data, "optimal_path_length", 0.0),
            actual_path_length=read_number(data, "actual_path_length", 0.0),
            move_times=read_number_list(data, "move_times"),
            decision_point_times=read_number_list(data, "decision_point_times"),
        )


def calculate_maze2d_metrics(state: Maze2DGameState) -> DomainScores:
    """Derive spatial, decision, problem-solving and attention scores from one maze run."""

    path = state.path
    actual = state.actual_path_length
    optimal = state.optimal_path_length
    collisions = state.wall_collisions
    move_times = list(state.move_times)
    decision_times = list(state.decision_point_times)

    path_efficiency = 0.0 if actual == 0 else min(100.0, (optimal / actual) * 100.0)
    exploration_coverage = percent(state.cells_visited, state.total_cells)
    spatial_navigation: MetricScores = {
        "path_efficiency": path_efficiency,
        "exploration_coverage": exploration_coverage,
        "spatial_memory": 0.0 if actual == 0 else max(0.0, 100.0 - (state.revisited_cells / actual) * 100.0),
        "wayfinding_precision": 0.0 if actual == 0 else max(0.0, 100.0 - (collisions / actual) * 100.0),
        "route_planning": _route_planning(path, optimal, actual),
    }

    decision_consistency = 0.0 if len(decision_times) < 2 else cv_score(decision_times)
    decision_making: MetricScores = {
        "decision_speed": 0.0 if not decision_times else max(0.0, 100.0 - mean(decision_times) / 20.0),
        "decision_consistency": decision_consistency,
        "exploration_strategy": _exploration_strategy(path, state.cells_visited, state.total_cells),
        "adaptive_decision_making": 0.0 if len(path) < 3 else max(0.0, 100.0 - collisions * 5.0),
        "confidence_level": _confidence_level(move_times, state.hints_used),
    }

    solution_time = state.time_elapsed
    hints_reliance = _hints_reliance(state.hints_used, state.difficulty)
    error_correction = 0.0 if not path else max(0.0, 100.0 - (collisions / len(path)) * 100.0)
    problem_solving: MetricScores = {
        "solution_time": solution_time,
        "hints_reliance": hints_reliance,
        "error_correction": error_correction,
        "obstacle_management": 0.0 if not path else max(0.0, 100.0 - (collisions / len(path)) * 200.0),
        "solution_optimality": 0.0 if not state.completed or actual == 0 else min(100.0, (optimal / actual) * 100.0),
    }

    attention: MetricScores = {
        "focus_maintenance": 0.0 if len(move_times) < 2 else cv_score(move_times),
        "distraction_resistance": 0.0
        if state.cells_visited == 0
        else max(0.0, 100.0 - (state.revisited_cells / state.cells_visited) * 100.0),
        "attentional_stamina": _attentional_stamina(path, solution_time),
        "vigilance_level": 0.0 if actual == 0 else max(0.0, 100.0 - (collisions / actual) * 200.0),
        "attentional_lapses": _attentional_lapses(move_times),
    }

    time_score = _time_score(solution_time)
    performance_score = path_efficiency * 0.4 + time_score * 0.3 + hints_reliance * 0.1 + error_correction * 0.2
    overall: MetricScores = {
        "performance_score": performance_score,
        "cognitive_efficiency": 0.0 if actual == 0 else (optimal / actual) * 50.0 + time_score * 0.5,
        # Needs several mazes from the same player; a single run carries no signal.
        "learning_rate": 0.0,
        "cognitive_stamina": _cognitive_stamina(move_times, solution_time),
        "composite_score": path_efficiency * 0.25
        + exploration_coverage * 0.25
        + decision_consistency * 0.25
        + performance_score * 0.25,
    }

    return {
        "spatial_navigation": spatial_navigation,
        "decision_making": decision_making,
        "problem_solving": problem_solving,
        "attention": attention,
        "overall": overall,
    }


def _time_score(solution_time: float) -> float:
    if solution_time <= 0:
        return 100.0
    return min(100.0, _TIME_SCORE_NUMERATOR / solution_time)


def _route_planning(path: Sequence[PathPoint], optimal: float, actual: float) -> float:
    if actual == 0 or len(path) < 2:
        return 0.0
    direction_changes = 0
    for a, b, c in zip(path, path[1:], path[2:]):
        if (b.x - a.x, b.y - a.y) != (c.x - b.x, c.y - b.y):
            direction_changes += 1
    change_ratio = direction_changes / actual
    return min(100.0, (optimal / actual) * 50.0 + (1.0 - change_ratio) * 50.0)


def _exploration_strategy(path: Sequence[PathPoint], cells_visited: int, total_cells: int) -> float:
    if len(path) < 2 or total_cells == 0:
        return 0.0
    # Pattern detection is a fixed placeholder: 0.5 for short paths, 0.7 otherwise.
    pattern = 0.5 if len(path) < 10 else 0.7
    return min(100.0, (cells_visited / total_cells) * 50.0 + pattern * 50.0)


def _confidence_level(move_times: Sequence[float], hints_used: int) -> float:
    if not move_times:
        return 0.0
    hesitation = max(0.0, 100.0 - safe_ratio(stddev(move_times), mean(move_times), default=0.0) * 100.0)
    return max(0.0, hesitation - hints_used * 5.0)


def _hints_reliance(hints_used: int, difficulty: float) -> float:
    max_allowed = math.ceil(5.0 * (difficulty / 10.0))
    if max_allowed <= 0:
        return 100.0 if hints_used == 0 else 0.0
    return max(0.0, 100.0 - (hints_used / max_allowed) * 100.0)


def _attentional_stamina(path: Sequence[PathPoint], time_elapsed: float) -> float:
    if len(path) < 10 or time_elapsed == 0:
        return 0.0
    n = len(path)
    bounds = (0, int(n / 4), int(n / 2), int(3 * n / 4), n)
    quarter_times = []
    for lo, hi in zip(bounds, bounds[1:]):
        quarter = path[lo:hi]
        if len(quarter) < 2:
            quarter_times.append(0.0)
        else:
            quarter_times.append((quarter[-1].timestamp - quarter[0].timestamp) / len(quarter))
    if quarter_times[0] == 0:
        return 50.0
    fatigue_ratio = quarter_times[3] / quarter_times[0]
    return clamp(100.0 - (fatigue_ratio - 1.0) * 50.0)


def _attentional_lapses(move_times: Sequence[float]) -> float:
    if not move_times:
        return 0.0
    threshold = mean(move_times) + 2.5 * stddev(move_times)
    return float(sum(1 for t in move_times if t > threshold))


def _cognitive_stamina(move_times: Sequence[float], time_elapsed: float) -> float:
    if len(move_times) < 10 or time_elapsed == 0:
        return 0.0
    half = len(move_times) // 2
    first_mean = mean(move_times[:half])
    if first_mean == 0:
        return 100.0
    fatigue_ratio = mean(move_times[half:]) / first_mean
    return clamp(100.0 - (fatigue_ratio - 1.0) * 50.0)
