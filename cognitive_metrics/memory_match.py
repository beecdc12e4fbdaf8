from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .cognitive_core import (
    DomainScores,
    MetricScores,
    as_number,
    clamp,
    cv_score,
    read_field,
    read_list,
    read_mapping,
    read_number,
    read_number_list,
    safe_ratio,
)
from .stats_core import mean, stddev, trend

DOMAINS = ("memory", "attention", "processing", "trends", "overall")


@dataclass(frozen=True, slots=True)
class MemoryMatchGameState:
    """Card-matching session telemetry.

    ``matched_pairs`` lists every matched card id (two per pair),
    ``view_timestamps`` maps card id to the ms it was first viewed, and
    ``match_times`` holds seconds taken for each successful match.
    """

    matched_pairs: tuple[str, ...] = field(default_factory=tuple)
    attempts: int = 0
    view_timestamps: Mapping[str, float] = field(default_factory=dict)
    match_times: tuple[float, ...] = field(default_factory=tuple)
    current_pair: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MemoryMatchGameState":
        views = read_mapping(read_field(data, "view_timestamps", {}), "view_timestamps")
        return cls(
            matched_pairs=tuple(str(c) for c in read_list(data, "matched_pairs")),
            attempts=int(read_number(data, "attempts", 0.0)),
            view_timestamps={str(k): as_number(v, f"view_timestamps[{k}]") for k, v in views.items()},
            match_times=read_number_list(data, "match_times"),
            current_pair=tuple(str(c) for c in read_list(data, "current_pair")),
        )


def _valid_times(values: Sequence[float]) -> list[float]:
    return [t for t in values if not math.isnan(t) and t > 0]


def calculate_memory_match_metrics(state: MemoryMatchGameState) -> DomainScores:
    attempts = state.attempts
    total_pairs = len(state.matched_pairs) / 2.0
    match_times = _valid_times(state.match_times)
    avg_match_time = mean(match_times)

    accuracy = (total_pairs / attempts) * 100.0 if attempts > 0 else 0.0
    error_rate = ((attempts - total_pairs) / attempts) * 100.0 if attempts > 0 else 0.0
    memory: MetricScores = {
        "accuracy": accuracy,
        "reaction_time": avg_match_time,
        "span": float(len(state.matched_pairs)),
        "error_rate": error_rate,
    }

    view_times = [t / 1000.0 for t in _valid_times(list(state.view_timestamps.values()))]
    focus_score = _focus_score(accuracy, avg_match_time)
    attention: MetricScores = {
        "focus_score": focus_score,
        "consistency": cv_score(match_times) if len(match_times) > 1 else 100.0,
        "deliberation_time": mean(view_times),
    }

    efficiency = _efficiency(accuracy, avg_match_time, error_rate)
    processing: MetricScores = {
        "cognitive_load": _cognitive_load(view_times, match_times, error_rate),
        # matches per minute
        "processing_speed": (total_pairs / avg_match_time) * 60.0 if avg_match_time > 0 else 0.0,
        "efficiency": efficiency,
    }

    # Running accuracy after each recorded match.
    running_accuracy = [
        (len(state.matched_pairs[: i + 1]) * 2 / (i + 1)) * 100.0 for i in range(len(state.match_times))
    ]
    trends: MetricScores = {
        "accuracy_trend": trend(running_accuracy),
        "speed_trend": trend(list(state.match_times)),
        "learning_rate": _learning_rate(list(state.match_times), error_rate),
    }

    overall: MetricScores = {
        "performance_score": min(100.0, accuracy * 0.3 + focus_score * 0.3 + efficiency * 0.4),
        "confidence_level": _confidence_level(attempts, total_pairs),
        "percentile_rank": min(100.0, (max(0.0, 100.0 - avg_match_time * 10.0) + accuracy) / 2.0),
    }

    return {
        "memory": memory,
        "attention": attention,
        "processing": processing,
        "trends": trends,
        "overall": overall,
    }


def _focus_score(accuracy: float, reaction_time: float) -> float:
    if reaction_time <= 0:
        return 0.0
    speed_factor = max(0.0, 100.0 - reaction_time * 10.0)
    return min(100.0, accuracy * 0.6 + speed_factor * 0.4)


def _cognitive_load(view_times: Sequence[float], match_times: Sequence[float], error_rate: float) -> float:
    if not view_times or not match_times:
        return 0.0
    variability = safe_ratio(stddev(match_times), mean(match_times), default=0.0) if len(match_times) > 1 else 0.0
    load = mean(view_times) * 20.0 + error_rate / 2.0 + variability * 10.0
    return clamp(load)


def _efficiency(accuracy: float, reaction_time: float, error_rate: float) -> float:
    if reaction_time <= 0:
        return 0.0
    speed_efficiency = max(0.0, 100.0 - reaction_time * 5.0)
    accuracy_efficiency = max(0.0, accuracy - error_rate / 2.0)
    return clamp((speed_efficiency + accuracy_efficiency) / 2.0)


def _learning_rate(match_times: Sequence[float], error_rate: float) -> float:
    if len(match_times) < 2:
        return 0.0
    improvement = safe_ratio(match_times[0] - match_times[-1], match_times[0], default=0.0)
    return clamp(improvement * 50.0 + (50.0 - error_rate / 2.0))


def _confidence_level(attempts: int, total_pairs: float) -> float:
    # Never below 50.
    if attempts <= 0:
        return 50.0
    confidence = min(100.0, (total_pairs * 2.0 / attempts) * 100.0)
    return max(50.0, confidence)
