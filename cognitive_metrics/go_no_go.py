from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from .cognitive_core import (
    DomainScores,
    MetricScores,
    accuracy_of,
    clamp,
    percent,
    quarter_slices,
    read_field,
    read_list,
    read_mapping,
    read_number,
    rolling_accuracies,
    safe_ratio,
)
from .errors import ValidationError
from .stats_core import mean, stddev, trend

DOMAINS = ("inhibition", "attention", "processing", "learning", "overall")

# Vigilance scale: correct-response RT at or below OPTIMAL scores 100, at MAX scores 0.
VIGILANCE_OPTIMAL_RT_MS = 300.0
VIGILANCE_MAX_RT_MS = 1000.0


class StimulusType(StrEnum):
    GO = "go"
    NO_GO = "no-go"


@dataclass(frozen=True, slots=True)
class GoNoGoResponse:
    timestamp: float
    stimulus_type: StimulusType
    response_time: float  # ms
    was_correct: bool
    speed: float  # stimulus interval in ms; lower is faster


@dataclass(frozen=True, slots=True)
class GoNoGoGameState:
    responses: tuple[GoNoGoResponse, ...] = field(default_factory=tuple)
    total_rounds: int = 0
    streak: int = 0
    current_speed: float = 0.0
    score: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GoNoGoGameState":
        responses: list[GoNoGoResponse] = []
        for idx, item in enumerate(read_list(data, "responses")):
            r = read_mapping(item, f"response {idx}")
            raw_type = str(read_field(r, "stimulus_type"))
            try:
                stimulus = StimulusType(raw_type)
            except ValueError as exc:
                raise ValidationError(f"response {idx} has unknown stimulus type '{raw_type}'") from exc
            responses.append(
                GoNoGoResponse(
                    timestamp=read_number(r, "timestamp", 0.0),
                    stimulus_type=stimulus,
                    response_time=read_number(r, "response_time"),
                    was_correct=bool(read_field(r, "was_correct")),
                    speed=read_number(r, "speed", 0.0),
                )
            )
        return cls(
            responses=tuple(responses),
            total_rounds=int(read_number(data, "total_rounds", float(len(responses)))),
            streak=int(read_number(data, "streak", 0.0)),
            current_speed=read_number(data, "current_speed", 0.0),
            score=read_number(data, "score", 0.0),
        )


def calculate_go_no_go_metrics(state: GoNoGoGameState) -> DomainScores:
    """Turn a finished Go/No-Go session into domain sub-scores."""

    responses = state.responses
    go = [r for r in responses if r.stimulus_type is StimulusType.GO]
    no_go = [r for r in responses if r.stimulus_type is StimulusType.NO_GO]

    inhibition: MetricScores = {
        "accuracy": percent(sum(1 for r in responses if r.was_correct), len(responses)),
        "no_go_accuracy": percent(sum(1 for r in no_go if r.was_correct), len(no_go)),
        "go_accuracy": percent(sum(1 for r in go if r.was_correct), len(go)),
        "false_alarms": float(sum(1 for r in no_go if not r.was_correct)),
        "missed_goes": float(sum(1 for r in go if not r.was_correct)),
    }

    rts = [r.response_time for r in responses]
    very_slow = mean(rts) * 2.0
    attention: MetricScores = {
        "sustained_attention": _sustained_attention(responses),
        "vigilance_level": _vigilance_level(responses),
        "attentional_lapses": float(sum(1 for rt in rts if rt > very_slow)),
        "focus_quality": _focus_quality(responses),
    }

    correct_go_rts = [r.response_time for r in go if r.was_correct]
    processing: MetricScores = {
        "average_reaction_time": mean(correct_go_rts),
        "reaction_time_variability": stddev(correct_go_rts),
        "processing_efficiency": _processing_efficiency(responses),
        "adaptive_control": _adaptive_control(responses),
    }

    learning: MetricScores = {
        "learning_rate": _learning_rate(responses),
        "error_correction_speed": _error_correction_speed(responses),
        "adaptation_quality": _adaptation_quality(responses, state.current_speed),
        "performance_stability": _performance_stability(responses),
    }

    overall: MetricScores = {
        "performance_score": min(
            100.0,
            inhibition["accuracy"] * 0.4
            + attention["sustained_attention"] * 0.3
            + processing["processing_efficiency"] * 0.3,
        ),
        "cognitive_fatigue": _cognitive_fatigue(responses),
        "consistency_index": _consistency_index(responses),
        "composite_score": min(
            100.0,
            inhibition["accuracy"] * 0.25
            + attention["sustained_attention"] * 0.25
            + processing["processing_efficiency"] * 0.25
            + learning["learning_rate"] * 0.25,
        ),
    }

    return {
        "inhibition": inhibition,
        "attention": attention,
        "processing": processing,
        "learning": learning,
        "overall": overall,
    }


def _sustained_attention(responses: Sequence[GoNoGoResponse]) -> float:
    if len(responses) < 4:
        return 100.0
    first, last = quarter_slices(responses)
    first_acc = accuracy_of([r.was_correct for r in first])
    last_acc = accuracy_of([r.was_correct for r in last])
    if first_acc == 0:
        # Nothing to decline from.
        return 100.0
    return clamp((last_acc / first_acc) * 100.0)


def _vigilance_level(responses: Sequence[GoNoGoResponse]) -> float:
    if not responses:
        return 0.0
    avg_rt = mean([r.response_time for r in responses if r.was_correct])
    span = VIGILANCE_MAX_RT_MS - VIGILANCE_OPTIMAL_RT_MS
    return clamp(100.0 - ((avg_rt - VIGILANCE_OPTIMAL_RT_MS) / span) * 100.0)


def _focus_quality(responses: Sequence[GoNoGoResponse]) -> float:
    if len(responses) < 2:
        return 100.0
    rts = [r.response_time for r in responses]
    variability = safe_ratio(stddev(rts), mean(rts), default=0.0)
    return clamp(100.0 - variability * 100.0)


def _processing_efficiency(responses: Sequence[GoNoGoResponse]) -> float:
    if not responses:
        return 0.0
    correct = [r for r in responses if r.was_correct]
    accuracy = len(correct) / len(responses)
    avg_speed = mean([r.response_time for r in correct])
    speed_score = clamp(100.0 - avg_speed / 10.0)
    return accuracy * 60.0 + speed_score * 40.0


def _adaptive_control(responses: Sequence[GoNoGoResponse]) -> float:
    if len(responses) < 4:
        return 100.0
    score = 0
    for prev, cur in zip(responses, responses[1:]):
        if cur.speed - prev.speed < 0:  # got faster
            change = int(cur.was_correct) - int(prev.was_correct)
            score += 1 if change >= 0 else -1
    return clamp(50.0 + score * 10.0)


def _learning_rate(responses: Sequence[GoNoGoResponse]) -> float:
    if len(responses) < 4:
        return 0.0
    q = len(responses) // 4
    by_quarter = [accuracy_of([r.was_correct for r in responses[i * q : (i + 1) * q]]) for i in range(4)]
    return max(0.0, trend(by_quarter))


def _error_correction_speed(responses: Sequence[GoNoGoResponse]) -> float:
    if len(responses) < 2:
        return 100.0
    times = [cur.response_time for prev, cur in zip(responses, responses[1:]) if not prev.was_correct and cur.was_correct]
    if not times:
        return 100.0
    return clamp(100.0 - mean(times) / 10.0)


def _adaptation_quality(responses: Sequence[GoNoGoResponse], current_speed: float) -> float:
    if len(responses) < 4:
        return 100.0
    initial_speed = responses[0].speed
    speed_reduction = initial_speed - current_speed
    recent_accuracy = sum(1 for r in responses[-4:] if r.was_correct) / 4.0
    factor = 1.0 + safe_ratio(speed_reduction, initial_speed, default=0.0)
    return clamp(recent_accuracy * 100.0 * factor)


def _performance_stability(responses: Sequence[GoNoGoResponse]) -> float:
    if len(responses) < 4:
        return 100.0
    accuracies = rolling_accuracies([r.was_correct for r in responses])
    return clamp((1.0 - stddev(accuracies)) * 100.0)


def _cognitive_fatigue(responses: Sequence[GoNoGoResponse]) -> float:
    if len(responses) < 8:
        return 0.0
    first, last = quarter_slices(responses)
    first_rt = mean([r.response_time for r in first])
    last_rt = mean([r.response_time for r in last])
    accuracy_drop = max(0.0, accuracy_of([r.was_correct for r in first]) - accuracy_of([r.was_correct for r in last]))
    speed_drop = safe_ratio(max(0.0, last_rt - first_rt), first_rt, default=0.0)
    return min(100.0, accuracy_drop * 50.0 + speed_drop * 50.0)


def _consistency_index(responses: Sequence[GoNoGoResponse]) -> float:
    if len(responses) < 4:
        return 100.0
    rts = [r.response_time for r in responses]
    rt_consistency = 1.0 - safe_ratio(stddev(rts), mean(rts), default=0.0)
    accuracy_consistency = 1.0 - stddev(rolling_accuracies([r.was_correct for r in responses]))
    return clamp((rt_consistency * 50.0 + accuracy_consistency * 50.0) * 100.0)
