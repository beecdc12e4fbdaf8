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
from .stats_core import mean, stddev

DOMAINS = ("inhibition", "attention", "processing", "flexibility", "overall")

VIGILANCE_OPTIMAL_RT_MS = 500.0
VIGILANCE_MAX_RT_MS = 1500.0


class StroopStimulus(StrEnum):
    CONGRUENT = "congruent"
    INCONGRUENT = "incongruent"


@dataclass(frozen=True, slots=True)
class StroopResponse:
    stimulus_type: StroopStimulus
    response_time: float  # ms
    was_correct: bool
    word_shown: str = ""
    color_shown: str = ""
    user_response: str = ""


@dataclass(frozen=True, slots=True)
class StroopGameState:
    responses: tuple[StroopResponse, ...] = field(default_factory=tuple)
    total_rounds: int = 0
    current_difficulty: float = 1.0
    streak: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StroopGameState":
        responses: list[StroopResponse] = []
        for idx, item in enumerate(read_list(data, "responses")):
            r = read_mapping(item, f"response {idx}")
            raw_type = str(read_field(r, "stimulus_type"))
            try:
                stimulus = StroopStimulus(raw_type)
            except ValueError as exc:
                raise ValidationError(f"response {idx} has unknown stimulus type '{raw_type}'") from exc
            responses.append(
                StroopResponse(
                    stimulus_type=stimulus,
                    response_time=read_number(r, "response_time"),
                    was_correct=bool(read_field(r, "was_correct")),
                    word_shown=str(read_field(r, "word_shown", "")),
                    color_shown=str(read_field(r, "color_shown", "")),
                    user_response=str(read_field(r, "user_response", "")),
                )
            )
        return cls(
            responses=tuple(responses),
            total_rounds=int(read_number(data, "total_rounds", float(len(responses)))),
            current_difficulty=read_number(data, "current_difficulty", 1.0),
            streak=int(read_number(data, "streak", 0.0)),
        )


def calculate_stroop_metrics(state: StroopGameState) -> DomainScores:
    responses = state.responses
    congruent = [r for r in responses if r.stimulus_type is StroopStimulus.CONGRUENT]
    incongruent = [r for r in responses if r.stimulus_type is StroopStimulus.INCONGRUENT]
    correct_congruent_rts = [r.response_time for r in congruent if r.was_correct]
    correct_incongruent_rts = [r.response_time for r in incongruent if r.was_correct]

    inhibition: MetricScores = {
        "accuracy": percent(sum(1 for r in responses if r.was_correct), len(responses)),
        "interference": percent(sum(1 for r in incongruent if not r.was_correct), len(incongruent)),
        "congruent_accuracy": percent(sum(1 for r in congruent if r.was_correct), len(congruent)),
        "incongruent_accuracy": percent(sum(1 for r in incongruent if r.was_correct), len(incongruent)),
        "interference_effect": mean(correct_incongruent_rts) - mean(correct_congruent_rts),
    }

    rts = [r.response_time for r in responses]
    very_slow = mean(rts) * 2.0
    attention: MetricScores = {
        "sustained_attention": _sustained_attention(responses),
        "vigilance_level": _vigilance_level(responses),
        "attentional_lapses": float(sum(1 for rt in rts if rt > very_slow)),
        "focus_quality": _focus_quality(responses),
    }

    processing: MetricScores = {
        "average_reaction_time": mean(rts),
        "congruent_reaction_time": mean(correct_congruent_rts),
        "incongruent_reaction_time": mean(correct_incongruent_rts),
        "reaction_time_variability": stddev(rts),
        "processing_efficiency": _processing_efficiency(responses),
    }

    flexibility: MetricScores = {
        "adaptive_control": _adaptive_control(responses, state.current_difficulty),
        "switching_cost": _switching_cost(responses),
        "error_recovery": _error_recovery(responses),
        "strategy_development": _strategy_development(responses, state.streak),
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
            + flexibility["adaptive_control"] * 0.25,
        ),
    }

    return {
        "inhibition": inhibition,
        "attention": attention,
        "processing": processing,
        "flexibility": flexibility,
        "overall": overall,
    }


def _sustained_attention(responses: Sequence[StroopResponse]) -> float:
    if len(responses) < 4:
        return 100.0
    first, last = quarter_slices(responses)
    first_acc = accuracy_of([r.was_correct for r in first])
    last_acc = accuracy_of([r.was_correct for r in last])
    return clamp((last_acc / max(first_acc, 0.01)) * 100.0)


def _vigilance_level(responses: Sequence[StroopResponse]) -> float:
    if not responses:
        return 0.0
    avg_rt = mean([r.response_time for r in responses if r.was_correct])
    span = VIGILANCE_MAX_RT_MS - VIGILANCE_OPTIMAL_RT_MS
    return clamp(100.0 - ((avg_rt - VIGILANCE_OPTIMAL_RT_MS) / span) * 100.0)


def _focus_quality(responses: Sequence[StroopResponse]) -> float:
    if len(responses) < 2:
        return 100.0
    rts = [r.response_time for r in responses]
    variability = safe_ratio(stddev(rts), mean(rts), default=0.0)
    return clamp(100.0 - variability * 100.0)


def _processing_efficiency(responses: Sequence[StroopResponse]) -> float:
    if not responses:
        return 0.0
    correct = [r for r in responses if r.was_correct]
    accuracy = len(correct) / len(responses)
    avg_speed = mean([r.response_time for r in correct])
    speed_score = clamp(100.0 - avg_speed / 20.0)
    return max(0.0, accuracy * 70.0 + speed_score * 30.0)


def _adaptive_control(responses: Sequence[StroopResponse], current_difficulty: float) -> float:
    if len(responses) < 5:
        return 50.0
    recent = sum(1 for r in responses[-5:] if r.was_correct) / 5.0
    ratio = current_difficulty / max(1.0, recent)
    return clamp(100.0 - ratio * 10.0)


def _switching_cost(responses: Sequence[StroopResponse]) -> float:
    if len(responses) < 3:
        return 0.0
    costs: list[float] = []
    for prev, cur in zip(responses, responses[1:]):
        if prev.stimulus_type is cur.stimulus_type:
            continue
        similar = [r.response_time for r in responses if r.stimulus_type is cur.stimulus_type and r.was_correct]
        cost = cur.response_time - mean(similar)
        if cost > 0 and cur.was_correct:
            costs.append(cost)
    return clamp(100.0 - mean(costs) / 5.0)


def _error_recovery(responses: Sequence[StroopResponse]) -> float:
    if len(responses) < 2:
        return 100.0
    post_error = [cur.response_time for prev, cur in zip(responses, responses[1:]) if not prev.was_correct and cur.was_correct]
    if not post_error:
        return 100.0
    avg_correct = mean([r.response_time for r in responses if r.was_correct])
    recovery = safe_ratio(avg_correct, mean(post_error), default=1.0)
    return clamp(recovery * 100.0)


def _strategy_development(responses: Sequence[StroopResponse], streak: int) -> float:
    if len(responses) < 8:
        return 50.0
    mid = len(responses) // 2
    first, second = responses[:mid], responses[mid:]
    accuracy_gain = (accuracy_of([r.was_correct for r in second]) - accuracy_of([r.was_correct for r in first])) * 100.0
    speed_gain = max(0.0, mean([r.response_time for r in first]) - mean([r.response_time for r in second]))
    streak_bonus = min(25, streak)
    return clamp(50.0 + accuracy_gain + speed_gain / 10.0 + streak_bonus)


def _cognitive_fatigue(responses: Sequence[StroopResponse]) -> float:
    if len(responses) < 8:
        return 0.0
    first, last = quarter_slices(responses)
    first_rt = mean([r.response_time for r in first])
    last_rt = mean([r.response_time for r in last])
    rt_increase = max(0.0, safe_ratio(last_rt - first_rt, first_rt, default=0.0)) * 100.0
    acc_decrease = max(0.0, accuracy_of([r.was_correct for r in first]) - accuracy_of([r.was_correct for r in last])) * 100.0
    return min(100.0, rt_increase * 0.5 + acc_decrease * 0.5)


def _consistency_index(responses: Sequence[StroopResponse]) -> float:
    if len(responses) < 4:
        return 100.0
    rts = [r.response_time for r in responses]
    rt_consistency = 1.0 - safe_ratio(stddev(rts), mean(rts), default=0.0)
    accuracy_consistency = 1.0 - stddev(rolling_accuracies([r.was_correct for r in responses]))
    return clamp((rt_consistency * 50.0 + accuracy_consistency * 50.0) * 100.0)
