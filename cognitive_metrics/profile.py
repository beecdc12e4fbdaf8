from __future__ import annotations

import bisect
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from .cognitive_core import DomainScores, MetricScores, clamp, is_metric_value, round_half_up
from .stats_core import mean, variance

S = TypeVar("S", bound=Mapping[str, float])


@dataclass(frozen=True, slots=True)
class TrendEntry(Generic[S]):
    timestamp: int
    scores: S


@dataclass(frozen=True, slots=True)
class Progress:
    improvement: int  # signed percent
    consistency: int  # 0-100

    def to_dict(self) -> dict[str, int]:
        return {"improvement": self.improvement, "consistency": self.consistency}


NO_PROGRESS = Progress(improvement=0, consistency=100)


@dataclass(slots=True)
class DomainProfile(Generic[S]):
    """Baseline and time-ordered history for one cognitive domain.

    The baseline is the first assessment's scores and is written once.
    """

    baseline: S | None = None
    trend: list[TrendEntry[S]] = field(default_factory=list)

    def record(self, timestamp: int, scores: S) -> None:
        if self.baseline is None:
            self.baseline = scores
        entry = TrendEntry(timestamp=int(timestamp), scores=scores)
        # Stable for equal timestamps: later submissions land after earlier ones.
        idx = bisect.bisect_right([e.timestamp for e in self.trend], entry.timestamp)
        self.trend.insert(idx, entry)

    def latest(self) -> S | None:
        if not self.trend:
            return None
        return self.trend[-1].scores

    def progress(self) -> Progress:
        return calculate_progress(self.trend)

    def to_dict(self) -> dict[str, Any]:
        return {
            "baseline": None if self.baseline is None else dict(self.baseline),
            "trend": [{"timestamp": e.timestamp, "scores": dict(e.scores)} for e in self.trend],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DomainProfile[MetricScores]":
        baseline = data.get("baseline")
        trend = [
            TrendEntry(timestamp=int(item["timestamp"]), scores=_metric_map(item["scores"]))
            for item in data.get("trend", [])
        ]
        return cls(baseline=None if baseline is None else _metric_map(baseline), trend=trend)


@dataclass(slots=True)
class UserProfile:
    domains: dict[str, DomainProfile[MetricScores]] = field(default_factory=dict)

    def record(self, timestamp: int, scores: DomainScores) -> None:
        for domain, metrics in scores.items():
            self.domains.setdefault(domain, DomainProfile()).record(timestamp, dict(metrics))

    def progress(self) -> dict[str, Progress]:
        return {domain: profile.progress() for domain, profile in self.domains.items()}

    def baseline(self, domain: str) -> MetricScores | None:
        profile = self.domains.get(domain)
        return None if profile is None else profile.baseline

    def to_dict(self) -> dict[str, Any]:
        return {domain: profile.to_dict() for domain, profile in self.domains.items()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UserProfile":
        return cls(domains={str(k): DomainProfile.from_dict(v) for k, v in data.items()})


def _metric_map(raw: Mapping[str, Any]) -> MetricScores:
    return {str(k): float(v) for k, v in raw.items()}


def flatten_trend(trend: Iterable[TrendEntry[Any]]) -> list[float]:
    """All numeric values of all entries, entry by entry in metric order."""

    return [float(v) for entry in trend for v in entry.scores.values() if is_metric_value(v)]


def calculate_progress(trend: Sequence[TrendEntry[Any]]) -> Progress:
    """Improvement between halves of the flattened history and its consistency.

    ``improvement = (mean(second half) - mean(first half)) / mean(first half) * 100``
    and ``consistency = 100 - variance / mean * 10``, both rounded. With fewer
    than two trend entries there is nothing to compare.
    """

    if len(trend) < 2:
        return NO_PROGRESS

    scores = flatten_trend(trend)
    half = len(scores) // 2
    first_mean = mean(scores[:half])
    second_mean = mean(scores[half:])
    improvement = 0.0 if first_mean == 0 else ((second_mean - first_mean) / first_mean) * 100.0

    overall_mean = mean(scores)
    if overall_mean == 0:
        consistency = 100.0
    else:
        consistency = clamp(100.0 - (variance(scores) / overall_mean) * 10.0)

    return Progress(improvement=round_half_up(improvement), consistency=round_half_up(consistency))


def domain_averages(scores: Mapping[str, Mapping[str, float]]) -> dict[str, float]:
    """Mean metric value per domain."""

    return {domain: mean(list(metrics.values())) for domain, metrics in scores.items()}


_FOCUS_ADVICE = {
    "spatial_navigation": "Improve spatial awareness and navigation skills",
    "decision_making": "Practice deliberate decision-making at key junctions",
    "problem_solving": "Enhance problem-solving strategies and efficiency",
    "attention": "Focus on maintaining consistent attention throughout tasks",
    "inhibition": "Practice withholding responses to distracting stimuli",
    "processing": "Work on responding quickly without sacrificing accuracy",
    "learning": "Review mistakes between rounds to speed up adaptation",
    "flexibility": "Practice switching between task rules",
    "memory": "Use rehearsal and grouping strategies to hold more items",
    "trends": "Keep sessions regular to build steady improvement",
}


@dataclass(frozen=True, slots=True)
class FocusRecommendation:
    domain: str
    advice: str

    def to_dict(self) -> dict[str, str]:
        return {"domain": self.domain, "advice": self.advice}


def recommended_focus(scores: Mapping[str, Mapping[str, float]]) -> FocusRecommendation | None:
    """Weakest non-overall domain by average score; ties keep the first domain."""

    averages = {d: v for d, v in domain_averages(scores).items() if d != "overall"}
    if not averages:
        return None
    weakest = min(averages, key=lambda d: averages[d])
    advice = _FOCUS_ADVICE.get(weakest, f"Practice tasks that exercise {weakest.replace('_', ' ')}")
    return FocusRecommendation(domain=weakest, advice=advice)
