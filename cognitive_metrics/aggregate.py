from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from .cognitive_core import DomainScores, is_metric_value
from .stats_core import mean


@dataclass(frozen=True, slots=True)
class AggregateStats:
    """Population-wide running statistics for one game."""

    total_assessments: int = 0
    average_scores: DomainScores = field(default_factory=dict)

    def average(self, domain: str, metric: str) -> float:
        return float(self.average_scores.get(domain, {}).get(metric, 0.0))

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_assessments": self.total_assessments,
            "average_scores": {d: dict(m) for d, m in self.average_scores.items()},
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AggregateStats":
        averages = data.get("average_scores", {})
        return cls(
            total_assessments=int(data.get("total_assessments", 0)),
            average_scores={
                str(d): {str(k): float(v) for k, v in metrics.items()} for d, metrics in averages.items()
            },
        )


class AggregateUpdateStrategy(Protocol):
    def update(
        self,
        stats: AggregateStats,
        *,
        scores: DomainScores,
        history: Sequence[DomainScores],
    ) -> AggregateStats:
        """Fold one new assessment into ``stats``.

        ``history`` holds every stored assessment's scores, the new one last.
        """


class IncrementalMeanUpdate:
    """O(1) running mean per metric.

    A stored average of exactly 0 is treated as "no data yet" and replaced by
    the new value outright.
    """

    def update(
        self,
        stats: AggregateStats,
        *,
        scores: DomainScores,
        history: Sequence[DomainScores],
    ) -> AggregateStats:
        n = stats.total_assessments + 1
        averages = {d: dict(m) for d, m in stats.average_scores.items()}
        for domain, metrics in scores.items():
            bucket = averages.setdefault(domain, {})
            for metric, value in metrics.items():
                if not is_metric_value(value):
                    continue
                old = bucket.get(metric, 0.0)
                bucket[metric] = float(value) if old == 0 else (old * (n - 1) + float(value)) / n
        return AggregateStats(total_assessments=n, average_scores=averages)


class FullRecomputeUpdate:
    """Re-average every stored assessment on each write (O(n))."""

    def update(
        self,
        stats: AggregateStats,
        *,
        scores: DomainScores,
        history: Sequence[DomainScores],
    ) -> AggregateStats:
        collected: dict[str, dict[str, list[float]]] = {}
        for entry in history:
            for domain, metrics in entry.items():
                bucket = collected.setdefault(domain, {})
                for metric, value in metrics.items():
                    if is_metric_value(value):
                        bucket.setdefault(metric, []).append(float(value))

        averages = {d: dict(m) for d, m in stats.average_scores.items()}
        for domain, metrics in collected.items():
            target = averages.setdefault(domain, {})
            for metric, values in metrics.items():
                target[metric] = mean(values)

        total = max(stats.total_assessments + 1, len(history))
        return AggregateStats(total_assessments=total, average_scores=averages)
