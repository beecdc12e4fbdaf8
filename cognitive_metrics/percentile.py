from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Protocol, TypeAlias

from .aggregate import AggregateStats
from .cognitive_core import DomainScores, clamp, is_metric_value, round_half_up
from .stats_core import mean, stddev, z_score, z_to_percentile

# domain -> metric -> percentile
PercentileRanking: TypeAlias = dict[str, dict[str, int]]

NEUTRAL_PERCENTILE = 50

LOWER_IS_BETTER: frozenset[str] = frozenset(
    {
        "average_reaction_time",
        "congruent_reaction_time",
        "incongruent_reaction_time",
        "reaction_time_variability",
        "interference",
        "interference_effect",
        "attentional_lapses",
        "cognitive_fatigue",
    }
)


class PercentileStrategy(Protocol):
    def rank(
        self,
        *,
        latest: DomainScores,
        population: Sequence[DomainScores],
        aggregate: AggregateStats,
    ) -> PercentileRanking:
        """Rank ``latest`` against the population.

        ``population`` holds each user's most recent assessment for the game.
        """


def ratio_to_mean(user_score: float, avg_score: float) -> int:
    """``round(user / avg * 50)``: 0 for a zero score, 50 when there is no average.

    Not a true percentile. An above-average user scores above 100. Metrics
    that can go negative (trends) would give a negative ratio, so the result
    never drops below 0.
    """

    if user_score == 0:
        return 0
    if avg_score == 0:
        return NEUTRAL_PERCENTILE
    return max(0, round_half_up((user_score / avg_score) * 50.0))


def comparative_rank(user_value: float, values: Sequence[float], *, lower_is_better: bool) -> int:
    if not values:
        return NEUTRAL_PERCENTILE
    if lower_is_better:
        better = sum(1 for v in values if user_value <= v)
    else:
        better = sum(1 for v in values if user_value >= v)
    return round_half_up((better / len(values)) * 100.0)


def _metric_values(population: Iterable[DomainScores], domain: str, metric: str) -> list[float]:
    values: list[float] = []
    for scores in population:
        value = scores.get(domain, {}).get(metric)
        if is_metric_value(value):
            values.append(float(value))
    return values


class RatioToMeanPercentile:
    """Percentiles relative to the population aggregate average.

    Ranks every metric the aggregate tracks. With ``clamp_output`` the
    result is bounded to [0, 100].
    """

    def __init__(self, *, clamp_output: bool = False) -> None:
        self.clamp_output = bool(clamp_output)

    def rank(
        self,
        *,
        latest: DomainScores,
        population: Sequence[DomainScores],
        aggregate: AggregateStats,
    ) -> PercentileRanking:
        ranking: PercentileRanking = {}
        for domain, averages in aggregate.average_scores.items():
            user_metrics = latest.get(domain, {})
            ranked: dict[str, int] = {}
            for metric, avg in averages.items():
                value = ratio_to_mean(float(user_metrics.get(metric, 0.0)), float(avg))
                ranked[metric] = int(clamp(value)) if self.clamp_output else value
            ranking[domain] = ranked
        return ranking


class ComparativeRankPercentile:
    """Share of the population the user matches or beats, per metric."""

    def __init__(self, *, lower_is_better: Iterable[str] = LOWER_IS_BETTER) -> None:
        self.lower_is_better = frozenset(lower_is_better)

    def rank(
        self,
        *,
        latest: DomainScores,
        population: Sequence[DomainScores],
        aggregate: AggregateStats,
    ) -> PercentileRanking:
        ranking: PercentileRanking = {}
        for domain, metrics in latest.items():
            ranked: dict[str, int] = {}
            for metric, value in metrics.items():
                if not population:
                    ranked[metric] = NEUTRAL_PERCENTILE
                    continue
                ranked[metric] = comparative_rank(
                    float(value),
                    _metric_values(population, domain, metric),
                    lower_is_better=metric in self.lower_is_better,
                )
            ranking[domain] = ranked
        return ranking


class NormalCurvePercentile:
    """Normal-CDF percentile of the user's z-score within the population."""

    def __init__(self, *, lower_is_better: Iterable[str] = LOWER_IS_BETTER) -> None:
        self.lower_is_better = frozenset(lower_is_better)

    def rank(
        self,
        *,
        latest: DomainScores,
        population: Sequence[DomainScores],
        aggregate: AggregateStats,
    ) -> PercentileRanking:
        ranking: PercentileRanking = {}
        for domain, metrics in latest.items():
            ranked: dict[str, int] = {}
            for metric, value in metrics.items():
                values = _metric_values(population, domain, metric)
                if not values:
                    ranked[metric] = NEUTRAL_PERCENTILE
                    continue
                z = z_score(float(value), mean(values), stddev(values))
                if metric in self.lower_is_better:
                    z = -z
                ranked[metric] = round_half_up(clamp(z_to_percentile(z)))
            ranking[domain] = ranked
        return ranking
