from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any, TypeVar

from .aggregate import AggregateStats, AggregateUpdateStrategy, FullRecomputeUpdate, IncrementalMeanUpdate
from .clock import Clock, SystemClock
from .cognitive_core import DomainScores, is_metric_value
from .config import EngineConfig
from .errors import PersistenceError, ValidationError
from .games import AggregateMode, GameDefinition, PercentileMode, get_game
from .percentile import ComparativeRankPercentile, NormalCurvePercentile, PercentileStrategy, RatioToMeanPercentile
from .profile import recommended_focus
from .results import AssessmentResult, ProfileReport
from .store import (
    Assessment,
    EnvironmentFactors,
    InMemoryStoreRepository,
    SqliteStoreRepository,
    Store,
    StoreRepository,
    UserRecord,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def validate_domain_scores(game: GameDefinition, scores: object) -> DomainScores:
    """Check precomputed scores against the game's domains and copy them."""

    if not isinstance(scores, Mapping):
        raise ValidationError("domain scores must be an object")
    unknown = [d for d in scores if d not in game.domains]
    if unknown:
        raise ValidationError(f"unknown domain(s) for {game.game_id}: {', '.join(map(str, unknown))}")

    out: DomainScores = {}
    for domain in game.domains:
        metrics = scores.get(domain)
        if metrics is None:
            raise ValidationError(f"missing required domain '{domain}'")
        if not isinstance(metrics, Mapping):
            raise ValidationError(f"domain '{domain}' must map metric names to numbers")
        clean: dict[str, float] = {}
        for metric, value in metrics.items():
            if not is_metric_value(value):
                raise ValidationError(f"{domain}.{metric} must be a finite number")
            clean[str(metric)] = float(value)
        out[domain] = clean
    return out


def environment_for(timestamp_ms: int, completion_time: float) -> EnvironmentFactors:
    local = datetime.fromtimestamp(timestamp_ms / 1000.0)
    return EnvironmentFactors(
        time_of_day=local.hour,
        day_of_week=(local.weekday() + 1) % 7,
        completion_time=float(completion_time),
    )


class MetricsEngine:
    """Scores game sessions and keeps per-game profiles and population stats."""

    def __init__(
        self,
        *,
        repository: StoreRepository | None = None,
        clock: Clock | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        if repository is None:
            if self.config.db_path is not None:
                repository = SqliteStoreRepository(self.config.db_path)
            else:
                repository = InMemoryStoreRepository()
        self.repository = repository
        self.clock = clock or SystemClock()

    def percentile_strategy(self, game: GameDefinition) -> PercentileStrategy:
        mode = self.config.percentile_for(game)
        if mode is PercentileMode.RATIO_TO_MEAN:
            return RatioToMeanPercentile(clamp_output=self.config.clamp_ratio_percentiles)
        if mode is PercentileMode.COMPARATIVE_RANK:
            return ComparativeRankPercentile()
        return NormalCurvePercentile()

    def aggregate_strategy(self, game: GameDefinition) -> AggregateUpdateStrategy:
        if self.config.aggregate_for(game) is AggregateMode.FULL_RECOMPUTE:
            return FullRecomputeUpdate()
        return IncrementalMeanUpdate()

    def submit_assessment(
        self,
        *,
        user_id: str,
        game_id: str,
        raw: Mapping[str, Any] | None = None,
        domain_scores: Mapping[str, Any] | None = None,
        timestamp: int | None = None,
        completion_time: float | None = None,
    ) -> AssessmentResult:
        """Score, persist and rank one game session.

        Exactly one of ``raw`` (browser telemetry) or ``domain_scores``
        (already computed) must be given. Validation happens before the
        store is touched.
        """

        if not isinstance(user_id, str) or not user_id.strip():
            raise ValidationError("user_id is required")
        game = get_game(game_id)
        if raw is None and domain_scores is None:
            raise ValidationError("either raw telemetry or domain scores are required")
        if raw is not None and domain_scores is not None:
            raise ValidationError("pass raw telemetry or domain scores, not both")

        if raw is not None:
            scores = validate_domain_scores(game, game.score_raw(raw))
        else:
            scores = validate_domain_scores(game, domain_scores)

        ts = self.clock.now_ms() if timestamp is None else int(timestamp)
        if completion_time is None:
            completion_time = game.completion_time(scores)
        assessment = Assessment(
            assessment_id=str(uuid.uuid4()),
            user_id=user_id,
            game_id=str(game.game_id),
            timestamp=ts,
            domain_scores=scores,
            environment=environment_for(ts, completion_time),
        )
        percentile = self.percentile_strategy(game)
        aggregate = self.aggregate_strategy(game)

        def apply(store: Store) -> AssessmentResult:
            record = store.users.setdefault(user_id, UserRecord())
            record.assessments.append(assessment)
            record.profile.record(ts, scores)
            record.progress = record.profile.progress()

            store.aggregate_stats = aggregate.update(
                store.aggregate_stats,
                scores=scores,
                history=[a.domain_scores for a in store.all_assessments()],
            )
            population = [a.domain_scores for a in store.latest_per_user()]
            latest = record.latest()
            record.percentile_ranking = percentile.rank(
                latest=latest.domain_scores if latest is not None else scores,
                population=population,
                aggregate=store.aggregate_stats,
            )
            return AssessmentResult(
                assessment_id=assessment.assessment_id,
                timestamp=ts,
                domain_scores=scores,
                progress=dict(record.progress),
                percentile_ranking=record.percentile_ranking,
            )

        result = self._write(str(game.game_id), apply)
        logger.info(
            "stored %s assessment %s for user %s", game.game_id, assessment.assessment_id, user_id
        )
        return result

    def profile_report(self, *, user_id: str, game_id: str) -> ProfileReport:
        game = get_game(game_id)
        store = self._read(str(game.game_id))
        record = store.users.get(user_id)
        if record is None:
            raise ValidationError(f"no {game.game_id} assessments for user '{user_id}'")
        latest = record.latest()
        return ProfileReport(
            user_id=user_id,
            game_id=str(game.game_id),
            profile=record.profile,
            recent_assessments=record.recent_assessments(self.config.recent_assessments),
            progress=dict(record.progress),
            percentile_ranking=record.percentile_ranking,
            recommended_focus=None if latest is None else recommended_focus(latest.domain_scores),
        )

    def aggregate_stats(self, game_id: str) -> AggregateStats:
        game = get_game(game_id)
        return self._read(str(game.game_id)).aggregate_stats

    def _read(self, game_id: str) -> Store:
        try:
            return self.repository.load_store(game_id)
        except PersistenceError as exc:
            self._recover(game_id, exc)
        return self.repository.load_store(game_id)

    def _write(self, game_id: str, apply: Callable[[Store], T]) -> T:
        try:
            with self.repository.transaction(game_id) as store:
                return apply(store)
        except PersistenceError as exc:
            # Only an unreadable store is reset; write failures surface as-is.
            try:
                self.repository.load_store(game_id)
            except PersistenceError:
                self._recover(game_id, exc)
            else:
                raise
        with self.repository.transaction(game_id) as store:
            return apply(store)

    def _recover(self, game_id: str, exc: PersistenceError) -> None:
        logger.warning("store for %s is unreadable (%s); reinitializing empty store", game_id, exc)
        self.repository.reset_store(game_id)
