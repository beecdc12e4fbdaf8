from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .cognitive_core import DomainScores
from .percentile import PercentileRanking
from .profile import FocusRecommendation, Progress, UserProfile
from .store import Assessment


@dataclass(frozen=True, slots=True)
class AssessmentResult:
    """What a caller gets back after submitting one game result."""

    assessment_id: str
    timestamp: int
    domain_scores: DomainScores
    progress: dict[str, Progress]
    percentile_ranking: PercentileRanking

    def to_dict(self) -> dict[str, Any]:
        return {
            "assessment_id": self.assessment_id,
            "timestamp": self.timestamp,
            "domain_scores": {d: dict(m) for d, m in self.domain_scores.items()},
            "progress": {d: p.to_dict() for d, p in self.progress.items()},
            "percentile_ranking": {d: dict(m) for d, m in self.percentile_ranking.items()},
        }


@dataclass(frozen=True, slots=True)
class ProfileReport:
    user_id: str
    game_id: str
    profile: UserProfile
    recent_assessments: list[Assessment]
    progress: dict[str, Progress]
    percentile_ranking: PercentileRanking
    recommended_focus: FocusRecommendation | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "game_id": self.game_id,
            "profile": self.profile.to_dict(),
            "recent_assessments": [a.to_dict() for a in self.recent_assessments],
            "progress": {d: p.to_dict() for d, p in self.progress.items()},
            "percentile_ranking": {d: dict(m) for d, m in self.percentile_ranking.items()},
            "recommended_focus": None if self.recommended_focus is None else self.recommended_focus.to_dict(),
        }
