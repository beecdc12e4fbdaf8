"""Tests for per-domain baselines, trend ordering and progress."""

from __future__ import annotations

from cognitive_metrics.profile import (
    DomainProfile,
    Progress,
    TrendEntry,
    UserProfile,
    calculate_progress,
    domain_averages,
    recommended_focus,
)


def test_progress_scenario_from_four_values() -> None:
    trend = [
        TrendEntry(timestamp=1, scores={"a": 50.0, "b": 60.0}),
        TrendEntry(timestamp=2, scores={"a": 70.0, "b": 80.0}),
    ]
    progress = calculate_progress(trend)
    # (75 - 55) / 55 * 100 = 36.36
    assert progress.improvement == 36
    # variance 125, mean 65 -> 100 - 125/65*10 = 80.77
    assert progress.consistency == 81


def test_fewer_than_two_entries_means_no_progress() -> None:
    assert calculate_progress([]) == Progress(improvement=0, consistency=100)
    single = [TrendEntry(timestamp=1, scores={"a": 10.0})]
    assert calculate_progress(single) == Progress(improvement=0, consistency=100)


def test_zero_first_half_mean_gives_zero_improvement() -> None:
    trend = [TrendEntry(timestamp=1, scores={"a": 0.0}), TrendEntry(timestamp=2, scores={"a": 40.0})]
    assert calculate_progress(trend).improvement == 0


def test_consistency_is_bounded() -> None:
    noisy = [TrendEntry(timestamp=1, scores={"a": 1.0}), TrendEntry(timestamp=2, scores={"a": 1000.0})]
    assert calculate_progress(noisy).consistency == 0
    flat = [TrendEntry(timestamp=1, scores={"a": 0.0}), TrendEntry(timestamp=2, scores={"a": 0.0})]
    assert calculate_progress(flat).consistency == 100


def test_baseline_is_written_once() -> None:
    profile: DomainProfile[dict[str, float]] = DomainProfile()
    profile.record(100, {"accuracy": 40.0})
    profile.record(200, {"accuracy": 90.0})
    assert profile.baseline == {"accuracy": 40.0}
    assert profile.latest() == {"accuracy": 90.0}


def test_trend_stays_in_timestamp_order() -> None:
    profile: DomainProfile[dict[str, float]] = DomainProfile()
    profile.record(300, {"x": 3.0})
    profile.record(100, {"x": 1.0})
    profile.record(200, {"x": 2.0})
    profile.record(200, {"x": 2.5})
    assert [e.timestamp for e in profile.trend] == [100, 200, 200, 300]
    assert [e.scores["x"] for e in profile.trend] == [1.0, 2.0, 2.5, 3.0]
    # The baseline belongs to the first submission, not the earliest timestamp.
    assert profile.baseline == {"x": 3.0}


def test_user_profile_round_trips_through_dict() -> None:
    user = UserProfile()
    user.record(1, {"memory": {"accuracy": 50.0}, "overall": {"performance_score": 40.0}})
    user.record(2, {"memory": {"accuracy": 70.0}, "overall": {"performance_score": 60.0}})
    restored = UserProfile.from_dict(user.to_dict())
    assert restored.to_dict() == user.to_dict()
    assert restored.progress()["memory"].improvement == 40


def test_domain_averages_and_recommended_focus() -> None:
    scores = {
        "spatial_navigation": {"a": 80.0, "b": 60.0},
        "attention": {"a": 20.0, "b": 40.0},
        "overall": {"performance_score": 5.0},
    }
    assert domain_averages(scores)["spatial_navigation"] == 70.0
    focus = recommended_focus(scores)
    assert focus is not None
    assert focus.domain == "attention"
    assert focus.advice
    assert recommended_focus({"overall": {"x": 1.0}}) is None
