"""Smoke tests for the command-line entry point.

The CLI is driven in-process with string buffers standing in for stdin and
stdout, against a throwaway sqlite store.
"""

from __future__ import annotations

import io
import json
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "COGNITIVE_METRICS_DB_PATH",
        "COGNITIVE_METRICS_PERCENTILE",
        "COGNITIVE_METRICS_AGGREGATE",
        "COGNITIVE_METRICS_CLAMP_RATIO",
        "COGNITIVE_METRICS_RECENT",
    ):
        monkeypatch.delenv(name, raising=False)


def _run(argv: list[str], stdin_text: str = "") -> tuple[int, str]:
    from cognitive_metrics.__main__ import main

    out = io.StringIO()
    code = main(argv, stdin=io.StringIO(stdin_text), stdout=out)
    return code, out.getvalue()


def test_submit_then_profile_and_stats(tmp_path: Path) -> None:
    db = str(tmp_path / "cli.sqlite3")
    telemetry = {
        "matchedPairs": ["a", "a2", "b", "b2"],
        "attempts": 5,
        "viewTimestamps": {"a": 800, "b": 1200},
        "matchTimes": [2.5, 3.0],
    }
    code, out = _run(["--db", db, "submit", "--user", "u1", "--game", "memory_match", "--timestamp", "1700000000000"], json.dumps(telemetry))
    assert code == 0
    submitted = json.loads(out)
    assert submitted["timestamp"] == 1700000000000
    assert submitted["domain_scores"]["memory"]["accuracy"] == pytest.approx(40.0)

    code, out = _run(["--db", db, "profile", "--user", "u1", "--game", "memory_match"])
    assert code == 0
    assert json.loads(out)["recent_assessments"][0]["assessment_id"] == submitted["assessment_id"]

    code, out = _run(["--db", db, "stats", "--game", "memory_match"])
    assert code == 0
    assert json.loads(out)["total_assessments"] == 1


def test_submit_precomputed_scores_from_file(tmp_path: Path) -> None:
    scores = {
        "inhibition": {"accuracy": 90},
        "attention": {"sustained_attention": 80},
        "processing": {"average_reaction_time": 420},
        "flexibility": {"adaptive_control": 60},
        "overall": {"performance_score": 70},
    }
    path = tmp_path / "scores.json"
    path.write_text(json.dumps(scores), encoding="utf-8")
    code, out = _run(["--db", str(tmp_path / "s.sqlite3"), "submit", "--user", "u1", "--game", "stroop", "--scores", str(path)])
    assert code == 0
    assert json.loads(out)["percentile_ranking"]["processing"]["average_reaction_time"] == 100


def test_validation_errors_exit_with_code_two(tmp_path: Path) -> None:
    db = str(tmp_path / "v.sqlite3")
    code, out = _run(["--db", db, "submit", "--user", "u1", "--game", "stroop", "--scores"], "{not json")
    assert code == 2
    assert out == ""
    code, _ = _run(["--db", db, "profile", "--user", "ghost", "--game", "stroop"])
    assert code == 2
