from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Any, TextIO

from .config import load_config
from .engine import MetricsEngine
from .errors import PersistenceError, ValidationError
from .games import GameId

logger = logging.getLogger(__name__)


def _read_json(path: str, stdin: TextIO) -> Any:
    try:
        if path == "-":
            return json.load(stdin)
        with Path(path).open("r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"{path}: invalid JSON ({exc.msg})") from exc
    except OSError as exc:
        raise ValidationError(f"cannot read {path}: {exc.strerror}") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cognitive_metrics", description="Score cognitive game sessions.")
    parser.add_argument("--db", type=Path, default=None, help="sqlite store (overrides COGNITIVE_METRICS_DB_PATH)")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug output")
    games = [g.value for g in GameId]
    sub = parser.add_subparsers(dest="command", required=True)

    submit = sub.add_parser("submit", help="score and store one session")
    submit.add_argument("--user", required=True)
    submit.add_argument("--game", required=True, choices=games)
    submit.add_argument("--scores", action="store_true", help="input holds precomputed domain scores")
    submit.add_argument("--timestamp", type=int, default=None, help="epoch milliseconds")
    submit.add_argument("input", nargs="?", default="-", help="JSON file, '-' for stdin")

    profile = sub.add_parser("profile", help="show a user's profile for one game")
    profile.add_argument("--user", required=True)
    profile.add_argument("--game", required=True, choices=games)

    stats = sub.add_parser("stats", help="show population averages for one game")
    stats.add_argument("--game", required=True, choices=games)
    return parser


def main(argv: list[str] | None = None, *, stdin: TextIO | None = None, stdout: TextIO | None = None) -> int:
    args = build_parser().parse_args(argv)
    stdin = sys.stdin if stdin is None else stdin
    stdout = sys.stdout if stdout is None else stdout

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config()
    if args.db is not None:
        config = dataclasses.replace(config, db_path=args.db)
    engine = MetricsEngine(config=config)

    try:
        if args.command == "submit":
            payload = _read_json(args.input, stdin)
            result = engine.submit_assessment(
                user_id=args.user,
                game_id=args.game,
                raw=None if args.scores else payload,
                domain_scores=payload if args.scores else None,
                timestamp=args.timestamp,
            )
            out = result.to_dict()
        elif args.command == "profile":
            out = engine.profile_report(user_id=args.user, game_id=args.game).to_dict()
        else:
            out = engine.aggregate_stats(args.game).to_dict()
    except ValidationError as exc:
        logger.error("rejected: %s", exc)
        return 2
    except PersistenceError as exc:
        logger.error("store failure: %s", exc)
        return 1

    json.dump(out, stdout, indent=2, sort_keys=True)
    stdout.write("\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
