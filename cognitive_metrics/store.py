from __future__ import annotations

import contextlib
import copy
import json
import logging
import sqlite3
import threading
import time
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from .aggregate import AggregateStats
from .cognitive_core import DomainScores
from .errors import PersistenceError
from .percentile import PercentileRanking
from .profile import Progress, UserProfile

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

# Seconds a writer waits for another process holding the database lock.
BUSY_TIMEOUT_S = 30.0


@dataclass(frozen=True, slots=True)
class EnvironmentFactors:
    time_of_day: int  # local hour 0-23
    day_of_week: int  # 0 = Sunday
    completion_time: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "time_of_day": self.time_of_day,
            "day_of_week": self.day_of_week,
            "completion_time": self.completion_time,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EnvironmentFactors":
        return cls(
            time_of_day=int(data["time_of_day"]),
            day_of_week=int(data["day_of_week"]),
            completion_time=float(data.get("completion_time", 0.0)),
        )


@dataclass(frozen=True, slots=True)
class Assessment:
    """One persisted game result. Assessments are never edited or removed."""

    assessment_id: str
    user_id: str
    game_id: str
    timestamp: int  # epoch ms
    domain_scores: DomainScores
    environment: EnvironmentFactors | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "assessment_id": self.assessment_id,
            "user_id": self.user_id,
            "game_id": self.game_id,
            "timestamp": self.timestamp,
            "domain_scores": {d: dict(m) for d, m in self.domain_scores.items()},
            "environment": None if self.environment is None else self.environment.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Assessment":
        env = data.get("environment")
        return cls(
            assessment_id=str(data["assessment_id"]),
            user_id=str(data["user_id"]),
            game_id=str(data["game_id"]),
            timestamp=int(data["timestamp"]),
            domain_scores={
                str(d): {str(k): float(v) for k, v in m.items()} for d, m in data["domain_scores"].items()
            },
            environment=None if env is None else EnvironmentFactors.from_dict(env),
        )


@dataclass(slots=True)
class UserRecord:
    assessments: list[Assessment] = field(default_factory=list)
    profile: UserProfile = field(default_factory=UserProfile)
    progress: dict[str, Progress] = field(default_factory=dict)
    percentile_ranking: PercentileRanking = field(default_factory=dict)

    def latest(self) -> Assessment | None:
        if not self.assessments:
            return None
        # Latest submission wins a timestamp tie.
        return max(reversed(self.assessments), key=lambda a: a.timestamp)

    def recent_assessments(self, n: int = 5) -> list[Assessment]:
        """The ``n`` most recent assessments, newest first."""

        if n <= 0:
            return []
        ordered = sorted(self.assessments, key=lambda a: a.timestamp, reverse=True)
        return ordered[:n]

    def to_dict(self) -> dict[str, Any]:
        return {
            "assessments": [a.to_dict() for a in self.assessments],
            "profile": self.profile.to_dict(),
            "progress": {d: p.to_dict() for d, p in self.progress.items()},
            "percentile_ranking": {d: dict(m) for d, m in self.percentile_ranking.items()},
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UserRecord":
        return cls(
            assessments=[Assessment.from_dict(a) for a in data.get("assessments", [])],
            profile=UserProfile.from_dict(data.get("profile", {})),
            progress={
                str(d): Progress(improvement=int(p["improvement"]), consistency=int(p["consistency"]))
                for d, p in data.get("progress", {}).items()
            },
            percentile_ranking={
                str(d): {str(k): int(v) for k, v in m.items()} for d, m in data.get("percentile_ranking", {}).items()
            },
        )


@dataclass(slots=True)
class Store:
    """Everything persisted for one game: per-user records and population stats."""

    users: dict[str, UserRecord] = field(default_factory=dict)
    aggregate_stats: AggregateStats = field(default_factory=AggregateStats)

    @classmethod
    def empty(cls) -> "Store":
        return cls()

    def latest_per_user(self) -> list[Assessment]:
        latest = (record.latest() for record in self.users.values())
        return [a for a in latest if a is not None]

    def all_assessments(self) -> list[Assessment]:
        return [a for record in self.users.values() for a in record.assessments]

    def to_dict(self) -> dict[str, Any]:
        return {
            "users": {uid: record.to_dict() for uid, record in self.users.items()},
            "aggregate_stats": self.aggregate_stats.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Store":
        """Rebuild a store from its JSON form; malformed documents raise PersistenceError."""

        if not isinstance(data, Mapping):
            raise PersistenceError("store document must be an object")
        try:
            users = {str(uid): UserRecord.from_dict(rec) for uid, rec in data.get("users", {}).items()}
            stats = AggregateStats.from_dict(data.get("aggregate_stats", {}))
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise PersistenceError(f"store document is corrupt: {exc}") from exc
        return cls(users=users, aggregate_stats=stats)


class StoreRepository(Protocol):
    """Whole-document persistence for per-game stores.

    ``transaction`` yields a working copy and commits it on normal exit.
    Writers to the same game are serialized; readers see the last commit.
    """

    def load_store(self, game_id: str) -> Store: ...

    def save_store(self, game_id: str, store: Store) -> None: ...

    def reset_store(self, game_id: str) -> None: ...

    def transaction(self, game_id: str) -> contextlib.AbstractContextManager[Store]: ...


class _GameLocks:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def get(self, game_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(game_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[game_id] = lock
            return lock


class InMemoryStoreRepository:
    """Keeps serialized snapshots so callers never share mutable state."""

    def __init__(self) -> None:
        self._docs: dict[str, dict[str, Any]] = {}
        self._locks = _GameLocks()

    def load_store(self, game_id: str) -> Store:
        doc = self._docs.get(game_id)
        if doc is None:
            return Store.empty()
        return Store.from_dict(copy.deepcopy(doc))

    def save_store(self, game_id: str, store: Store) -> None:
        self._docs[game_id] = store.to_dict()

    def reset_store(self, game_id: str) -> None:
        self._docs[game_id] = Store.empty().to_dict()

    @contextlib.contextmanager
    def transaction(self, game_id: str) -> Iterator[Store]:
        with self._locks.get(game_id):
            store = self.load_store(game_id)
            yield store
            self.save_store(game_id, store)


def open_db(path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(path, timeout=BUSY_TIMEOUT_S)
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    _migrate(conn)
    return conn


def _utc_now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(time.time()))


def _migrate(conn: sqlite3.Connection) -> None:
    row = conn.execute("PRAGMA user_version;").fetchone()
    ver = int(row[0]) if row else 0
    if ver >= SCHEMA_VERSION:
        return

    with conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS game_store (
                game_id TEXT PRIMARY KEY,
                document TEXT NOT NULL,
                updated_at_utc TEXT NOT NULL
            );
            """
        )
        conn.execute(f"PRAGMA user_version={SCHEMA_VERSION};")


class SqliteStoreRepository:
    """One JSON store document per game in a sqlite file.

    A connection is opened per call. ``transaction`` holds a sqlite write
    lock (``BEGIN IMMEDIATE``) from the read through the commit, so writers
    are serialized across repository instances and processes sharing the
    file, not only across threads.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self._locks = _GameLocks()

    def _connect(self) -> sqlite3.Connection:
        try:
            return open_db(self.db_path)
        except sqlite3.Error as exc:
            raise PersistenceError(f"cannot open store database {self.db_path}: {exc}") from exc

    def load_store(self, game_id: str) -> Store:
        conn = self._connect()
        try:
            row = _select_document(conn, game_id)
        finally:
            conn.close()
        return _decode_document(game_id, row)

    def save_store(self, game_id: str, store: Store) -> None:
        self._write(game_id, _encode_document(store))

    def reset_store(self, game_id: str) -> None:
        logger.warning("resetting store for game %s in %s", game_id, self.db_path)
        self._write(game_id, _encode_document(Store.empty()))

    def _write(self, game_id: str, document: str) -> None:
        conn = self._connect()
        try:
            with conn:
                _upsert_document(conn, game_id, document)
        finally:
            conn.close()

    @contextlib.contextmanager
    def transaction(self, game_id: str) -> Iterator[Store]:
        with self._locks.get(game_id):
            conn = self._connect()
            conn.isolation_level = None
            try:
                try:
                    conn.execute("BEGIN IMMEDIATE;")
                except sqlite3.Error as exc:
                    raise PersistenceError(f"cannot lock store for '{game_id}': {exc}") from exc
                store = _decode_document(game_id, _select_document(conn, game_id))
                yield store
                _upsert_document(conn, game_id, _encode_document(store))
                try:
                    conn.execute("COMMIT;")
                except sqlite3.Error as exc:
                    raise PersistenceError(f"cannot commit store for '{game_id}': {exc}") from exc
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK;")
                raise
            finally:
                conn.close()


def _encode_document(store: Store) -> str:
    return json.dumps(store.to_dict(), sort_keys=True)


def _select_document(conn: sqlite3.Connection, game_id: str) -> str | None:
    try:
        row = conn.execute("SELECT document FROM game_store WHERE game_id = ?", (game_id,)).fetchone()
    except sqlite3.Error as exc:
        raise PersistenceError(f"cannot read store for '{game_id}': {exc}") from exc
    return None if row is None else str(row[0])


def _decode_document(game_id: str, document: str | None) -> Store:
    if document is None:
        return Store.empty()
    try:
        doc = json.loads(document)
    except json.JSONDecodeError as exc:
        raise PersistenceError(f"store for '{game_id}' is not valid JSON") from exc
    return Store.from_dict(doc)


def _upsert_document(conn: sqlite3.Connection, game_id: str, document: str) -> None:
    try:
        conn.execute(
            """
            INSERT INTO game_store(game_id, document, updated_at_utc)
            VALUES (?, ?, ?)
            ON CONFLICT(game_id) DO UPDATE SET
                document = excluded.document,
                updated_at_utc = excluded.updated_at_utc
            """,
            (game_id, document, _utc_now_iso()),
        )
    except sqlite3.Error as exc:
        raise PersistenceError(f"cannot write store for '{game_id}': {exc}") from exc
