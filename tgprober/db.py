"""SQLite storage for subscriptions and probe metrics."""

from __future__ import annotations

import os
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime, timezone

_SCHEMA = """
CREATE TABLE IF NOT EXISTS subscriptions (
    chat_id   INTEGER PRIMARY KEY
);
CREATE TABLE IF NOT EXISTS metrics (
    id        INTEGER PRIMARY KEY AUTOINCREMENT,
    alias     TEXT    NOT NULL,
    ts        DATETIME NOT NULL,
    latency   REAL    NOT NULL,
    loss_rate REAL    NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_metrics_ts_alias
    ON metrics(ts, alias);
"""

_TS_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


def _to_text(ts: datetime) -> str:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).strftime(_TS_FORMAT)


def _from_text(text: str) -> datetime:
    return datetime.fromisoformat(text).replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class Metric:
    """One stored probe result."""

    alias: str
    ts: datetime
    latency: float
    loss_rate: float


class Database:
    """Thread-safe wrapper around a single SQLite connection."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._conn = sqlite3.connect(os.fspath(path), check_same_thread=False)
        self._lock = threading.Lock()
        with self._lock:
            self._conn.executescript(_SCHEMA)

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying connection."""
        with self._lock:
            self._conn.close()

    def add_subscription(self, chat_id: int) -> None:
        """Subscribe a chat; subscribing twice is harmless."""
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT OR IGNORE INTO subscriptions(chat_id) VALUES(?)", (chat_id,)
            )

    def remove_subscription(self, chat_id: int) -> None:
        """Remove a chat's subscription if it exists."""
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM subscriptions WHERE chat_id=?", (chat_id,))

    def is_subscribed(self, chat_id: int) -> bool:
        """Tell whether the chat is subscribed."""
        with self._lock:
            (exists,) = self._conn.execute(
                "SELECT EXISTS(SELECT 1 FROM subscriptions WHERE chat_id=?)", (chat_id,)
            ).fetchone()
        return exists != 0

    def insert_metric(self, alias: str, ts: datetime, latency: float, loss_rate: float) -> None:
        """Store one probe result; naive timestamps are taken as UTC."""
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT INTO metrics(alias, ts, latency, loss_rate) VALUES(?,?,?,?)",
                (alias, _to_text(ts), latency, loss_rate),
            )

    def query_metrics(self, since: datetime) -> list[Metric]:
        """Return all metrics recorded at or after ``since``, oldest first."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT alias, ts, latency, loss_rate FROM metrics WHERE ts>=? ORDER BY ts",
                (_to_text(since),),
            ).fetchall()
        return [Metric(alias, _from_text(ts), lat, loss) for alias, ts, lat, loss in rows]