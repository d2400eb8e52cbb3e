"""Summary: Durable per-user cache for the in-progress analysis session.

Importance: Restores the latest transcript, insight, and email draft after a restart.
Alternatives: Keep sessions in memory and lose them on exit.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from meetingpilot.models import Session

logger = logging.getLogger(__name__)


class SessionCache(ABC):
    """Summary: Key-value store holding at most one session per user.

    Importance: Injected into the reconciler so it never reaches for ambient state.
    Alternatives: Read and write a module-level dict.
    """

    @abstractmethod
    def save(self, user_id: str, session: Session) -> Session:
        """Summary: Overwrite the cached session for a user and return it stamped."""

    @abstractmethod
    def load(self, user_id: str) -> Session | None:
        """Summary: Return the last saved session, or None."""

    @abstractmethod
    def clear(self, user_id: str) -> None:
        """Summary: Remove the cached session; clearing twice is a no-op."""


class SqliteSessionCache(SessionCache):
    """Summary: SessionCache stored in a local SQLite file.

    Importance: Survives reloads without touching the network.
    Alternatives: Write one JSON file per user.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._initialize()
        except sqlite3.DatabaseError as exc:
            logger.warning("Replacing unreadable session cache %s: %s", self._db_path, exc)
            self._db_path.unlink(missing_ok=True)
            self._initialize()

    def _initialize(self) -> None:
        with self._connection() as connection:
            connection.execute(
                """
                CREATE TABLE IF NOT EXISTS session_cache (
                    user_id TEXT PRIMARY KEY,
                    payload TEXT NOT NULL,
                    saved_at TEXT NOT NULL
                )
                """
            )
            connection.commit()

    def save(self, user_id: str, session: Session) -> Session:
        """Summary: Upsert the user's session row.

        Importance: Only the latest session is kept; there is no history.
        Alternatives: Append rows and read the newest.
        """

        stamped = session.with_updates(saved_at=datetime.now(timezone.utc))
        with self._connection() as connection:
            connection.execute(
                """
                INSERT INTO session_cache (user_id, payload, saved_at) VALUES (?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    payload = excluded.payload,
                    saved_at = excluded.saved_at
                """,
                (user_id, json.dumps(stamped.to_dict()), stamped.saved_at.isoformat()),
            )
            connection.commit()
        return stamped

    def load(self, user_id: str) -> Session | None:
        with self._connection() as connection:
            row = connection.execute(
                "SELECT payload FROM session_cache WHERE user_id = ?", (user_id,)
            ).fetchone()
        if row is None:
            return None
        return Session.from_dict(json.loads(row[0]))

    def clear(self, user_id: str) -> None:
        with self._connection() as connection:
            connection.execute("DELETE FROM session_cache WHERE user_id = ?", (user_id,))
            connection.commit()

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        connection = sqlite3.connect(self._db_path)
        try:
            yield connection
        finally:
            connection.close()
