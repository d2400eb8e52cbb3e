"""Summary: SQLite storage implementation behind the MeetingPilot persistence API.

Importance: Provides a local-first persistence layer for tasks, transcripts, insights, and metrics.
Alternatives: Use an ORM or a document database.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

from meetingpilot.models import METRIC_COUNTERS, Insight, TaskDraft

TASK_COLUMNS = (
    "id",
    "title",
    "description",
    "status",
    "priority",
    "assigned_to",
    "due_date",
    "user_id",
    "created_at",
    "updated_at",
)
UPDATABLE_TASK_FIELDS = ("title", "description", "status", "priority", "assigned_to", "due_date")


@dataclass(frozen=True)
class StoredTask:
    """Summary: Task record with its database identifier.

    Importance: The identifier is what the board uses for every later mutation.
    Alternatives: Use the title as a natural key.
    """

    id: str
    title: str
    description: str
    status: str
    priority: str
    assigned_to: str | None
    due_date: str | None
    user_id: str
    created_at: str
    updated_at: str


@dataclass(frozen=True)
class StoredTranscript:
    """Summary: Analyzed transcript record.

    Importance: Keeps a history of analyzed meetings per user.
    Alternatives: Store transcripts in object storage only.
    """

    id: str
    user_id: str
    content: str
    title: str | None
    summary: str | None
    key_points: list[str]
    action_items: list[str]
    audio_url: str | None
    session_state: dict[str, Any] | None
    created_at: str
    updated_at: str


@dataclass(frozen=True)
class StoredInsight:
    """Summary: Insight record linked to a transcript."""

    id: str
    user_id: str
    transcript_id: str | None
    insight: dict[str, Any]
    created_at: str
    updated_at: str


@dataclass(frozen=True)
class StoredMetrics:
    """Summary: Usage counters for one user."""

    user_id: str
    transcripts_analyzed: int
    insights_generated: int
    hours_saved: float
    tasks_created: int
    created_at: str
    updated_at: str


class SqliteStore:
    """Summary: SQLite-backed storage for MeetingPilot.

    Importance: Enables local-first persistence with minimal dependencies.
    Alternatives: Use Postgres and SQLAlchemy from day one.
    """

    def __init__(self, db_path: str) -> None:
        """Summary: Initialize the storage with a database path.

        Importance: Allows configurable database location per environment.
        Alternatives: Hardcode a default path in the class.
        """

        self._db_path = Path(db_path)

    def initialize(self) -> None:
        """Summary: Create tables if they do not exist.

        Importance: Ensures the database is ready before the API serves requests.
        Alternatives: Run migrations using a dedicated migration tool.
        """

        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    status TEXT NOT NULL DEFAULT 'todo',
                    priority TEXT NOT NULL DEFAULT 'medium',
                    assigned_to TEXT,
                    due_date TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_tasks_user_status ON tasks (user_id, status)"
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS transcripts (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    content TEXT NOT NULL,
                    title TEXT,
                    summary TEXT,
                    key_points TEXT NOT NULL DEFAULT '[]',
                    action_items TEXT NOT NULL DEFAULT '[]',
                    audio_url TEXT,
                    session_state TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS insights (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    transcript_id TEXT,
                    payload TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS user_metrics (
                    user_id TEXT PRIMARY KEY,
                    transcripts_analyzed INTEGER NOT NULL DEFAULT 0,
                    insights_generated INTEGER NOT NULL DEFAULT 0,
                    hours_saved REAL NOT NULL DEFAULT 0,
                    tasks_created INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            connection.commit()

    def create_task(self, draft: TaskDraft) -> StoredTask:
        """Summary: Persist a single task and return it with its identifier.

        Importance: The board only shows tasks once they carry a remote id.
        Alternatives: Let clients generate identifiers.
        """

        return self.create_tasks([draft])[0]

    def create_tasks(self, drafts: list[TaskDraft]) -> list[StoredTask]:
        """Summary: Persist several tasks inside one transaction.

        Importance: A batch is stored completely or not at all.
        Alternatives: Insert row by row and report partial success.
        """

        rows = []
        for draft in drafts:
            now = _now()
            rows.append(
                (
                    uuid.uuid4().hex,
                    draft.title,
                    draft.description,
                    draft.status,
                    draft.priority,
                    draft.assigned_to,
                    draft.due_date,
                    draft.user_id,
                    now,
                    now,
                )
            )
        with self._connection() as connection:
            with connection:
                connection.executemany(
                    f"INSERT INTO tasks ({', '.join(TASK_COLUMNS)}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    rows,
                )
        return [StoredTask(*row) for row in rows]

    def list_tasks(self, user_id: str) -> list[StoredTask]:
        """Summary: Retrieve a user's tasks, newest first.

        Importance: Defines the display order of every board column.
        Alternatives: Sort in the client.
        """

        with self._connection() as connection:
            rows = connection.execute(
                f"""
                SELECT {', '.join(TASK_COLUMNS)} FROM tasks
                WHERE user_id = ?
                ORDER BY created_at DESC, rowid DESC
                """,
                (user_id,),
            ).fetchall()
        return [StoredTask(*row) for row in rows]

    def get_task(self, task_id: str) -> StoredTask | None:
        with self._connection() as connection:
            row = connection.execute(
                f"SELECT {', '.join(TASK_COLUMNS)} FROM tasks WHERE id = ?", (task_id,)
            ).fetchone()
        return StoredTask(*row) if row else None

    def update_task(self, task_id: str, fields: dict[str, Any]) -> StoredTask | None:
        """Summary: Apply a partial update to a task.

        Importance: Supports both status drags and full edits.
        Alternatives: Replace the entire row on every edit.
        """

        updates = {key: value for key, value in fields.items() if key in UPDATABLE_TASK_FIELDS}
        if updates:
            assignments = ", ".join(f"{key} = ?" for key in updates)
            with self._connection() as connection:
                cursor = connection.execute(
                    f"UPDATE tasks SET {assignments}, updated_at = ? WHERE id = ?",
                    (*updates.values(), _now(), task_id),
                )
                connection.commit()
                if cursor.rowcount == 0:
                    return None
        return self.get_task(task_id)

    def delete_task(self, task_id: str) -> bool:
        with self._connection() as connection:
            cursor = connection.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            connection.commit()
            return cursor.rowcount > 0

    def create_transcript(
        self,
        user_id: str,
        content: str,
        title: str | None = None,
        summary: str | None = None,
        key_points: list[str] | None = None,
        action_items: list[str] | None = None,
        audio_url: str | None = None,
        session_state: dict[str, Any] | None = None,
    ) -> StoredTranscript:
        """Summary: Persist an analyzed transcript.

        Importance: Keeps the analyzed text next to the insight derived from it.
        Alternatives: Store only insights.
        """

        now = _now()
        record = StoredTranscript(
            id=uuid.uuid4().hex,
            user_id=user_id,
            content=content,
            title=title,
            summary=summary,
            key_points=list(key_points or []),
            action_items=list(action_items or []),
            audio_url=audio_url,
            session_state=session_state,
            created_at=now,
            updated_at=now,
        )
        with self._connection() as connection:
            connection.execute(
                """
                INSERT INTO transcripts (
                    id, user_id, content, title, summary, key_points, action_items,
                    audio_url, session_state, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    user_id,
                    content,
                    title,
                    summary,
                    json.dumps(record.key_points),
                    json.dumps(record.action_items),
                    audio_url,
                    json.dumps(session_state) if session_state is not None else None,
                    now,
                    now,
                ),
            )
            connection.commit()
        return record

    def list_transcripts(self, user_id: str) -> list[StoredTranscript]:
        with self._connection() as connection:
            rows = connection.execute(
                """
                SELECT id, user_id, content, title, summary, key_points, action_items,
                       audio_url, session_state, created_at, updated_at
                FROM transcripts WHERE user_id = ?
                ORDER BY created_at DESC, rowid DESC
                """,
                (user_id,),
            ).fetchall()
        return [
            StoredTranscript(
                id=row[0],
                user_id=row[1],
                content=row[2],
                title=row[3],
                summary=row[4],
                key_points=json.loads(row[5]),
                action_items=json.loads(row[6]),
                audio_url=row[7],
                session_state=json.loads(row[8]) if row[8] else None,
                created_at=row[9],
                updated_at=row[10],
            )
            for row in rows
        ]

    def create_insight(
        self, user_id: str, insight: Insight, transcript_id: str | None = None
    ) -> StoredInsight:
        """Summary: Persist an insight for a user.

        Importance: Builds the history of analyzed meetings.
        Alternatives: Embed insights in the transcript row.
        """

        now = _now()
        record = StoredInsight(
            id=uuid.uuid4().hex,
            user_id=user_id,
            transcript_id=transcript_id,
            insight=insight.to_dict(),
            created_at=now,
            updated_at=now,
        )
        with self._connection() as connection:
            connection.execute(
                """
                INSERT INTO insights (id, user_id, transcript_id, payload, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (record.id, user_id, transcript_id, json.dumps(record.insight), now, now),
            )
            connection.commit()
        return record

    def list_insights(self, user_id: str) -> list[StoredInsight]:
        with self._connection() as connection:
            rows = connection.execute(
                """
                SELECT id, user_id, transcript_id, payload, created_at, updated_at
                FROM insights WHERE user_id = ?
                ORDER BY created_at DESC, rowid DESC
                """,
                (user_id,),
            ).fetchall()
        return [
            StoredInsight(
                id=row[0],
                user_id=row[1],
                transcript_id=row[2],
                insight=json.loads(row[3]),
                created_at=row[4],
                updated_at=row[5],
            )
            for row in rows
        ]

    def get_metrics(self, user_id: str) -> StoredMetrics:
        """Summary: Return a user's counters, creating a zeroed row on first read.

        Importance: Every user has metrics without a separate signup step.
        Alternatives: Return None and let callers default.
        """

        now = _now()
        with self._connection() as connection:
            connection.execute(
                """
                INSERT OR IGNORE INTO user_metrics (user_id, created_at, updated_at)
                VALUES (?, ?, ?)
                """,
                (user_id, now, now),
            )
            connection.commit()
            return _read_metrics(connection, user_id)

    def increment_metric(self, user_id: str, metric: str, amount: float) -> StoredMetrics:
        """Summary: Atomically add to one counter.

        Importance: Concurrent increments from separate actions never overwrite each other.
        Alternatives: Read, modify, and write the full record.
        """

        if metric not in METRIC_COUNTERS:
            raise ValueError(f"Unknown metric {metric}")
        now = _now()
        with self._connection() as connection:
            connection.execute(
                f"""
                INSERT INTO user_metrics (user_id, {metric}, created_at, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    {metric} = {metric} + excluded.{metric},
                    updated_at = excluded.updated_at
                """,
                (user_id, amount, now, now),
            )
            connection.commit()
            return _read_metrics(connection, user_id)

    def clear_user_data(self, user_id: str) -> dict[str, int]:
        """Summary: Delete every record owned by a user.

        Importance: Supports account resets and test cleanup.
        Alternatives: Soft-delete rows with a flag.
        """

        counts: dict[str, int] = {}
        with self._connection() as connection:
            with connection:
                for table in ("tasks", "user_metrics", "transcripts", "insights"):
                    cursor = connection.execute(f"DELETE FROM {table} WHERE user_id = ?", (user_id,))
                    counts[table] = cursor.rowcount
        return counts

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Summary: Context manager for SQLite connections.

        Importance: Ensures connections are closed cleanly after use.
        Alternatives: Keep a single long-lived connection.
        """

        connection = sqlite3.connect(self._db_path)
        try:
            yield connection
        finally:
            connection.close()


def _read_metrics(connection: sqlite3.Connection, user_id: str) -> StoredMetrics:
    row = connection.execute(
        """
        SELECT user_id, transcripts_analyzed, insights_generated, hours_saved, tasks_created,
               created_at, updated_at
        FROM user_metrics WHERE user_id = ?
        """,
        (user_id,),
    ).fetchone()
    return StoredMetrics(
        user_id=row[0],
        transcripts_analyzed=int(row[1]),
        insights_generated=int(row[2]),
        hours_saved=round(float(row[3]), 2),
        tasks_created=int(row[4]),
        created_at=row[5],
        updated_at=row[6],
    )


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()

