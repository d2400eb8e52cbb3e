"""Summary: Server-side services behind the MeetingPilot persistence API.

Importance: Keeps the HTTP layer thin by holding the storage and analysis workflows.
Alternatives: Call the store directly from every route.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any

from meetingpilot.analysis import TranscriptAnalyzer
from meetingpilot.errors import NotFound, SpeechUnavailable, ValidationError
from meetingpilot.models import Insight, TaskDraft
from meetingpilot.speech import SpeechProvider, validate_speech_text
from meetingpilot.storage.sqlite_store import (
    SqliteStore,
    StoredInsight,
    StoredMetrics,
    StoredTask,
    StoredTranscript,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskService:
    """Summary: Manages task records for the board.

    Importance: The single writer of task rows, including batched creation.
    Alternatives: Let each route issue its own SQL.
    """

    store: SqliteStore

    def create_task(self, draft: TaskDraft) -> StoredTask:
        """Summary: Create one task.

        Importance: Returns the stored row so clients learn the assigned id.
        Alternatives: Return only the identifier.
        """

        task = self.store.create_task(draft)
        logger.info("Created task %s for %s.", task.id, task.user_id)
        return task

    def create_task_with_metrics(self, draft: TaskDraft) -> StoredTask:
        """Summary: Create one task and count it in tasks_created."""

        task = self.create_task(draft)
        self.store.increment_metric(draft.user_id, "tasks_created", 1)
        return task

    def create_tasks(self, user_id: str, drafts: list[TaskDraft]) -> list[StoredTask]:
        """Summary: Create a batch of tasks for one user.

        Importance: The batch is written in a single transaction, so it is all or nothing.
        Alternatives: Insert one task per request.
        """

        if not drafts:
            raise ValidationError("No tasks provided")
        tasks = self.store.create_tasks(drafts)
        logger.info("Created %s tasks for %s.", len(tasks), user_id)
        return tasks

    def list_tasks(self, user_id: str) -> list[StoredTask]:
        return self.store.list_tasks(user_id)

    def update_task(self, task_id: str, fields: dict[str, Any]) -> StoredTask:
        """Summary: Apply a partial update to a task.

        Importance: Unknown tasks are reported as NotFound instead of silently ignored.
        Alternatives: Upsert the task.
        """

        task = self.store.update_task(task_id, fields)
        if task is None:
            raise NotFound(f"Task {task_id} not found")
        logger.info("Updated task %s (%s).", task_id, ", ".join(sorted(fields)) or "no fields")
        return task

    def update_status(self, task_id: str, status: str) -> StoredTask:
        return self.update_task(task_id, {"status": status})

    def delete_task(self, task_id: str) -> None:
        if not self.store.delete_task(task_id):
            raise NotFound(f"Task {task_id} not found")
        logger.info("Deleted task %s.", task_id)


@dataclass(frozen=True)
class TranscriptService:
    """Summary: Stores analyzed transcripts."""

    store: SqliteStore

    def create_transcript(self, user_id: str, content: str, **fields: Any) -> StoredTranscript:
        transcript = self.store.create_transcript(user_id, content, **fields)
        logger.info("Stored transcript %s for %s.", transcript.id, user_id)
        return transcript

    def list_transcripts(self, user_id: str) -> list[StoredTranscript]:
        return self.store.list_transcripts(user_id)


@dataclass(frozen=True)
class InsightService:
    """Summary: Stores insights linked to transcripts.

    Importance: Keeps the history of analyses next to the transcripts they came from.
    Alternatives: Embed insights in transcript rows.
    """

    store: SqliteStore

    def create_insight(
        self, user_id: str, insight: Insight, transcript_id: str | None = None
    ) -> StoredInsight:
        record = self.store.create_insight(user_id, insight, transcript_id)
        logger.info("Stored insight %s for %s.", record.id, user_id)
        return record

    def list_insights(self, user_id: str) -> list[StoredInsight]:
        return self.store.list_insights(user_id)


@dataclass(frozen=True)
class MetricsService:
    """Summary: Reads and increments per-user usage counters.

    Importance: Increments are applied in SQL so concurrent requests never lose updates.
    Alternatives: Read-modify-write counters in Python.
    """

    store: SqliteStore

    def get_metrics(self, user_id: str) -> StoredMetrics:
        return self.store.get_metrics(user_id)

    def increment(self, user_id: str, metric: str, amount: float = 1) -> StoredMetrics:
        """Summary: Add a non-negative amount to a counter."""

        if amount < 0:
            raise ValidationError("Metric increments must be non-negative")
        if metric != "hours_saved":
            if amount != int(amount):
                raise ValidationError(f"{metric} only accepts whole numbers")
            amount = int(amount)
        try:
            return self.store.increment_metric(user_id, metric, amount)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

    def add_hours_saved(self, user_id: str, hours: float) -> StoredMetrics:
        return self.increment(user_id, "hours_saved", hours)


@dataclass(frozen=True)
class UserDataService:
    """Summary: Deletes everything stored for a user."""

    store: SqliteStore

    def clear(self, user_id: str) -> dict[str, int]:
        counts = self.store.clear_user_data(user_id)
        logger.info("Cleared data for %s: %s", user_id, counts)
        return counts


@dataclass(frozen=True)
class AnalysisService:
    """Summary: Runs transcript analysis on behalf of HTTP clients.

    Importance: Keeps provider keys on the server.
    Alternatives: Call the LLM from every client.
    """

    analyzer: TranscriptAnalyzer

    async def extract(
        self, transcript: str, user_name: str | None = None, user_email: str | None = None
    ) -> Insight:
        return await self.analyzer.analyze(transcript, user_name, user_email)


@dataclass(frozen=True)
class SpeechService:
    """Summary: Converts text to speech audio bytes."""

    provider: SpeechProvider

    async def synthesize(self, text: str) -> bytes:
        cleaned = validate_speech_text(text)
        audio = await self.provider.synthesize(cleaned)
        if not audio:
            raise SpeechUnavailable("Speech provider returned no audio")
        logger.info("Synthesized %s characters of speech.", len(cleaned))
        return audio
