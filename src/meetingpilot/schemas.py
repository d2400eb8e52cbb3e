"""Summary: Pydantic wire schemas for the persistence and analysis APIs.

Importance: Each entity has one explicit schema validated on both sides of the HTTP boundary.
Alternatives: Pass untyped dicts between the client and the server.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from meetingpilot.models import (
    ActionItem,
    Decision,
    FollowUpEmail,
    Insight,
    Task,
    UserMetrics,
    normalize_priority,
)

TaskStatus = Literal["todo", "in_progress", "done"]
StoredTaskStatus = Literal["todo", "in_progress", "done", "pending"]
TaskPriority = Literal["low", "medium", "high"]
MetricName = Literal["transcripts_analyzed", "insights_generated", "hours_saved", "tasks_created"]


class TaskCreateRequest(BaseModel):
    """Summary: Request payload for task creation.

    Importance: Rejects tasks without a title or owner before they reach storage.
    Alternatives: Let the database enforce constraints.
    """

    title: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    description: str = ""
    status: TaskStatus = "todo"
    priority: TaskPriority = "medium"
    assigned_to: str | None = None
    due_date: str | None = None


class TaskBulkCreateRequest(BaseModel):
    """Summary: Request payload for creating several tasks at once."""

    user_id: str = Field(min_length=1)
    tasks: list[TaskCreateRequest] = Field(min_length=1)


class TaskUpdateRequest(BaseModel):
    """Summary: Partial update for a task.

    Importance: Only fields that were sent are written.
    Alternatives: Require full task replacement on every edit.
    """

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    assigned_to: str | None = None
    due_date: str | None = None

    @field_validator("title", "description", "status", "priority")
    @classmethod
    def _reject_null(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value


class TaskStatusRequest(BaseModel):
    """Summary: Request payload for a status change on the board."""

    status: TaskStatus


class TaskRecord(BaseModel):
    """Summary: Task as returned by the persistence API."""

    id: str
    title: str
    user_id: str
    description: str = ""
    status: StoredTaskStatus = "todo"
    priority: TaskPriority = "medium"
    assigned_to: str | None = None
    due_date: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def to_task(self) -> Task:
        return Task(**self.model_dump())


class DecisionSchema(BaseModel):
    text: str
    made_by: str = "Unknown"
    timestamp: str = "Unknown"


class ActionItemSchema(BaseModel):
    """Summary: Action item in analyzer output."""

    id: int
    task: str = Field(min_length=1)
    owner: str = "Unassigned"
    due: str = "TBD"
    priority: str = "medium"
    context: str = ""
    confidence: float = 0.0

    @field_validator("priority")
    @classmethod
    def _normalize_priority(cls, value: str) -> str:
        return normalize_priority(value)

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, value: float) -> float:
        return min(1.0, max(0.0, value))


class FollowUpEmailSchema(BaseModel):
    subject: str = ""
    body: str = ""


class InsightSchema(BaseModel):
    """Summary: Structured analyzer output for one transcript.

    Importance: Validates LLM JSON before it becomes an Insight.
    Alternatives: Trust the model to return well-formed fields.
    """

    meeting_title: str
    summary: str
    decisions: list[DecisionSchema] = Field(default_factory=list)
    action_items: list[ActionItemSchema] = Field(default_factory=list)
    follow_up_email: FollowUpEmailSchema = Field(default_factory=FollowUpEmailSchema)

    def to_insight(self) -> Insight:
        return Insight(
            title=self.meeting_title,
            summary=self.summary,
            decisions=tuple(
                Decision(text=item.text, made_by=item.made_by, timestamp=item.timestamp)
                for item in self.decisions
            ),
            action_items=tuple(
                ActionItem(
                    local_id=item.id,
                    task=item.task,
                    owner=item.owner,
                    due_date=item.due,
                    priority=item.priority,
                    context=item.context,
                    confidence=item.confidence,
                )
                for item in self.action_items
            ),
            follow_up_email=FollowUpEmail(
                subject=self.follow_up_email.subject, body=self.follow_up_email.body
            ),
        )


class TranscriptCreateRequest(BaseModel):
    """Summary: Request payload for storing an analyzed transcript."""

    user_id: str = Field(min_length=1)
    content: str = Field(min_length=1)
    title: str | None = None
    summary: str | None = None
    key_points: list[str] = Field(default_factory=list)
    action_items: list[str] = Field(default_factory=list)
    audio_url: str | None = None
    session_state: dict[str, Any] | None = None


class TranscriptRecord(TranscriptCreateRequest):
    id: str
    created_at: str | None = None
    updated_at: str | None = None


class InsightCreateRequest(InsightSchema):
    """Summary: Request payload for storing an insight linked to a transcript."""

    user_id: str = Field(min_length=1)
    transcript_id: str | None = None


class InsightRecord(InsightCreateRequest):
    id: str
    created_at: str | None = None
    updated_at: str | None = None


class MetricsRecord(BaseModel):
    """Summary: Usage counters as returned by the persistence API."""

    user_id: str
    transcripts_analyzed: int = Field(default=0, ge=0)
    insights_generated: int = Field(default=0, ge=0)
    hours_saved: float = Field(default=0.0, ge=0)
    tasks_created: int = Field(default=0, ge=0)

    def to_metrics(self) -> UserMetrics:
        return UserMetrics(**self.model_dump())


class MetricIncrementRequest(BaseModel):
    """Summary: Request payload for an atomic counter increment."""

    user_id: str = Field(min_length=1)
    metric: MetricName
    amount: float = Field(default=1, ge=0)


class HoursSavedRequest(BaseModel):
    user_id: str = Field(min_length=1)
    hours: float = Field(ge=0)


class ExtractRequest(BaseModel):
    """Summary: Request payload for transcript analysis."""

    transcript: str = Field(min_length=1)
    user_name: str | None = None
    user_email: str | None = None


class SpeechRequest(BaseModel):
    """Summary: Request payload for text-to-speech."""

    text: str = Field(min_length=1, max_length=5000)
