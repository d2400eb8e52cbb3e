"""Summary: Domain model dataclasses for MeetingPilot.

Importance: Defines the core entities shared by the session, board, and storage layers.
Alternatives: Use Pydantic models or ORM classes directly.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any

TASK_STATUSES = ("todo", "in_progress", "done")
LEGACY_STATUS_ALIASES = {"pending": "todo"}
PRIORITIES = ("low", "medium", "high")
METRIC_COUNTERS = (
    "transcripts_analyzed",
    "insights_generated",
    "hours_saved",
    "tasks_created",
)


def normalize_status(status: str) -> str:
    """Summary: Map a stored status onto a board column.

    Importance: Keeps legacy `pending` rows visible in the To Do column.
    Alternatives: Migrate legacy rows in the database.
    """

    return LEGACY_STATUS_ALIASES.get(status, status)


def normalize_priority(priority: str | None) -> str:
    """Summary: Normalize analyzer priorities such as `High` into board priorities.

    Importance: LLM output casing varies while the board accepts a fixed vocabulary.
    Alternatives: Reject action items with unknown priorities.
    """

    cleaned = (priority or "").strip().lower()
    return cleaned if cleaned in PRIORITIES else "medium"


@dataclass(frozen=True)
class Decision:
    """Summary: A decision recorded in a meeting.

    Importance: Preserves who decided what for the follow-up email and review.
    Alternatives: Fold decisions into the free-form summary.
    """

    text: str
    made_by: str
    timestamp: str


@dataclass(frozen=True)
class TaskDraft:
    """Summary: Fields for a task that has not been persisted yet.

    Importance: Separates create requests from tasks that carry a remote identifier.
    Alternatives: Use a Task with an empty id.
    """

    title: str
    user_id: str
    description: str = ""
    status: str = "todo"
    priority: str = "medium"
    assigned_to: str | None = None
    due_date: str | None = None


@dataclass(frozen=True)
class ActionItem:
    """Summary: A suggested task extracted from a transcript.

    Importance: Lets users promote follow-ups to the board without retyping them.
    Alternatives: Create tasks directly from analyzer output.
    """

    local_id: int
    task: str
    owner: str
    due_date: str
    priority: str
    context: str
    confidence: float

    def to_task_draft(self, user_id: str, today: date | None = None) -> TaskDraft:
        """Summary: Copy this action item into a task draft.

        Importance: Promotion is a copy; the action item stays in its insight.
        Alternatives: Move the item out of the insight on promotion.
        """

        due = self.due_date if self.due_date and self.due_date.upper() != "TBD" else None
        return TaskDraft(
            title=self.task,
            user_id=user_id,
            description=self.context or "",
            status="todo",
            priority=normalize_priority(self.priority),
            assigned_to=self.owner or None,
            due_date=due or (today or date.today()).isoformat(),
        )


@dataclass(frozen=True)
class FollowUpEmail:
    """Summary: Follow-up email suggested by the analyzer."""

    subject: str
    body: str


@dataclass(frozen=True)
class Insight:
    """Summary: Structured output of a transcript analysis.

    Importance: Carries the summary, decisions, and action items shown to the user.
    Alternatives: Keep the raw analyzer JSON around as a dict.
    """

    title: str
    summary: str
    decisions: tuple[Decision, ...]
    action_items: tuple[ActionItem, ...]
    follow_up_email: FollowUpEmail

    def to_dict(self) -> dict[str, Any]:
        """Summary: Serialize the insight using the analyzer wire names.

        Importance: One JSON shape is shared by the cache, the API, and the analyzer.
        Alternatives: Use dataclasses.asdict with Python field names.
        """

        return {
            "meeting_title": self.title,
            "summary": self.summary,
            "decisions": [
                {"text": item.text, "made_by": item.made_by, "timestamp": item.timestamp}
                for item in self.decisions
            ],
            "action_items": [
                {
                    "id": item.local_id,
                    "task": item.task,
                    "owner": item.owner,
                    "due": item.due_date,
                    "priority": item.priority,
                    "context": item.context,
                    "confidence": item.confidence,
                }
                for item in self.action_items
            ],
            "follow_up_email": {
                "subject": self.follow_up_email.subject,
                "body": self.follow_up_email.body,
            },
        }

    @staticmethod
    def from_dict(payload: dict[str, Any]) -> "Insight":
        """Summary: Build an insight from its wire representation.

        Importance: Restores insights from the session cache.
        Alternatives: Pickle dataclasses into the cache.
        """

        email = payload.get("follow_up_email") or {}
        return Insight(
            title=payload.get("meeting_title", ""),
            summary=payload.get("summary", ""),
            decisions=tuple(
                Decision(
                    text=item.get("text", ""),
                    made_by=item.get("made_by", ""),
                    timestamp=item.get("timestamp", ""),
                )
                for item in payload.get("decisions", [])
            ),
            action_items=tuple(
                ActionItem(
                    local_id=int(item.get("id", index + 1)),
                    task=item.get("task", ""),
                    owner=item.get("owner", ""),
                    due_date=item.get("due", ""),
                    priority=normalize_priority(item.get("priority")),
                    context=item.get("context", ""),
                    confidence=float(item.get("confidence", 0.0)),
                )
                for index, item in enumerate(payload.get("action_items", []))
            ),
            follow_up_email=FollowUpEmail(
                subject=email.get("subject", ""), body=email.get("body", "")
            ),
        )


@dataclass(frozen=True)
class Session:
    """Summary: Working state of one transcript analysis for a user.

    Importance: The unit the session cache persists and the reconciler mutates.
    Alternatives: Keep loose fields in the UI state.
    """

    transcript: str = ""
    insight: Insight | None = None
    email_draft: str = ""
    saved_at: datetime | None = None
    audio_url: str | None = None

    def __post_init__(self) -> None:
        if self.insight is not None and not self.transcript.strip():
            raise ValueError("A session with an insight needs the transcript it came from")

    def is_empty(self) -> bool:
        return not self.transcript and self.insight is None and not self.email_draft

    def with_updates(self, **changes: Any) -> "Session":
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Summary: Serialize the session for the local cache."""

        return {
            "transcript": self.transcript,
            "insight": self.insight.to_dict() if self.insight else None,
            "email_draft": self.email_draft,
            "saved_at": self.saved_at.isoformat() if self.saved_at else None,
            "audio_url": self.audio_url,
        }

    @staticmethod
    def from_dict(payload: dict[str, Any]) -> "Session":
        """Summary: Restore a session serialized by `to_dict`."""

        insight = payload.get("insight")
        saved_at = payload.get("saved_at")
        return Session(
            transcript=payload.get("transcript", ""),
            insight=Insight.from_dict(insight) if insight else None,
            email_draft=payload.get("email_draft", ""),
            saved_at=datetime.fromisoformat(saved_at) if saved_at else None,
            audio_url=payload.get("audio_url"),
        )


@dataclass(frozen=True)
class Task:
    """Summary: A persisted unit of work shown on the board.

    Importance: Core entity for the Kanban workflow.
    Alternatives: Store tasks as notes attached to insights.
    """

    id: str
    title: str
    user_id: str
    status: str = "todo"
    priority: str = "medium"
    description: str = ""
    assigned_to: str | None = None
    due_date: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def column(self) -> str:
        return normalize_status(self.status)


@dataclass(frozen=True)
class UserMetrics:
    """Summary: Cumulative usage counters for a user.

    Importance: Feeds the dashboard counters such as hours saved.
    Alternatives: Compute counts from live tables on every read.
    """

    user_id: str
    transcripts_analyzed: int = 0
    insights_generated: int = 0
    hours_saved: float = 0.0
    tasks_created: int = 0
