"""Summary: Remote store gateway for the MeetingPilot persistence API.

Importance: The only component that performs network I/O against the store; it turns
HTTP outcomes into typed results and errors.
Alternatives: Call httpx directly from the board and the reconciler.
"""

from __future__ import annotations

import logging
import urllib.parse
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from meetingpilot.errors import Conflict, NotFound, RemoteUnavailable, ValidationError
from meetingpilot.models import Insight, Task, TaskDraft, UserMetrics
from meetingpilot.schemas import (
    HoursSavedRequest,
    InsightCreateRequest,
    InsightRecord,
    MetricIncrementRequest,
    MetricsRecord,
    TaskBulkCreateRequest,
    TaskCreateRequest,
    TaskRecord,
    TaskStatusRequest,
    TaskUpdateRequest,
    TranscriptCreateRequest,
    TranscriptRecord,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class RemoteStoreGateway:
    """Summary: Async client for tasks, transcripts, insights, and metrics.

    Importance: Validates every request and response against the entity schemas.
    Alternatives: Trust the server to return well-formed payloads.
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str = "",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owned_client = client is None
        if client is None:
            headers = {"Accept": "application/json"}
            if api_key:
                headers["X-API-Key"] = api_key
            client = httpx.AsyncClient(
                base_url=base_url.rstrip("/"), timeout=timeout, headers=headers
            )
        self._client = client

    async def aclose(self) -> None:
        if self._owned_client:
            await self._client.aclose()

    async def __aenter__(self) -> "RemoteStoreGateway":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def create_task(self, draft: TaskDraft) -> Task:
        """Summary: Create a task and return it with its remote identifier.

        Importance: The identifier is required before the board shows the task.
        Alternatives: Generate identifiers on the client.
        """

        body = _build(TaskCreateRequest, **_draft_fields(draft))
        data = await self._request("POST", "/api/tasks", body)
        return _parse(TaskRecord, data).to_task()

    async def create_tasks_bulk(self, drafts: list[TaskDraft], user_id: str) -> list[Task]:
        """Summary: Create several tasks in one batched call."""

        body = _build(
            TaskBulkCreateRequest,
            user_id=user_id,
            tasks=[_draft_fields(draft) for draft in drafts],
        )
        data = await self._request("POST", "/api/tasks/bulk", body)
        if not isinstance(data, list):
            raise RemoteUnavailable("Bulk task response was not a list")
        return [_parse(TaskRecord, item).to_task() for item in data]

    async def update_task(self, task_id: str, fields: dict[str, Any]) -> Task:
        """Summary: Apply a partial update to a task."""

        body = _build(TaskUpdateRequest, **fields)
        data = await self._request(
            "PUT", f"/api/tasks/{_quote(task_id)}", body, exclude_unset=True
        )
        return _parse(TaskRecord, data).to_task()

    async def update_task_status(self, task_id: str, status: str) -> Task:
        body = _build(TaskStatusRequest, status=status)
        data = await self._request("PATCH", f"/api/tasks/{_quote(task_id)}/status", body)
        return _parse(TaskRecord, data).to_task()

    async def delete_task(self, task_id: str) -> None:
        """Summary: Delete a task.

        Importance: Raises NotFound for unknown ids so callers can tell it apart from success.
        Alternatives: Return a boolean.
        """

        await self._request("DELETE", f"/api/tasks/{_quote(task_id)}")

    async def list_tasks_for_user(self, user_id: str) -> list[Task]:
        data = await self._request("GET", f"/api/tasks/user/{_quote(user_id)}")
        return [_parse(TaskRecord, item).to_task() for item in data or []]

    async def create_transcript(
        self,
        user_id: str,
        content: str,
        *,
        title: str | None = None,
        summary: str | None = None,
        key_points: list[str] | None = None,
        action_items: list[str] | None = None,
        audio_url: str | None = None,
        session_state: dict[str, Any] | None = None,
    ) -> TranscriptRecord:
        body = _build(
            TranscriptCreateRequest,
            user_id=user_id,
            content=content,
            title=title,
            summary=summary,
            key_points=key_points or [],
            action_items=action_items or [],
            audio_url=audio_url,
            session_state=session_state,
        )
        data = await self._request("POST", "/api/transcripts", body)
        return _parse(TranscriptRecord, data)

    async def list_transcripts_for_user(self, user_id: str) -> list[TranscriptRecord]:
        data = await self._request("GET", f"/api/transcripts/user/{_quote(user_id)}")
        return [_parse(TranscriptRecord, item) for item in data or []]

    async def create_insight(
        self, user_id: str, insight: Insight, transcript_id: str | None = None
    ) -> InsightRecord:
        body = _build(
            InsightCreateRequest, user_id=user_id, transcript_id=transcript_id, **insight.to_dict()
        )
        data = await self._request("POST", "/api/insights", body)
        return _parse(InsightRecord, data)

    async def list_insights_for_user(self, user_id: str) -> list[InsightRecord]:
        data = await self._request("GET", f"/api/insights/user/{_quote(user_id)}")
        return [_parse(InsightRecord, item) for item in data or []]

    async def get_metrics(self, user_id: str) -> UserMetrics:
        """Summary: Read a user's counters; the server creates a zeroed record if absent."""

        data = await self._request("GET", f"/api/metrics/user/{_quote(user_id)}")
        return _parse(MetricsRecord, data).to_metrics()

    async def increment_metric(self, user_id: str, metric: str, amount: float) -> UserMetrics:
        body = _build(MetricIncrementRequest, user_id=user_id, metric=metric, amount=amount)
        data = await self._request("POST", "/api/metrics/increment", body)
        return _parse(MetricsRecord, data).to_metrics()

    async def add_hours_saved(self, user_id: str, hours: float) -> UserMetrics:
        body = _build(HoursSavedRequest, user_id=user_id, hours=hours)
        data = await self._request("POST", "/api/metrics/hours", body)
        return _parse(MetricsRecord, data).to_metrics()

    async def clear_user_data(self, user_id: str) -> dict[str, int]:
        data = await self._request("DELETE", f"/api/userdata/{_quote(user_id)}")
        return dict((data or {}).get("deleted_counts", {}))

    async def _request(
        self,
        method: str,
        path: str,
        body: BaseModel | None = None,
        *,
        exclude_unset: bool = False,
    ) -> Any:
        """Summary: Send one request and map failures onto the error taxonomy.

        Importance: Callers never see httpx exceptions or raw status codes.
        Alternatives: Let httpx.HTTPStatusError propagate.
        """

        payload = body.model_dump(exclude_unset=exclude_unset) if body is not None else None
        try:
            response = await self._client.request(method, path, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise RemoteUnavailable(f"{method} {path} failed: {exc}") from exc
        if response.status_code >= 400:
            raise _error_for(response)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteUnavailable(f"{method} {path} returned invalid JSON") from exc


def _error_for(response: httpx.Response) -> Exception:
    detail: Any = response.text
    try:
        body = response.json()
        if isinstance(body, dict):
            detail = body.get("detail") or body.get("error") or body.get("message") or body
    except ValueError:
        pass
    message = f"{response.status_code} {response.request.method} {response.request.url.path}: {detail}"
    if response.status_code == 404:
        return NotFound(message)
    if response.status_code in (400, 422):
        return ValidationError(str(detail))
    if response.status_code == 409:
        return Conflict(message)
    return RemoteUnavailable(message)


def _build(model: type[ModelT], **fields: Any) -> ModelT:
    try:
        return model(**fields)
    except SchemaError as exc:
        raise ValidationError(str(exc)) from exc


def _parse(model: type[ModelT], data: Any) -> ModelT:
    try:
        return model.model_validate(data)
    except SchemaError as exc:
        raise RemoteUnavailable(f"Malformed {model.__name__} from server: {exc}") from exc


def _draft_fields(draft: TaskDraft) -> dict[str, Any]:
    return {
        "title": draft.title,
        "user_id": draft.user_id,
        "description": draft.description,
        "status": draft.status,
        "priority": draft.priority,
        "assigned_to": draft.assigned_to,
        "due_date": draft.due_date,
    }


def _quote(value: str) -> str:
    return urllib.parse.quote(value, safe="@")
