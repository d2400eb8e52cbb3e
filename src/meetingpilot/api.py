"""Summary: FastAPI application for MeetingPilot.

Importance: Exposes the persistence, analysis, and speech endpoints the client talks to.
Alternatives: Use a CLI-only workflow or a different web framework.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse, Response

from meetingpilot.ai import NOT_A_TRANSCRIPT
from meetingpilot.app import build_services
from meetingpilot.config import AppConfig
from meetingpilot.errors import (
    AnalysisInProgress,
    AnalysisRejected,
    Conflict,
    MeetingPilotError,
    NotFound,
    ValidationError,
)
from meetingpilot.models import TaskDraft
from meetingpilot.schemas import (
    ExtractRequest,
    HoursSavedRequest,
    InsightCreateRequest,
    MetricIncrementRequest,
    SpeechRequest,
    TaskBulkCreateRequest,
    TaskCreateRequest,
    TaskStatusRequest,
    TaskUpdateRequest,
    TranscriptCreateRequest,
)
from meetingpilot.storage.sqlite_store import StoredInsight

logger = logging.getLogger(__name__)


def create_app(config: AppConfig) -> FastAPI:
    """Summary: Create the FastAPI application.

    Importance: Provides a single entrypoint for HTTP-based integrations.
    Alternatives: Build a Flask app or a custom ASGI server.
    """

    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    app = FastAPI(title="MeetingPilot API", version="0.1.0")
    services = build_services(config)

    def require_api_key(x_api_key: str | None = Header(default=None)) -> None:
        """Summary: Enforce API key authentication when configured.

        Importance: Adds a minimal security layer for local and private deployments.
        Alternatives: Use OAuth or session-based authentication.
        """

        if not config.api_key:
            return
        if x_api_key != config.api_key:
            raise HTTPException(status_code=401, detail="Invalid API key")

    @app.exception_handler(MeetingPilotError)
    async def handle_domain_error(request: Request, exc: MeetingPilotError) -> JSONResponse:
        """Summary: Translate domain errors into JSON error bodies.

        Importance: Clients can map the status code back onto the same error types.
        Alternatives: Catch errors in every route.
        """

        status_code, detail = _status_for(exc)
        if status_code >= 500:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status_code, content={"detail": detail})

    @app.get("/health")
    def health() -> dict[str, str]:
        """Summary: Health check endpoint.

        Importance: Supports uptime checks in local and cloud deployments.
        Alternatives: Use a metrics endpoint only.
        """

        return {"status": "ok"}

    @app.post("/api/tasks", status_code=201, dependencies=[Depends(require_api_key)])
    def create_task(payload: TaskCreateRequest) -> dict[str, Any]:
        """Summary: Create a task.

        Importance: The client only shows a task after this returns its id.
        Alternatives: Let clients assign ids.
        """

        return asdict(services.tasks.create_task(TaskDraft(**payload.model_dump())))

    @app.post("/api/tasks/with-metrics", status_code=201, dependencies=[Depends(require_api_key)])
    def create_task_with_metrics(payload: TaskCreateRequest) -> dict[str, Any]:
        """Summary: Create a task and count it in the same request."""

        return asdict(services.tasks.create_task_with_metrics(TaskDraft(**payload.model_dump())))

    @app.post("/api/tasks/bulk", status_code=201, dependencies=[Depends(require_api_key)])
    def create_tasks_bulk(payload: TaskBulkCreateRequest) -> list[dict[str, Any]]:
        """Summary: Create several tasks in one transaction.

        Importance: Promoting action items never leaves a half-created batch.
        Alternatives: Issue one request per task.
        """

        drafts = [
            TaskDraft(**{**task.model_dump(), "user_id": payload.user_id}) for task in payload.tasks
        ]
        return [asdict(task) for task in services.tasks.create_tasks(payload.user_id, drafts)]

    @app.get("/api/tasks/user/{user_id}", dependencies=[Depends(require_api_key)])
    def list_tasks(user_id: str) -> list[dict[str, Any]]:
        """Summary: List a user's tasks, newest first."""

        return [asdict(task) for task in services.tasks.list_tasks(user_id)]

    @app.put("/api/tasks/{task_id}", dependencies=[Depends(require_api_key)])
    def update_task(task_id: str, payload: TaskUpdateRequest) -> dict[str, Any]:
        """Summary: Apply a partial update to a task.

        Importance: Only fields present in the request body are written.
        Alternatives: Require full replacement payloads.
        """

        return asdict(services.tasks.update_task(task_id, payload.model_dump(exclude_unset=True)))

    @app.patch("/api/tasks/{task_id}/status", dependencies=[Depends(require_api_key)])
    def update_task_status(task_id: str, payload: TaskStatusRequest) -> dict[str, Any]:
        return asdict(services.tasks.update_status(task_id, payload.status))

    @app.delete("/api/tasks/{task_id}", dependencies=[Depends(require_api_key)])
    def delete_task(task_id: str) -> dict[str, Any]:
        services.tasks.delete_task(task_id)
        return {"id": task_id, "deleted": True}

    @app.post("/api/transcripts", status_code=201, dependencies=[Depends(require_api_key)])
    def create_transcript(payload: TranscriptCreateRequest) -> dict[str, Any]:
        """Summary: Store an analyzed transcript."""

        fields = payload.model_dump()
        user_id = fields.pop("user_id")
        content = fields.pop("content")
        return asdict(services.transcripts.create_transcript(user_id, content, **fields))

    @app.get("/api/transcripts/user/{user_id}", dependencies=[Depends(require_api_key)])
    def list_transcripts(user_id: str) -> list[dict[str, Any]]:
        return [asdict(item) for item in services.transcripts.list_transcripts(user_id)]

    @app.post("/api/insights", status_code=201, dependencies=[Depends(require_api_key)])
    def create_insight(payload: InsightCreateRequest) -> dict[str, Any]:
        """Summary: Store an insight, optionally linked to a transcript."""

        record = services.insights.create_insight(
            payload.user_id, payload.to_insight(), payload.transcript_id
        )
        return _insight_payload(record)

    @app.get("/api/insights/user/{user_id}", dependencies=[Depends(require_api_key)])
    def list_insights(user_id: str) -> list[dict[str, Any]]:
        return [_insight_payload(record) for record in services.insights.list_insights(user_id)]

    @app.get("/api/metrics/user/{user_id}", dependencies=[Depends(require_api_key)])
    def get_metrics(user_id: str) -> dict[str, Any]:
        """Summary: Return a user's counters.

        Importance: The first read creates a zeroed record.
        Alternatives: Return 404 for users without metrics.
        """

        return asdict(services.metrics.get_metrics(user_id))

    @app.post("/api/metrics/increment", dependencies=[Depends(require_api_key)])
    def increment_metric(payload: MetricIncrementRequest) -> dict[str, Any]:
        """Summary: Atomically add to one counter."""

        return asdict(services.metrics.increment(payload.user_id, payload.metric, payload.amount))

    @app.post("/api/metrics/hours", dependencies=[Depends(require_api_key)])
    def add_hours_saved(payload: HoursSavedRequest) -> dict[str, Any]:
        return asdict(services.metrics.add_hours_saved(payload.user_id, payload.hours))

    @app.delete("/api/userdata/{user_id}", dependencies=[Depends(require_api_key)])
    def clear_user_data(user_id: str) -> dict[str, Any]:
        """Summary: Delete all records owned by a user."""

        counts = services.user_data.clear(user_id)
        return {"user_id": user_id, "deleted_counts": counts}

    @app.post("/api/extract", dependencies=[Depends(require_api_key)])
    async def extract(payload: ExtractRequest) -> dict[str, Any]:
        """Summary: Analyze a transcript into insight JSON.

        Importance: Keeps LLM credentials on the server.
        Alternatives: Let clients call the LLM directly.
        """

        insight = await services.analysis.extract(
            payload.transcript, payload.user_name, payload.user_email
        )
        return insight.to_dict()

    @app.post("/api/tts", dependencies=[Depends(require_api_key)])
    async def text_to_speech(payload: SpeechRequest) -> Response:
        """Summary: Convert text to MP3 audio."""

        audio = await services.speech.synthesize(payload.text)
        return Response(content=audio, media_type="audio/mpeg")

    return app


def _status_for(exc: MeetingPilotError) -> tuple[int, str]:
    if isinstance(exc, AnalysisRejected):
        return 422, NOT_A_TRANSCRIPT
    if isinstance(exc, ValidationError):
        return 400, str(exc)
    if isinstance(exc, NotFound):
        return 404, str(exc)
    if isinstance(exc, (Conflict, AnalysisInProgress)):
        return 409, str(exc)
    return 502, str(exc) or exc.user_message


def _insight_payload(record: StoredInsight) -> dict[str, Any]:
    return {
        "id": record.id,
        "user_id": record.user_id,
        "transcript_id": record.transcript_id,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
        **record.insight,
    }


app = create_app(AppConfig.from_env())
