"""Summary: Tests for the remote store gateway.

Importance: Every network outcome must reach callers as a typed result or error.
Alternatives: Test the board and reconciler against a live server only.
"""

from __future__ import annotations

import httpx
import pytest

from conftest import TEST_BASE_URL, FakeStore
from meetingpilot.errors import Conflict, NotFound, RemoteUnavailable, ValidationError
from meetingpilot.gateway import RemoteStoreGateway
from meetingpilot.models import FollowUpEmail, Insight, TaskDraft


def _gateway_returning(response: httpx.Response) -> RemoteStoreGateway:
    def handler(request: httpx.Request) -> httpx.Response:
        return response

    client = httpx.AsyncClient(base_url=TEST_BASE_URL, transport=httpx.MockTransport(handler))
    return RemoteStoreGateway(TEST_BASE_URL, client=client)


@pytest.mark.asyncio
async def test_create_task_returns_remote_id(fake_store: FakeStore) -> None:
    gateway = fake_store.gateway()
    task = await gateway.create_task(TaskDraft(title="Write notes", user_id="u@example.com"))
    assert task.id == "id-1"
    assert task.title == "Write notes"
    assert fake_store.requests == [("POST", "/api/tasks")]


@pytest.mark.asyncio
async def test_invalid_draft_rejected_before_request(fake_store: FakeStore) -> None:
    """Summary: Verify request schemas are enforced on the client.

    Importance: Malformed input never costs a round trip.
    Alternatives: Rely on server-side validation alone.
    """

    gateway = fake_store.gateway()
    with pytest.raises(ValidationError):
        await gateway.create_task(TaskDraft(title="", user_id="u"))
    with pytest.raises(ValidationError):
        await gateway.update_task_status("id-1", "pending")
    assert fake_store.requests == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "error"),
    [
        (404, NotFound),
        (400, ValidationError),
        (422, ValidationError),
        (409, Conflict),
        (500, RemoteUnavailable),
        (503, RemoteUnavailable),
    ],
)
async def test_status_codes_map_to_errors(status: int, error: type[Exception]) -> None:
    gateway = _gateway_returning(httpx.Response(status, json={"detail": "nope"}))
    with pytest.raises(error):
        await gateway.delete_task("t1")


@pytest.mark.asyncio
async def test_transport_failure_is_remote_unavailable(fake_store: FakeStore) -> None:
    fake_store.fail("GET", "/api/tasks", status=None)
    gateway = fake_store.gateway()
    with pytest.raises(RemoteUnavailable):
        await gateway.list_tasks_for_user("u")


@pytest.mark.asyncio
async def test_malformed_response_is_remote_unavailable() -> None:
    """Summary: Verify responses are validated against the entity schema.

    Importance: A broken server must not put half-formed tasks on the board.
    Alternatives: Trust the server response shape.
    """

    gateway = _gateway_returning(httpx.Response(201, json={"title": "No id"}))
    with pytest.raises(RemoteUnavailable):
        await gateway.create_task(TaskDraft(title="Task", user_id="u"))


@pytest.mark.asyncio
async def test_validation_error_carries_server_message() -> None:
    gateway = _gateway_returning(httpx.Response(400, json={"detail": "Title too long"}))
    with pytest.raises(ValidationError) as excinfo:
        await gateway.update_task("t1", {"title": "x"})
    assert excinfo.value.user_message == "Title too long"


@pytest.mark.asyncio
async def test_gateway_against_api(asgi_gateway: RemoteStoreGateway) -> None:
    """Summary: Verify the gateway round-trips through the real API.

    Importance: Keeps the client and server schemas in agreement.
    Alternatives: Maintain a separate contract test suite.
    """

    user_id = "dana@example.com"
    created = await asgi_gateway.create_tasks_bulk(
        [TaskDraft(title="One", user_id=user_id), TaskDraft(title="Two", user_id=user_id)],
        user_id,
    )
    assert len(created) == 2
    moved = await asgi_gateway.update_task_status(created[0].id, "in_progress")
    assert moved.status == "in_progress"
    edited = await asgi_gateway.update_task(created[1].id, {"priority": "high"})
    assert edited.priority == "high"
    assert edited.title == "Two"
    tasks = await asgi_gateway.list_tasks_for_user(user_id)
    assert {task.id for task in tasks} == {task.id for task in created}

    await asgi_gateway.delete_task(created[0].id)
    with pytest.raises(NotFound):
        await asgi_gateway.delete_task(created[0].id)

    metrics = await asgi_gateway.get_metrics(user_id)
    assert metrics.tasks_created == 0
    metrics = await asgi_gateway.increment_metric(user_id, "tasks_created", 2)
    assert metrics.tasks_created == 2
    metrics = await asgi_gateway.add_hours_saved(user_id, 0.48)
    assert metrics.hours_saved == 0.48

    insight = Insight(
        title="Sync",
        summary="Short.",
        decisions=(),
        action_items=(),
        follow_up_email=FollowUpEmail(subject="Sync", body="Thanks"),
    )
    transcript = await asgi_gateway.create_transcript(user_id, "Alice: hi\nBob: hey", title="Sync")
    record = await asgi_gateway.create_insight(user_id, insight, transcript.id)
    assert record.transcript_id == transcript.id
    [listed] = await asgi_gateway.list_insights_for_user(user_id)
    assert listed.to_insight() == insight
    assert len(await asgi_gateway.list_transcripts_for_user(user_id)) == 1

    counts = await asgi_gateway.clear_user_data(user_id)
    assert counts["tasks"] == 1
    assert await asgi_gateway.list_tasks_for_user(user_id) == []
