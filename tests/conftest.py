"""Summary: Shared fixtures for MeetingPilot tests.

Importance: Gives every test isolated SQLite files and an in-memory persistence API.
Alternatives: Start a real uvicorn server for each test module.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from meetingpilot.api import create_app
from meetingpilot.config import AppConfig
from meetingpilot.gateway import RemoteStoreGateway

TEST_BASE_URL = "http://testserver"


def build_config(tmp_path: Path, **overrides: Any) -> AppConfig:
    """Summary: Build an AppConfig for tests.

    Importance: Ensures tests use isolated storage and offline providers.
    Alternatives: Load AppConfig from environment variables.
    """

    values: dict[str, Any] = {
        "db_path": str(tmp_path / "server.db"),
        "session_cache_path": str(tmp_path / "sessions.db"),
        "api_base_url": TEST_BASE_URL,
        "api_host": "127.0.0.1",
        "api_port": 8000,
        "api_key": "",
        "api_timeout": 5.0,
        "ai_provider": "mock",
        "openai_api_key": None,
        "openai_model": "gpt-4o",
        "ollama_url": "http://localhost:11434",
        "ollama_model": "llama3",
        "gemini_api_key": None,
        "gemini_model": "gemini-2.0-flash",
        "speech_provider": "mock",
        "elevenlabs_api_key": None,
        "elevenlabs_voice_id": "voice",
        "elevenlabs_model": "eleven_multilingual_v2",
        "audio_dir": str(tmp_path / "audio"),
        "default_user_name": "Local User",
        "default_user_email": "local@meetingpilot",
    }
    values.update(overrides)
    return AppConfig(**values)


class FakeStore:
    """Summary: In-memory persistence API served through httpx.MockTransport.

    Importance: Lets tests pick ids, inject failures, and count requests.
    Alternatives: Patch gateway methods with mocks.
    """

    def __init__(self, ids: list[str] | None = None) -> None:
        self.tasks: dict[str, dict[str, Any]] = {}
        self.transcripts: list[dict[str, Any]] = []
        self.insights: list[dict[str, Any]] = []
        self.metrics: dict[str, dict[str, Any]] = {}
        self.requests: list[tuple[str, str]] = []
        self._ids = list(ids or [])
        self._counter = 0
        self._failures: list[tuple[str, str, int | None]] = []

    def fail(self, method: str, path_prefix: str, status: int | None = 503) -> None:
        """Summary: Make matching requests fail; a None status raises a transport error."""

        self._failures.append((method, path_prefix, status))

    def heal(self) -> None:
        self._failures.clear()

    def count(self, method: str, path_prefix: str) -> int:
        return sum(
            1 for seen_method, path in self.requests
            if seen_method == method and path.startswith(path_prefix)
        )

    def gateway(self) -> RemoteStoreGateway:
        client = httpx.AsyncClient(base_url=TEST_BASE_URL, transport=httpx.MockTransport(self.handler))
        return RemoteStoreGateway(TEST_BASE_URL, client=client)

    def handler(self, request: httpx.Request) -> httpx.Response:
        method, path = request.method, request.url.path
        self.requests.append((method, path))
        for fail_method, prefix, status in self._failures:
            if fail_method == method and path.startswith(prefix):
                if status is None:
                    raise httpx.ConnectError("connection refused", request=request)
                return httpx.Response(status, json={"detail": "injected failure"})
        body = json.loads(request.content) if request.content else {}
        parts = path.strip("/").split("/")

        if parts[:2] == ["api", "tasks"]:
            return self._tasks(method, parts[2:], body)
        if parts[:2] == ["api", "transcripts"] and method == "POST":
            record = {**body, "id": self._next_id(), "created_at": _now(), "updated_at": _now()}
            self.transcripts.append(record)
            return httpx.Response(201, json=record)
        if parts[:2] == ["api", "insights"] and method == "POST":
            record = {**body, "id": self._next_id(), "created_at": _now(), "updated_at": _now()}
            self.insights.append(record)
            return httpx.Response(201, json=record)
        if parts[:3] == ["api", "metrics", "user"]:
            return httpx.Response(200, json=self._metrics_for(parts[3]))
        if parts[:3] == ["api", "metrics", "increment"]:
            record = self._metrics_for(body["user_id"])
            record[body["metric"]] += body["amount"]
            return httpx.Response(200, json=record)
        if parts[:3] == ["api", "metrics", "hours"]:
            record = self._metrics_for(body["user_id"])
            record["hours_saved"] = round(record["hours_saved"] + body["hours"], 2)
            return httpx.Response(200, json=record)
        if parts[:2] == ["api", "userdata"] and method == "DELETE":
            user_id = parts[2]
            owned = [task_id for task_id, task in self.tasks.items() if task["user_id"] == user_id]
            for task_id in owned:
                del self.tasks[task_id]
            self.metrics.pop(user_id, None)
            return httpx.Response(200, json={"deleted_counts": {"tasks": len(owned)}})
        return httpx.Response(404, json={"detail": f"No route for {method} {path}"})

    def _tasks(self, method: str, rest: list[str], body: dict[str, Any]) -> httpx.Response:
        if method == "POST" and not rest:
            return httpx.Response(201, json=self._create_task(body))
        if method == "POST" and rest == ["bulk"]:
            created = [self._create_task({**task, "user_id": body["user_id"]}) for task in body["tasks"]]
            return httpx.Response(201, json=created)
        if method == "GET" and rest[:1] == ["user"]:
            owned = [task for task in self.tasks.values() if task["user_id"] == rest[1]]
            return httpx.Response(200, json=list(reversed(owned)))
        task = self.tasks.get(rest[0]) if rest else None
        if task is None:
            return httpx.Response(404, json={"detail": "Task not found"})
        if method == "DELETE":
            del self.tasks[rest[0]]
            return httpx.Response(200, json={"id": rest[0], "deleted": True})
        task.update(body)
        task["updated_at"] = _now()
        return httpx.Response(200, json=task)

    def _create_task(self, body: dict[str, Any]) -> dict[str, Any]:
        task = {
            "id": self._next_id(),
            "title": body["title"],
            "user_id": body["user_id"],
            "description": body.get("description", ""),
            "status": body.get("status", "todo"),
            "priority": body.get("priority", "medium"),
            "assigned_to": body.get("assigned_to"),
            "due_date": body.get("due_date"),
            "created_at": _now(),
            "updated_at": _now(),
        }
        self.tasks[task["id"]] = task
        return task

    def _metrics_for(self, user_id: str) -> dict[str, Any]:
        return self.metrics.setdefault(
            user_id,
            {
                "user_id": user_id,
                "transcripts_analyzed": 0,
                "insights_generated": 0,
                "hours_saved": 0.0,
                "tasks_created": 0,
            },
        )

    def _next_id(self) -> str:
        if self._ids:
            return self._ids.pop(0)
        self._counter += 1
        return f"id-{self._counter}"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    return build_config(tmp_path)


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def api_client(config: AppConfig) -> TestClient:
    """Summary: TestClient bound to a fresh API with its own database."""

    return TestClient(create_app(config))


@pytest.fixture
def asgi_gateway(config: AppConfig) -> RemoteStoreGateway:
    """Summary: Gateway talking to the real API in-process over ASGI.

    Importance: Exercises the gateway and the server together without a socket.
    Alternatives: Run uvicorn in a background thread.
    """

    transport = httpx.ASGITransport(app=create_app(config))
    client = httpx.AsyncClient(transport=transport, base_url=TEST_BASE_URL)
    return RemoteStoreGateway(TEST_BASE_URL, client=client)
