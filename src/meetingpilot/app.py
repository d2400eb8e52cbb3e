"""Summary: Application factories wiring server services and client workspaces.

Importance: Centralizes dependency creation for the API and the CLI.
Alternatives: Instantiate services manually in each entrypoint.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import httpx

from meetingpilot.ai import AiProviderFactory
from meetingpilot.analysis import TranscriptAnalyzer
from meetingpilot.board import TaskBoard
from meetingpilot.config import AppConfig
from meetingpilot.gateway import RemoteStoreGateway
from meetingpilot.metrics import MetricsAggregator
from meetingpilot.reconciler import SessionReconciler
from meetingpilot.services import (
    AnalysisService,
    InsightService,
    MetricsService,
    SpeechService,
    TaskService,
    TranscriptService,
    UserDataService,
)
from meetingpilot.speech import VoiceSummarizer, build_speech_provider
from meetingpilot.storage.session_cache import SqliteSessionCache
from meetingpilot.storage.sqlite_store import SqliteStore


@dataclass(frozen=True)
class AppServices:
    """Summary: Bundle of server-side services.

    Importance: Simplifies passing dependencies to the API layer.
    Alternatives: Use a dependency injection container.
    """

    tasks: TaskService
    transcripts: TranscriptService
    insights: InsightService
    metrics: MetricsService
    user_data: UserDataService
    analysis: AnalysisService
    speech: SpeechService
    store: SqliteStore


@dataclass(frozen=True)
class Workspace:
    """Summary: Client-side components for one signed-in user.

    Importance: The CLI drives the board and the reconciler through this bundle.
    Alternatives: Construct each component inside every command.
    """

    user_id: str
    gateway: RemoteStoreGateway
    metrics: MetricsAggregator
    board: TaskBoard
    reconciler: SessionReconciler

    async def aclose(self) -> None:
        """Summary: Wait for background persistence and close the HTTP client."""

        await self.reconciler.flush()
        await self.gateway.aclose()


def build_analyzer(config: AppConfig) -> TranscriptAnalyzer:
    return TranscriptAnalyzer(ai_provider=AiProviderFactory(config).build(), model_name=config.model_name)


def build_services(config: AppConfig) -> AppServices:
    """Summary: Build server services from configuration.

    Importance: Provides a single construction path for the API.
    Alternatives: Instantiate services directly within the route module.
    """

    store = SqliteStore(config.db_path)
    store.initialize()
    return AppServices(
        tasks=TaskService(store=store),
        transcripts=TranscriptService(store=store),
        insights=InsightService(store=store),
        metrics=MetricsService(store=store),
        user_data=UserDataService(store=store),
        analysis=AnalysisService(analyzer=build_analyzer(config)),
        speech=SpeechService(provider=build_speech_provider(config)),
        store=store,
    )


def build_workspace(
    config: AppConfig,
    user_id: str | None = None,
    user_name: str | None = None,
    client: httpx.AsyncClient | None = None,
) -> Workspace:
    """Summary: Build the client components for a user.

    Importance: The user id partitions every session, task, and metrics record.
    Alternatives: Use a single global user.
    """

    resolved_user = user_id or config.default_user_email
    gateway = RemoteStoreGateway(
        config.api_base_url,
        api_key=config.api_key,
        timeout=config.api_timeout,
        client=client,
    )
    metrics = MetricsAggregator(gateway)
    reconciler = SessionReconciler(
        user_id=resolved_user,
        cache=SqliteSessionCache(config.session_cache_path),
        analyzer=build_analyzer(config),
        gateway=gateway,
        metrics=metrics,
        voice=VoiceSummarizer(build_speech_provider(config), Path(config.audio_dir)),
        user_name=user_name or config.default_user_name,
        user_email=resolved_user,
    )
    return Workspace(
        user_id=resolved_user,
        gateway=gateway,
        metrics=metrics,
        board=TaskBoard(resolved_user, gateway, metrics),
        reconciler=reconciler,
    )
