"""Summary: Tests for the session reconciler.

Importance: Covers the analyze workflow, its single-flight guard, and cache consistency.
Alternatives: Drive the reconciler only through the CLI.
"""

from __future__ import annotations

import asyncio
import sqlite3
from pathlib import Path

import pytest

from conftest import FakeStore
from meetingpilot.ai import AiProvider, MockAiProvider
from meetingpilot.analysis import TranscriptAnalyzer
from meetingpilot.errors import AnalysisInProgress, AnalysisRejected, ValidationError
from meetingpilot.metrics import MetricsAggregator
from meetingpilot.reconciler import SessionReconciler, SessionState
from meetingpilot.speech import MockSpeechProvider, VoiceSummarizer
from meetingpilot.storage.session_cache import SqliteSessionCache

USER = "dana@example.com"
TRANSCRIPT = "Alice: Thanks for joining.\nBob: Happy to help with the launch."
STANDUP = "Alice: Team stand-up, 30 minute meeting.\nBob: " + " ".join(["update"] * 193)


class GatedProvider(AiProvider):
    """Summary: Mock provider that waits until the test releases it."""

    def __init__(self) -> None:
        self.calls = 0
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self._inner = MockAiProvider()

    async def generate_text(self, prompt: str, purpose: str) -> tuple[str, int]:
        self.calls += 1
        self.started.set()
        await self.release.wait()
        return await self._inner.generate_text(prompt, purpose)


def _reconciler(
    tmp_path: Path, store: FakeStore, provider: AiProvider | None = None
) -> SessionReconciler:
    gateway = store.gateway()
    return SessionReconciler(
        user_id=USER,
        cache=SqliteSessionCache(str(tmp_path / "sessions.db")),
        analyzer=TranscriptAnalyzer(provider or MockAiProvider()),
        gateway=gateway,
        metrics=MetricsAggregator(gateway),
        voice=VoiceSummarizer(MockSpeechProvider(), tmp_path / "audio"),
        user_name="Dana",
    )


@pytest.mark.asyncio
async def test_empty_transcript_is_rejected(tmp_path: Path, fake_store: FakeStore) -> None:
    """Summary: Verify whitespace input changes nothing and calls nothing."""

    provider = GatedProvider()
    reconciler = _reconciler(tmp_path, fake_store, provider)
    with pytest.raises(ValidationError):
        await reconciler.submit("   ")
    assert reconciler.state is SessionState.EMPTY
    assert provider.calls == 0
    assert fake_store.requests == []


@pytest.mark.asyncio
async def test_successful_analysis_persists_everything(
    tmp_path: Path, fake_store: FakeStore
) -> None:
    """Summary: Verify a successful analysis updates state, cache, store, and metrics.

    Importance: The session is usable immediately and history is stored in the background.
    Alternatives: Block the user until the remote writes complete.
    """

    reconciler = _reconciler(tmp_path, fake_store)
    insight = await reconciler.submit(TRANSCRIPT)
    assert insight is not None
    assert reconciler.state is SessionState.READY
    assert reconciler.session.email_draft == insight.follow_up_email.body
    cached = SqliteSessionCache(str(tmp_path / "sessions.db")).load(USER)
    assert cached is not None
    assert cached.insight == insight

    await reconciler.flush()
    metrics = fake_store.metrics[USER]
    assert metrics["transcripts_analyzed"] == 1
    assert metrics["insights_generated"] == 1
    assert metrics["hours_saved"] >= 0
    [transcript] = fake_store.transcripts
    [stored_insight] = fake_store.insights
    assert transcript["content"] == TRANSCRIPT
    assert stored_insight["transcript_id"] == transcript["id"]


@pytest.mark.asyncio
async def test_hours_saved_uses_stated_duration(tmp_path: Path, fake_store: FakeStore) -> None:
    reconciler = _reconciler(tmp_path, fake_store)
    await reconciler.submit(STANDUP)
    await reconciler.flush()
    assert fake_store.metrics[USER]["hours_saved"] == 0.48


@pytest.mark.asyncio
async def test_duplicate_submit_is_rejected(tmp_path: Path, fake_store: FakeStore) -> None:
    """Summary: Verify a second submit during analysis is refused, not queued.

    Importance: One user action must cost one LLM call and one set of increments.
    Alternatives: Queue the second request.
    """

    provider = GatedProvider()
    reconciler = _reconciler(tmp_path, fake_store, provider)
    first = asyncio.create_task(reconciler.submit(TRANSCRIPT))
    await provider.started.wait()
    assert reconciler.state is SessionState.ANALYZING
    with pytest.raises(AnalysisInProgress):
        await reconciler.submit(TRANSCRIPT)
    provider.release.set()
    assert await first is not None
    await reconciler.flush()
    assert provider.calls == 1
    assert fake_store.metrics[USER]["transcripts_analyzed"] == 1


@pytest.mark.asyncio
async def test_rejected_transcript_leaves_session_empty(
    tmp_path: Path, fake_store: FakeStore
) -> None:
    reconciler = _reconciler(tmp_path, fake_store)
    with pytest.raises(AnalysisRejected):
        await reconciler.submit("Remember to water the plants and call the bank.")
    await reconciler.flush()
    assert reconciler.state is SessionState.EMPTY
    assert reconciler.session.insight is None
    assert SqliteSessionCache(str(tmp_path / "sessions.db")).load(USER) is None
    assert fake_store.requests == []


@pytest.mark.asyncio
async def test_failed_reanalysis_keeps_ready_session(
    tmp_path: Path, fake_store: FakeStore
) -> None:
    reconciler = _reconciler(tmp_path, fake_store)
    insight = await reconciler.submit(TRANSCRIPT)
    with pytest.raises(AnalysisRejected):
        await reconciler.submit("just one line of notes")
    assert reconciler.state is SessionState.READY
    assert reconciler.session.insight == insight


@pytest.mark.asyncio
async def test_background_failures_are_not_fatal(tmp_path: Path, fake_store: FakeStore) -> None:
    """Summary: Verify remote persistence failures keep the local session.

    Importance: Re-running the analysis after a storage hiccup would double the LLM cost.
    Alternatives: Roll the session back and ask the user to retry.
    """

    fake_store.fail("POST", "/api/transcripts")
    fake_store.fail("POST", "/api/metrics", status=None)
    reconciler = _reconciler(tmp_path, fake_store)
    insight = await reconciler.submit(TRANSCRIPT)
    await reconciler.flush()
    assert insight is not None
    assert reconciler.state is SessionState.READY
    assert fake_store.insights == []
    assert USER not in fake_store.metrics


@pytest.mark.asyncio
async def test_edit_email_draft_is_local_only(tmp_path: Path, fake_store: FakeStore) -> None:
    reconciler = _reconciler(tmp_path, fake_store)
    with pytest.raises(ValidationError):
        reconciler.edit_email_draft("too early")
    await reconciler.submit(TRANSCRIPT)
    await reconciler.flush()
    before = len(fake_store.requests)

    reconciler.edit_email_draft("Edited draft")
    assert reconciler.state is SessionState.EDITING
    assert len(fake_store.requests) == before
    cached = SqliteSessionCache(str(tmp_path / "sessions.db")).load(USER)
    assert cached is not None
    assert cached.email_draft == "Edited draft"
    reconciler.finish_editing()
    assert reconciler.state is SessionState.READY


@pytest.mark.asyncio
async def test_hydrate_restores_cached_session(tmp_path: Path, fake_store: FakeStore) -> None:
    """Summary: Verify a new reconciler picks up the cached session.

    Importance: Restarting the CLI must not lose the last analysis or an edited draft.
    Alternatives: Re-fetch the latest insight from the server.
    """

    first = _reconciler(tmp_path, fake_store)
    insight = await first.submit(TRANSCRIPT)
    await first.flush()

    second = _reconciler(tmp_path, fake_store)
    session = second.hydrate()
    assert second.state is SessionState.READY
    assert session.insight == insight

    second.edit_email_draft("Changed")
    third = _reconciler(tmp_path, fake_store)
    third.hydrate()
    assert third.state is SessionState.EDITING
    assert third.session.email_draft == "Changed"


def test_hydrate_discards_corrupt_cache(tmp_path: Path, fake_store: FakeStore) -> None:
    reconciler = _reconciler(tmp_path, fake_store)
    with sqlite3.connect(tmp_path / "sessions.db") as connection:
        connection.execute(
            "INSERT INTO session_cache (user_id, payload, saved_at) VALUES (?, ?, ?)",
            (USER, "{not json", "2026-01-01T00:00:00"),
        )
    assert reconciler.hydrate().is_empty()
    assert reconciler.state is SessionState.EMPTY
    assert SqliteSessionCache(str(tmp_path / "sessions.db")).load(USER) is None


@pytest.mark.asyncio
async def test_reset_clears_session_and_cache(tmp_path: Path, fake_store: FakeStore) -> None:
    reconciler = _reconciler(tmp_path, fake_store)
    await reconciler.submit(TRANSCRIPT)
    reconciler.reset()
    reconciler.reset()
    assert reconciler.state is SessionState.EMPTY
    assert reconciler.session.is_empty()
    assert SqliteSessionCache(str(tmp_path / "sessions.db")).load(USER) is None


@pytest.mark.asyncio
async def test_reset_during_analysis_discards_result(
    tmp_path: Path, fake_store: FakeStore
) -> None:
    """Summary: Verify an analysis finishing after reset is ignored.

    Importance: The in-flight call completes without resurrecting the cleared session.
    Alternatives: Cancel the analysis task on reset.
    """

    provider = GatedProvider()
    reconciler = _reconciler(tmp_path, fake_store, provider)
    pending = asyncio.create_task(reconciler.submit(TRANSCRIPT))
    await provider.started.wait()
    reconciler.reset()
    provider.release.set()
    assert await pending is None
    await reconciler.flush()
    assert reconciler.state is SessionState.EMPTY
    assert SqliteSessionCache(str(tmp_path / "sessions.db")).load(USER) is None
    assert fake_store.requests == []


@pytest.mark.asyncio
async def test_voice_summary_is_cached(tmp_path: Path, fake_store: FakeStore) -> None:
    reconciler = _reconciler(tmp_path, fake_store)
    await reconciler.submit(TRANSCRIPT)
    audio_url = await reconciler.generate_voice_summary()
    assert audio_url is not None
    assert audio_url.startswith("file://")
    cached = SqliteSessionCache(str(tmp_path / "sessions.db")).load(USER)
    assert cached is not None
    assert cached.audio_url == audio_url


def test_hydrate_survives_unreadable_cache_file(tmp_path: Path, fake_store: FakeStore) -> None:
    (tmp_path / "sessions.db").write_bytes(b"garbage, not sqlite\n" * 10)
    reconciler = _reconciler(tmp_path, fake_store)
    assert reconciler.hydrate().is_empty()
    assert reconciler.state is SessionState.EMPTY
