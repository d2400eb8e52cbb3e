"""Summary: Session reconciler for the analyze-transcript workflow.

Importance: Keeps the in-memory session, the local cache, and the remote store consistent.
Alternatives: Let the CLI juggle cache writes and remote calls itself.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from enum import Enum
from typing import Awaitable

from meetingpilot.analysis import TranscriptAnalyzer
from meetingpilot.errors import AnalysisInProgress, SpeechUnavailable, ValidationError
from meetingpilot.gateway import RemoteStoreGateway
from meetingpilot.metrics import MetricsAggregator
from meetingpilot.models import Insight, Session
from meetingpilot.speech import VoiceSummarizer
from meetingpilot.storage.session_cache import SessionCache
from meetingpilot.timesaved import estimate_hours_saved

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Summary: Lifecycle states of one analysis session."""

    EMPTY = "empty"
    ANALYZING = "analyzing"
    READY = "ready"
    EDITING = "editing"


class SessionReconciler:
    """Summary: Owns one user's session and its analysis lifecycle.

    Importance: Guarantees at most one analysis in flight and keeps the local state
    authoritative once an analysis has succeeded.
    Alternatives: Persist the session remotely and treat the server as the source of truth.
    """

    def __init__(
        self,
        user_id: str,
        cache: SessionCache,
        analyzer: TranscriptAnalyzer,
        gateway: RemoteStoreGateway,
        metrics: MetricsAggregator,
        voice: VoiceSummarizer | None = None,
        user_name: str | None = None,
        user_email: str | None = None,
    ) -> None:
        self.user_id = user_id
        self.user_name = user_name
        self.user_email = user_email
        self._cache = cache
        self._analyzer = analyzer
        self._gateway = gateway
        self._metrics = metrics
        self._voice = voice
        self._session = Session()
        self._state = SessionState.EMPTY
        self._generation = 0
        self._background: set[asyncio.Task] = set()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> Session:
        return self._session

    def hydrate(self) -> Session:
        """Summary: Restore the cached session for the user.

        Importance: A restart lands the user back on their last analysis and draft.
        Alternatives: Start every run with an empty session.
        """

        try:
            cached = self._cache.load(self.user_id)
        except (ValueError, KeyError, TypeError, sqlite3.DatabaseError) as exc:
            logger.warning("Discarding unreadable cached session for %s: %s", self.user_id, exc)
            self._cache.clear(self.user_id)
            cached = None
        if cached is None or cached.insight is None:
            self._session = Session()
            self._state = SessionState.EMPTY
        else:
            self._session = cached
            edited = cached.email_draft != cached.insight.follow_up_email.body
            self._state = SessionState.EDITING if edited else SessionState.READY
        return self._session

    async def submit(self, transcript: str, user_name: str | None = None) -> Insight | None:
        """Summary: Analyze a transcript and make its insight the current session.

        Importance: The single entrypoint that spends an LLM call; duplicate submits are refused.
        Alternatives: Queue submits and run them one after another.

        Returns None when the session was reset while the analysis was running.
        """

        if not transcript or not transcript.strip():
            raise ValidationError("Transcript is required")
        if self._state is SessionState.ANALYZING:
            raise AnalysisInProgress("An analysis is already running for this session")

        previous_state, previous_session = self._state, self._session
        self._generation += 1
        generation = self._generation
        self._state = SessionState.ANALYZING
        try:
            insight = await self._analyzer.analyze(
                transcript, user_name or self.user_name, self.user_email
            )
        except Exception as exc:
            if generation != self._generation:
                logger.info("Ignoring failed analysis for %s after reset: %s", self.user_id, exc)
                return None
            self._state, self._session = previous_state, previous_session
            raise

        if generation != self._generation:
            logger.info("Discarding analysis for %s that finished after a reset.", self.user_id)
            return None

        session = Session(
            transcript=transcript,
            insight=insight,
            email_draft=insight.follow_up_email.body,
        )
        self._session = self._cache.save(self.user_id, session)
        self._state = SessionState.READY
        logger.info("Analyzed transcript for %s: %s", self.user_id, insight.title)
        self._spawn(self._persist_analysis(transcript, insight))
        return insight

    def edit_email_draft(self, text: str) -> Session:
        """Summary: Replace the follow-up email draft.

        Importance: Edits are cached on every change and never pushed to the remote store.
        Alternatives: Sync draft edits to the server.
        """

        self._require_insight()
        self._session = self._cache.save(self.user_id, self._session.with_updates(email_draft=text))
        self._state = SessionState.EDITING
        return self._session

    def finish_editing(self) -> Session:
        self._require_insight()
        self._state = SessionState.READY
        return self._session

    def reset(self) -> None:
        """Summary: Discard the session and its cache entry.

        Importance: An analysis still in flight finishes but its result is ignored.
        Alternatives: Cancel the in-flight analysis.
        """

        self._generation += 1
        self._session = Session()
        self._state = SessionState.EMPTY
        self._cache.clear(self.user_id)
        logger.info("Reset session for %s.", self.user_id)

    async def generate_voice_summary(self) -> str | None:
        """Summary: Speak the insight summary and keep the audio handle on the session."""

        insight = self._require_insight()
        if self._voice is None:
            raise SpeechUnavailable("Voice summaries are not configured")
        generation = self._generation
        audio_url = await self._voice.speak(insight.summary)
        if generation != self._generation:
            return None
        self._session = self._cache.save(
            self.user_id, self._session.with_updates(audio_url=audio_url)
        )
        return audio_url

    async def flush(self) -> None:
        """Summary: Wait for background persistence to finish."""

        while self._background:
            await asyncio.gather(*list(self._background))

    def _require_insight(self) -> Insight:
        insight = self._session.insight
        if self._state not in (SessionState.READY, SessionState.EDITING) or insight is None:
            raise ValidationError("Analyze a transcript first")
        return insight

    def _spawn(self, work: Awaitable[None]) -> None:
        task = asyncio.ensure_future(work)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _persist_analysis(self, transcript: str, insight: Insight) -> None:
        """Summary: Store the transcript and insight and bump the usage counters.

        Importance: Failures here are logged only; the local session stays authoritative.
        Alternatives: Roll the session back when persistence fails.
        """

        hours = estimate_hours_saved(transcript)
        results = await asyncio.gather(
            self._store_transcript(transcript, insight),
            self._metrics.increment(self.user_id, "transcripts_analyzed", 1),
            self._metrics.increment(self.user_id, "insights_generated", 1),
            self._metrics.add_hours_saved(self.user_id, hours),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Exception):
                logger.warning("Background persistence failed for %s: %s", self.user_id, result)

    async def _store_transcript(self, transcript: str, insight: Insight) -> None:
        record = await self._gateway.create_transcript(
            self.user_id,
            transcript,
            title=insight.title,
            summary=insight.summary,
            key_points=[decision.text for decision in insight.decisions],
            action_items=[item.task for item in insight.action_items],
            session_state={"email_draft": insight.follow_up_email.body},
        )
        await self._gateway.create_insight(self.user_id, insight, transcript_id=record.id)
