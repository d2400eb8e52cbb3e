"""Summary: Transcript analysis on top of the AI provider.

Importance: Turns free-form LLM output into a validated Insight or a typed failure.
Alternatives: Let each caller prompt the model and parse JSON itself.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass

from pydantic import ValidationError as SchemaError

from meetingpilot.ai import NOT_A_TRANSCRIPT, TRANSCRIPT_MARKER, AiProvider, estimate_tokens
from meetingpilot.errors import AnalysisRejected, RemoteUnavailable, ValidationError
from meetingpilot.models import Insight
from meetingpilot.schemas import InsightSchema

logger = logging.getLogger(__name__)

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

_RESPONSE_FORMAT = """{
  "meeting_title": "string",
  "summary": "string",
  "decisions": [{"text": "string", "made_by": "string", "timestamp": "string"}],
  "action_items": [
    {
      "id": 1,
      "task": "string",
      "owner": "string",
      "due": "YYYY-MM-DD or TBD",
      "priority": "High|Medium|Low",
      "context": "string",
      "confidence": 0.8
    }
  ],
  "follow_up_email": {"subject": "string", "body": "string"}
}"""


@dataclass(frozen=True)
class TranscriptAnalyzer:
    """Summary: Analyzes a meeting transcript into an Insight.

    Importance: The single place that knows the analysis prompt and its JSON contract.
    Alternatives: Use provider-native structured output features.
    """

    ai_provider: AiProvider
    model_name: str = "mock"

    async def analyze(
        self, transcript: str, user_name: str | None = None, user_email: str | None = None
    ) -> Insight:
        """Summary: Run the analysis and validate the result.

        Importance: Callers get an Insight, AnalysisRejected, or RemoteUnavailable, nothing else.
        Alternatives: Return the raw provider text and let callers parse it.
        """

        if not transcript or not transcript.strip():
            raise ValidationError("Transcript is required")
        prompt = build_prompt(transcript, user_name, user_email)
        response_text, latency_ms = await self.ai_provider.generate_text(
            prompt, purpose="transcript_analysis"
        )
        logger.info(
            "Analyzed transcript with %s in %sms (~%s tokens).",
            self.model_name,
            latency_ms,
            estimate_tokens(response_text),
        )
        return parse_insight(response_text)


def build_prompt(transcript: str, user_name: str | None, user_email: str | None) -> str:
    """Summary: Build the analysis prompt for a user.

    Importance: Signs the follow-up email as the requesting user.
    Alternatives: Use a fixed system prompt without user context.
    """

    user = ""
    if user_name:
        user += f" named {user_name}"
    if user_email:
        user += f" ({user_email})"
    signature = f' and sign emails with "{user_name}"' if user_name else ""
    return (
        f"You are an AI assistant that analyzes meeting transcripts for a user{user}.\n\n"
        "First, determine if the provided text is actually a meeting transcript with real "
        "conversations between people. If it is not (random text, instructions, single-person "
        f'notes), return exactly: {{"error": "{NOT_A_TRANSCRIPT}"}}\n\n'
        "Otherwise return ONLY valid JSON in this format (use this user as the sender of the "
        f"follow-up email{signature}):\n\n"
        f"{_RESPONSE_FORMAT}\n\n"
        f"{TRANSCRIPT_MARKER}{transcript}"
    )


def parse_insight(response_text: str) -> Insight:
    """Summary: Extract and validate the insight JSON from model output.

    Importance: Models often wrap JSON in prose or code fences.
    Alternatives: Require the model to return bare JSON.
    """

    match = _JSON_OBJECT_RE.search(response_text or "")
    if not match:
        raise RemoteUnavailable("Analyzer returned no JSON object")
    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise RemoteUnavailable("Analyzer returned invalid JSON") from exc
    if isinstance(payload, dict) and payload.get("error") == NOT_A_TRANSCRIPT:
        raise AnalysisRejected("Input is not a meeting transcript")
    try:
        return InsightSchema.model_validate(payload).to_insight()
    except SchemaError as exc:
        raise RemoteUnavailable(f"Analyzer returned an incomplete insight: {exc}") from exc
