"""Summary: AI provider abstraction and implementations.

Importance: Centralizes LLM access for portability and auditability.
Alternatives: Call provider SDKs directly in each service.
"""

from __future__ import annotations

import json
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx

from meetingpilot.config import AppConfig
from meetingpilot.errors import RemoteUnavailable

TRANSCRIPT_MARKER = "Meeting transcript:\n"
NOT_A_TRANSCRIPT = "not_a_transcript"
_SPEAKER_RE = re.compile(r"^\s*(?:\[[^\]]*\]\s*)?([A-Za-z][\w .'-]{0,39}):\s*\S", re.MULTILINE)


class AiProvider(ABC):
    """Summary: Abstract interface for AI text generation.

    Importance: Allows switching between local and cloud LLMs without refactors.
    Alternatives: Use a single vendor SDK and accept lock-in risk.
    """

    @abstractmethod
    async def generate_text(self, prompt: str, purpose: str) -> tuple[str, int]:
        """Summary: Generate a response for a prompt.

        Importance: Standardizes AI outputs for downstream services.
        Alternatives: Return provider-specific response objects directly.
        """


class MockAiProvider(AiProvider):
    """Summary: Deterministic AI provider for local testing.

    Importance: Enables offline workflows and repeatable tests.
    Alternatives: Use a small local LLM for all development tasks.
    """

    async def generate_text(self, prompt: str, purpose: str) -> tuple[str, int]:
        """Summary: Return a canned analysis for the transcript embedded in the prompt.

        Importance: Allows core flows without external dependencies.
        Alternatives: Use fixture-based responses loaded from files.
        """

        started = time.time()
        transcript = prompt.split(TRANSCRIPT_MARKER, 1)[-1]
        if not _looks_like_conversation(transcript):
            response = json.dumps({"error": NOT_A_TRANSCRIPT})
        else:
            response = json.dumps(_mock_analysis(transcript))
        latency_ms = int((time.time() - started) * 1000)
        return response, latency_ms


class OllamaProvider(AiProvider):
    """Summary: AI provider that targets a local Ollama server.

    Importance: Supports privacy-sensitive workflows on local hardware.
    Alternatives: Use llama.cpp directly with a Python binding.
    """

    def __init__(
        self, base_url: str, model: str, transport: httpx.AsyncBaseTransport | None = None
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._transport = transport

    async def generate_text(self, prompt: str, purpose: str) -> tuple[str, int]:
        """Summary: Generate text using the Ollama HTTP API.

        Importance: Enables local inference for transcript analysis.
        Alternatives: Use Ollama's CLI and parse its output.
        """

        payload = {"model": self._model, "prompt": prompt, "stream": False, "format": "json"}
        started = time.time()
        raw = await _post_json(
            f"{self._base_url}/api/generate", payload, {}, "Ollama", self._transport
        )
        latency_ms = int((time.time() - started) * 1000)
        return raw.get("response", ""), latency_ms


class OpenAiProvider(AiProvider):
    """Summary: AI provider using OpenAI's chat completion API.

    Importance: Enables higher-quality analysis when configured.
    Alternatives: Use other cloud providers or a local model.
    """

    def __init__(
        self, api_key: str, model: str, transport: httpx.AsyncBaseTransport | None = None
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._transport = transport

    async def generate_text(self, prompt: str, purpose: str) -> tuple[str, int]:
        """Summary: Generate text using OpenAI chat completions.

        Importance: Enables cloud-grade reasoning for transcript analysis.
        Alternatives: Use the responses API or a different provider.
        """

        payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": f"You are MeetingPilot. Task: {purpose}."},
                {"role": "user", "content": prompt},
            ],
            "temperature": 0.3,
            "max_tokens": 2000,
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}
        started = time.time()
        raw = await _post_json(
            "https://api.openai.com/v1/chat/completions", payload, headers, "OpenAI", self._transport
        )
        latency_ms = int((time.time() - started) * 1000)
        try:
            content = raw["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise RemoteUnavailable("OpenAI returned no completion") from exc
        return content, latency_ms


class GeminiProvider(AiProvider):
    """Summary: AI provider using the Gemini generateContent API.

    Importance: Gives access to hosted Gemini models with long context windows.
    Alternatives: Use the google-generativeai SDK.
    """

    def __init__(
        self, api_key: str, model: str, transport: httpx.AsyncBaseTransport | None = None
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._transport = transport

    async def generate_text(self, prompt: str, purpose: str) -> tuple[str, int]:
        url = (
            "https://generativelanguage.googleapis.com/v1beta/models/"
            f"{self._model}:generateContent"
        )
        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        headers = {"X-goog-api-key": self._api_key}
        started = time.time()
        raw = await _post_json(url, payload, headers, "Gemini", self._transport)
        latency_ms = int((time.time() - started) * 1000)
        try:
            content = raw["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise RemoteUnavailable("Gemini returned no candidates") from exc
        return content, latency_ms


@dataclass(frozen=True)
class AiProviderFactory:
    """Summary: Factory for selecting AI providers from configuration.

    Importance: Keeps provider selection logic centralized.
    Alternatives: Wire providers manually at the application entrypoint.
    """

    config: AppConfig

    def build(self) -> AiProvider:
        """Summary: Construct the configured AI provider.

        Importance: Ensures consistent provider selection across the server and the CLI.
        Alternatives: Use dependency injection frameworks.
        """

        if self.config.ai_provider == "ollama":
            return OllamaProvider(self.config.ollama_url, self.config.ollama_model)
        if self.config.ai_provider == "openai":
            if not self.config.openai_api_key:
                raise ValueError("OPENAI_API_KEY is required for openai provider")
            return OpenAiProvider(self.config.openai_api_key, self.config.openai_model)
        if self.config.ai_provider == "gemini":
            if not self.config.gemini_api_key:
                raise ValueError("GEMINI_API_KEY is required for gemini provider")
            return GeminiProvider(self.config.gemini_api_key, self.config.gemini_model)
        return MockAiProvider()


def estimate_tokens(text: str) -> int:
    """Summary: Estimate tokens from text length.

    Importance: Provides a rough metric for AI usage logging.
    Alternatives: Use provider token counters or tiktoken.
    """

    return max(1, len(text) // 4)


async def _post_json(
    url: str,
    payload: dict,
    headers: dict[str, str],
    provider: str,
    transport: httpx.AsyncBaseTransport | None,
) -> dict:
    """Summary: POST a JSON payload to a provider and decode the JSON reply."""

    try:
        async with httpx.AsyncClient(timeout=60, transport=transport) as client:
            response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()
            return response.json()
    except httpx.HTTPError as exc:
        raise RemoteUnavailable(f"{provider} request failed: {exc}") from exc
    except ValueError as exc:
        raise RemoteUnavailable(f"{provider} returned invalid JSON") from exc


def _looks_like_conversation(transcript: str) -> bool:
    speakers = {match.group(1).strip().lower() for match in _SPEAKER_RE.finditer(transcript)}
    return len(speakers) >= 2


def _mock_analysis(transcript: str) -> dict:
    lowered = transcript.lower()
    if any(word in lowered for word in ("sprint", "development", "features", "bugs")):
        return {
            "meeting_title": "Sprint Planning & Retrospective",
            "summary": (
                "Reviewed the last sprint and planned the next one. "
                "Discussed technical debt, bug fixes, and the authentication work."
            ),
            "decisions": [
                {
                    "text": "Prioritize user authentication over new dashboard features",
                    "made_by": "Tech Lead",
                    "timestamp": "2:15 PM",
                },
                {
                    "text": "Allocate 30% of sprint capacity to bug fixes",
                    "made_by": "Team Consensus",
                    "timestamp": "2:30 PM",
                },
            ],
            "action_items": [
                {
                    "id": 1,
                    "task": "Implement OAuth 2.0 authentication system",
                    "owner": "Alex",
                    "due": "2025-01-20",
                    "priority": "High",
                    "context": "Include Google and GitHub login",
                    "confidence": 0.9,
                },
                {
                    "id": 2,
                    "task": "Fix critical payment processing bug",
                    "owner": "Emma",
                    "due": "2025-01-10",
                    "priority": "High",
                    "context": "Webhook handling causes failed transactions",
                    "confidence": 0.95,
                },
                {
                    "id": 3,
                    "task": "Update API documentation",
                    "owner": "Jordan",
                    "due": "2025-01-18",
                    "priority": "Medium",
                    "context": "Include new endpoints and authentication requirements",
                    "confidence": 0.8,
                },
            ],
            "follow_up_email": {
                "subject": "Sprint Planning Summary - Authentication Focus",
                "body": (
                    "Hi team,\n\nThanks for the productive planning session. "
                    "Alex owns the OAuth work, Emma the payment bug, and Jordan the API docs.\n\n"
                    "Cheers"
                ),
            },
        }
    return {
        "meeting_title": "Team Sync",
        "summary": "The team reviewed progress and agreed on next steps before the next check-in.",
        "decisions": [
            {"text": "Reconvene on Friday for a progress check", "made_by": "Team", "timestamp": "End of meeting"}
        ],
        "action_items": [
            {
                "id": 1,
                "task": "Share meeting notes with the team",
                "owner": "Unassigned",
                "due": "TBD",
                "priority": "Medium",
                "context": "Keep everyone aligned before Friday",
                "confidence": 0.7,
            }
        ],
        "follow_up_email": {
            "subject": "Team Sync Follow-up",
            "body": "Hi team,\n\nThanks for the sync today. We'll reconvene on Friday.\n\nBest regards",
        },
    }
