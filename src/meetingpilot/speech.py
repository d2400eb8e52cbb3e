"""Summary: Text-to-speech providers for voice summaries.

Importance: Lets users listen to a meeting summary instead of reading it.
Alternatives: Use the operating system's speech synthesizer.
"""

from __future__ import annotations

import hashlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

import httpx

from meetingpilot.config import AppConfig
from meetingpilot.errors import SpeechUnavailable, ValidationError

logger = logging.getLogger(__name__)

MAX_SPEECH_CHARS = 5000


class SpeechProvider(ABC):
    """Summary: Abstract interface for speech synthesis.

    Importance: Keeps the voice vendor swappable.
    Alternatives: Call one vendor API from the reconciler.
    """

    @abstractmethod
    async def synthesize(self, text: str) -> bytes:
        """Summary: Return encoded audio for the text."""


class MockSpeechProvider(SpeechProvider):
    """Summary: Offline speech provider returning placeholder audio.

    Importance: Keeps the voice summary flow usable without an API key.
    Alternatives: Skip voice summaries when no key is configured.
    """

    async def synthesize(self, text: str) -> bytes:
        return b"ID3" + hashlib.sha256(text.encode("utf-8")).digest()


class ElevenLabsProvider(SpeechProvider):
    """Summary: Speech provider backed by the ElevenLabs text-to-speech API."""

    def __init__(
        self,
        api_key: str,
        voice_id: str,
        model_id: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._voice_id = voice_id
        self._model_id = model_id
        self._transport = transport

    async def synthesize(self, text: str) -> bytes:
        """Summary: Request MP3 audio for the text.

        Importance: Produces the audio the voice summary plays.
        Alternatives: Stream audio chunks to the caller.
        """

        payload = {
            "text": text,
            "model_id": self._model_id,
            "voice_settings": {"stability": 0.5, "similarity_boost": 0.5},
        }
        headers = {"Accept": "audio/mpeg", "xi-api-key": self._api_key}
        url = f"https://api.elevenlabs.io/v1/text-to-speech/{self._voice_id}"
        try:
            async with httpx.AsyncClient(timeout=60, transport=self._transport) as client:
                response = await client.post(url, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise SpeechUnavailable(f"ElevenLabs request failed: {exc}") from exc
        return response.content


def build_speech_provider(config: AppConfig) -> SpeechProvider:
    """Summary: Construct the configured speech provider."""

    if config.speech_provider == "elevenlabs":
        if not config.elevenlabs_api_key:
            raise ValueError("ELEVENLABS_API_KEY is required for elevenlabs provider")
        return ElevenLabsProvider(
            config.elevenlabs_api_key, config.elevenlabs_voice_id, config.elevenlabs_model
        )
    return MockSpeechProvider()


def validate_speech_text(text: str) -> str:
    cleaned = (text or "").strip()
    if not cleaned:
        raise ValidationError("Text is required")
    if len(cleaned) > MAX_SPEECH_CHARS:
        raise ValidationError(f"Text is too long. Maximum {MAX_SPEECH_CHARS} characters allowed.")
    return cleaned


@dataclass(frozen=True)
class VoiceSummarizer:
    """Summary: Turns summary text into a playable audio file.

    Importance: Returns a handle the session can keep across reloads.
    Alternatives: Keep audio only in memory.
    """

    provider: SpeechProvider
    audio_dir: Path

    async def speak(self, text: str) -> str:
        """Summary: Synthesize text and return a file URI for the audio.

        Importance: The URI is stored on the session as its audio handle.
        Alternatives: Return raw bytes and let callers store them.
        """

        cleaned = validate_speech_text(text)
        audio = await self.provider.synthesize(cleaned)
        if not audio:
            raise SpeechUnavailable("Speech provider returned no audio")
        self.audio_dir.mkdir(parents=True, exist_ok=True)
        name = hashlib.sha256(cleaned.encode("utf-8")).hexdigest()[:16]
        path = (self.audio_dir / f"summary-{name}.mp3").resolve()
        path.write_bytes(audio)
        logger.info("Wrote voice summary to %s.", path)
        return path.as_uri()
