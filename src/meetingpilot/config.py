"""Summary: Application configuration for MeetingPilot.

Importance: Centralizes environment, .env, and config defaults for consistent behavior.
Alternatives: Use a dedicated settings library like Pydantic Settings.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from dataclasses import dataclass


@dataclass(frozen=True)
class AppConfig:
    """Summary: Holds configuration values for providers, storage, and the API client.

    Importance: Ensures the server and the client derive settings from a single source of truth.
    Alternatives: Store settings in a shared config file and parse at startup.
    """

    db_path: str
    session_cache_path: str
    api_base_url: str
    api_host: str
    api_port: int
    api_key: str
    api_timeout: float
    ai_provider: str
    openai_api_key: str | None
    openai_model: str
    ollama_url: str
    ollama_model: str
    gemini_api_key: str | None
    gemini_model: str
    speech_provider: str
    elevenlabs_api_key: str | None
    elevenlabs_voice_id: str
    elevenlabs_model: str
    audio_dir: str
    default_user_name: str
    default_user_email: str

    @staticmethod
    def from_env() -> "AppConfig":
        """Summary: Build configuration from defaults, .env, and environment.

        Importance: Keeps all variables defined in config defaults while allowing overrides.
        Alternatives: Parse only environment variables without a defaults file.
        """

        defaults = load_defaults(Path("config") / "defaults.json")
        load_dotenv(Path(".env"))
        return AppConfig(
            db_path=os.getenv("MEETINGPILOT_DB_PATH", defaults["db_path"]),
            session_cache_path=os.getenv(
                "MEETINGPILOT_SESSION_CACHE_PATH", defaults["session_cache_path"]
            ),
            api_base_url=os.getenv("MEETINGPILOT_API_URL", defaults["api_base_url"]),
            api_host=os.getenv("MEETINGPILOT_API_HOST", defaults["api_host"]),
            api_port=int(os.getenv("MEETINGPILOT_API_PORT", defaults["api_port"])),
            api_key=os.getenv("MEETINGPILOT_API_KEY", defaults["api_key"]),
            api_timeout=float(os.getenv("MEETINGPILOT_API_TIMEOUT", defaults["api_timeout"])),
            ai_provider=os.getenv("MEETINGPILOT_AI_PROVIDER", defaults["ai_provider"]),
            openai_api_key=os.getenv("OPENAI_API_KEY") or defaults["openai_api_key"] or None,
            openai_model=os.getenv("OPENAI_MODEL", defaults["openai_model"]),
            ollama_url=os.getenv("OLLAMA_URL", defaults["ollama_url"]),
            ollama_model=os.getenv("OLLAMA_MODEL", defaults["ollama_model"]),
            gemini_api_key=os.getenv("GEMINI_API_KEY") or defaults["gemini_api_key"] or None,
            gemini_model=os.getenv("GEMINI_MODEL", defaults["gemini_model"]),
            speech_provider=os.getenv(
                "MEETINGPILOT_SPEECH_PROVIDER", defaults["speech_provider"]
            ),
            elevenlabs_api_key=os.getenv("ELEVENLABS_API_KEY")
            or defaults["elevenlabs_api_key"]
            or None,
            elevenlabs_voice_id=os.getenv(
                "ELEVENLABS_VOICE_ID", defaults["elevenlabs_voice_id"]
            ),
            elevenlabs_model=os.getenv("ELEVENLABS_MODEL", defaults["elevenlabs_model"]),
            audio_dir=os.getenv("MEETINGPILOT_AUDIO_DIR", defaults["audio_dir"]),
            default_user_name=os.getenv(
                "MEETINGPILOT_DEFAULT_USER_NAME", defaults["default_user_name"]
            ),
            default_user_email=os.getenv(
                "MEETINGPILOT_DEFAULT_USER_EMAIL", defaults["default_user_email"]
            ),
        )

    @property
    def model_name(self) -> str:
        """Summary: Name of the model used by the configured AI provider."""

        if self.ai_provider == "openai":
            return self.openai_model
        if self.ai_provider == "ollama":
            return self.ollama_model
        if self.ai_provider == "gemini":
            return self.gemini_model
        return "mock"


def load_defaults(path: Path) -> dict[str, str]:
    """Summary: Load configuration defaults from JSON.

    Importance: Ensures all variables exist in a single config file.
    Alternatives: Inline defaults in the AppConfig initializer.
    """

    if not path.exists():
        raise FileNotFoundError(f"Defaults file not found: {path}")
    return json.loads(path.read_text(encoding="utf-8"))


def load_dotenv(path: Path) -> None:
    """Summary: Load key-value pairs from a .env file into the environment.

    Importance: Keeps API keys out of code while supporting local workflows.
    Alternatives: Use python-dotenv or OS-specific secret stores.
    """

    if not path.exists():
        return
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip().strip('"'))
