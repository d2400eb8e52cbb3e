"""Summary: Tests for configuration loading.

Importance: Ensures defaults, .env, and environment overrides behave correctly.
Alternatives: Validate configuration manually during runtime.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

import pytest

from meetingpilot.config import AppConfig, load_defaults, load_dotenv

REPO_DEFAULTS = Path(__file__).resolve().parents[1] / "config" / "defaults.json"

_ENV_VARS = (
    "MEETINGPILOT_DB_PATH",
    "MEETINGPILOT_SESSION_CACHE_PATH",
    "MEETINGPILOT_API_URL",
    "MEETINGPILOT_API_PORT",
    "MEETINGPILOT_API_TIMEOUT",
    "MEETINGPILOT_AI_PROVIDER",
    "MEETINGPILOT_SPEECH_PROVIDER",
    "MEETINGPILOT_DEFAULT_USER_EMAIL",
    "GEMINI_API_KEY",
)


def _use_repo_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Summary: Run from a temporary directory holding a copy of the shipped defaults.

    Importance: Keeps a developer's .env out of the assertions.
    Alternatives: Point AppConfig at an explicit defaults path.
    """

    (tmp_path / "config").mkdir()
    shutil.copy(REPO_DEFAULTS, tmp_path / "config" / "defaults.json")
    monkeypatch.chdir(tmp_path)
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_load_defaults_reads_json(tmp_path: Path) -> None:
    """Summary: Verify defaults are parsed from JSON.

    Importance: Confirms config file is the source of truth for variables.
    Alternatives: Hardcode defaults in the test.
    """

    defaults_path = tmp_path / "defaults.json"
    defaults_path.write_text("{\"db_path\": \"test.db\"}", encoding="utf-8")
    defaults = load_defaults(defaults_path)
    assert defaults["db_path"] == "test.db"


def test_load_defaults_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_defaults(tmp_path / "missing.json")


def test_load_dotenv_sets_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Summary: Ensure .env values populate environment variables.

    Importance: Validates local secret loading without external tools.
    Alternatives: Assume OS environment is always set.
    """

    env_path = tmp_path / ".env"
    env_path.write_text(
        "# comment\nMEETINGPILOT_AI_PROVIDER=ollama\nGEMINI_API_KEY=\"secret\"\n",
        encoding="utf-8",
    )
    monkeypatch.delenv("MEETINGPILOT_AI_PROVIDER", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    load_dotenv(env_path)
    assert os.getenv("MEETINGPILOT_AI_PROVIDER") == "ollama"
    assert os.getenv("GEMINI_API_KEY") == "secret"


def test_app_config_uses_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Summary: Verify AppConfig honors defaults when env is absent.

    Importance: Confirms config file remains the baseline for variables.
    Alternatives: Inline defaults directly in the AppConfig class.
    """

    _use_repo_defaults(tmp_path, monkeypatch)
    config = AppConfig.from_env()
    assert config.db_path == "meetingpilot.db"
    assert config.api_base_url == "http://127.0.0.1:8000"
    assert config.api_port == 8000
    assert config.api_timeout == 30.0
    assert config.ai_provider == "mock"
    assert config.model_name == "mock"
    assert config.gemini_api_key is None
    assert config.default_user_email == "local@meetingpilot"


def test_app_config_env_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Summary: Verify environment variables override the defaults file.

    Importance: Lets deployments change storage and providers without editing files.
    Alternatives: Require a separate config file per environment.
    """

    _use_repo_defaults(tmp_path, monkeypatch)
    monkeypatch.setenv("MEETINGPILOT_DB_PATH", "other.db")
    monkeypatch.setenv("MEETINGPILOT_API_PORT", "9001")
    monkeypatch.setenv("MEETINGPILOT_AI_PROVIDER", "gemini")
    monkeypatch.setenv("GEMINI_API_KEY", "key")
    config = AppConfig.from_env()
    assert config.db_path == "other.db"
    assert config.api_port == 9001
    assert config.gemini_api_key == "key"
    assert config.model_name == "gemini-2.0-flash"
