"""Pytest configuration shared by unit and integration tests"""

import sys
from pathlib import Path

import pytest

# Make the src layout importable without an editable install
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(project_root / "src"))


@pytest.fixture(autouse=True)
def _clean_coachbot_env(monkeypatch):
    """Keep a developer's shell environment out of config tests."""
    for key in (
        "GEMINI_API_KEY",
        "GEMINI_MODEL_STANDARD",
        "GEMINI_MODEL_REDUCED",
        "OPENROUTER_API_KEY",
        "OPENROUTER_MODEL",
        "OPENROUTER_MODEL_FALLBACKS",
        "OPENROUTER_REFERRER",
        "GEM_SYSTEM_INSTRUCTION",
        "COACHBOT_PERSONA_FILE",
        "COACHBOT_TIMEOUT_MS",
        "COACHBOT_TIMEZONE",
        "COACHBOT_HISTORY_LENGTH",
        "COACHBOT_HISTORY_TTL",
        "COACHBOT_DAILY_THRESHOLD",
        "COACHBOT_DAILY_CAP",
        "COACHBOT_IMAGE_BATCH_DELAY_MS",
        "DATA_DIR",
    ):
        monkeypatch.delenv(key, raising=False)
