"""Typed configuration loaded from the environment and an optional persona file."""

import json
import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_STANDARD_MODEL = "gemini-2.5-flash"
DEFAULT_GEMINI_REDUCED_MODEL = "gemini-2.5-flash-lite"
DEFAULT_OPENROUTER_MODEL = "openrouter/aurora-alpha"
DEFAULT_OPENROUTER_FALLBACKS = "meta-llama/llama-3.2-3b-instruct:free"
DEFAULT_TIMEZONE = "Asia/Taipei"


class ConfigError(ValueError):
    """Raised when configuration values are invalid."""


@dataclass(frozen=True)
class PersonaConfig:
    """The bot persona as authored in the persona JSON file."""

    name: str = ""
    role: str = ""
    tone: str = ""
    rules: Tuple[str, ...] = ()
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PersonaConfig":
        if not isinstance(data, dict):
            raise ConfigError("Persona document must be a JSON object")

        rules = data.get("rules", [])
        if isinstance(rules, str):
            rules = [rules]
        if not isinstance(rules, list) or not all(isinstance(r, str) for r in rules):
            raise ConfigError("Persona 'rules' must be a list of strings")

        for key in ("name", "role", "tone"):
            if not isinstance(data.get(key, ""), str):
                raise ConfigError(f"Persona '{key}' must be a string")

        known = {"name", "role", "tone", "rules"}
        return cls(
            name=data.get("name", ""),
            role=data.get("role", ""),
            tone=data.get("tone", ""),
            rules=tuple(rules),
            extra={k: v for k, v in data.items() if k not in known},
        )


def render_persona(persona: PersonaConfig) -> str:
    """Render a persona into the system instruction sent to every provider."""
    lines = []
    if persona.name:
        lines.append(f"你的名字是{persona.name}。")
    if persona.role:
        lines.append(persona.role)
    if persona.tone:
        lines.append(f"說話風格：{persona.tone}")
    if persona.rules:
        lines.append("請遵守以下規則：")
        lines.extend(f"{i}. {rule}" for i, rule in enumerate(persona.rules, 1))
    for key in sorted(persona.extra):
        value = persona.extra[key]
        if not isinstance(value, str):
            value = json.dumps(value, ensure_ascii=False)
        lines.append(f"{key}：{value}")
    return "\n".join(lines)


@dataclass(frozen=True)
class BotConfig:
    """Read-only settings consumed by the bot components."""

    gemini_api_key: Optional[str] = None
    gemini_standard_model: str = DEFAULT_GEMINI_STANDARD_MODEL
    gemini_reduced_model: str = DEFAULT_GEMINI_REDUCED_MODEL
    openrouter_api_key: Optional[str] = None
    openrouter_models: Tuple[str, ...] = (
        DEFAULT_OPENROUTER_MODEL,
        DEFAULT_OPENROUTER_FALLBACKS,
    )
    openrouter_referrer: str = "https://github.com/coachbot"
    persona: str = ""
    timeout_seconds: float = 30.0
    timezone: str = DEFAULT_TIMEZONE
    history_length: int = 6
    history_ttl_seconds: float = 30 * 60
    daily_threshold: int = 240
    daily_cap: int = 250
    image_batch_delay_seconds: float = 1.5
    data_dir: Optional[str] = None

    def __post_init__(self):
        if self.history_length <= 0:
            raise ConfigError("History length must be positive")
        if self.history_ttl_seconds <= 0:
            raise ConfigError("History TTL must be positive")
        if self.timeout_seconds <= 0:
            raise ConfigError("Provider timeout must be positive")
        if not 0 < self.daily_threshold < self.daily_cap:
            raise ConfigError(
                f"Daily threshold ({self.daily_threshold}) must be positive and "
                f"below the daily cap ({self.daily_cap})"
            )


def merge_model_list(preferred: str, fallbacks: str) -> Tuple[str, ...]:
    """Preferred model first, then comma-separated fallbacks, de-duplicated."""
    models: List[str] = []
    for candidate in [preferred, *fallbacks.split(",")]:
        candidate = candidate.strip()
        if candidate and candidate not in models:
            models.append(candidate)
    return tuple(models)


def load_persona_file(path: str) -> Optional[PersonaConfig]:
    """Load the persona JSON file, returning None when it does not exist."""
    if not os.path.exists(path):
        logger.info(f"No persona file at {path}, relying on environment only")
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Persona file {path} is not valid JSON: {e}") from e
    # Older files nest everything under "systemInstruction"
    if isinstance(data, dict) and isinstance(data.get("systemInstruction"), dict):
        data = data["systemInstruction"]
    return PersonaConfig.from_dict(data)


def _load_env_file(env_file: Optional[str] = None) -> None:
    """Load .env from the first location that exists."""
    main_dir = os.path.dirname(os.path.abspath(sys.argv[0]))
    env_locations = [
        os.path.join(main_dir, ".env"),
        os.path.join(os.path.dirname(main_dir), ".env"),
        os.path.join(os.getcwd(), ".env"),
    ]
    if env_file:
        env_locations.insert(0, env_file)

    for env_path in env_locations:
        if os.path.exists(env_path):
            logger.info(f"Loading .env from {env_path}")
            load_dotenv(env_path)
            return
    logger.info("No .env file found, using process environment")


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


def load_config(env_file: Optional[str] = None, load_env: bool = True) -> BotConfig:
    """Build a validated BotConfig from the environment."""
    if load_env:
        _load_env_file(env_file)

    persona_text = os.getenv("GEM_SYSTEM_INSTRUCTION", "")
    if not persona_text:
        persona = load_persona_file(os.getenv("COACHBOT_PERSONA_FILE", "persona.json"))
        if persona is not None:
            persona_text = render_persona(persona)

    gemini_key = os.getenv("GEMINI_API_KEY") or None
    openrouter_key = os.getenv("OPENROUTER_API_KEY") or None
    if gemini_key:
        logger.info(f"GEMINI_API_KEY found (length: {len(gemini_key)})")
    if openrouter_key:
        logger.info(f"OPENROUTER_API_KEY found (length: {len(openrouter_key)})")
    if not gemini_key and not openrouter_key:
        logger.warning("No provider API key configured; every reply will be degraded")

    return BotConfig(
        gemini_api_key=gemini_key,
        gemini_standard_model=os.getenv("GEMINI_MODEL_STANDARD", DEFAULT_GEMINI_STANDARD_MODEL),
        gemini_reduced_model=os.getenv("GEMINI_MODEL_REDUCED", DEFAULT_GEMINI_REDUCED_MODEL),
        openrouter_api_key=openrouter_key,
        openrouter_models=merge_model_list(
            os.getenv("OPENROUTER_MODEL", DEFAULT_OPENROUTER_MODEL),
            os.getenv("OPENROUTER_MODEL_FALLBACKS", DEFAULT_OPENROUTER_FALLBACKS),
        ),
        openrouter_referrer=os.getenv("OPENROUTER_REFERRER", "https://github.com/coachbot"),
        persona=persona_text,
        timeout_seconds=_int_env("COACHBOT_TIMEOUT_MS", 30000) / 1000,
        timezone=os.getenv("COACHBOT_TIMEZONE", DEFAULT_TIMEZONE),
        history_length=_int_env("COACHBOT_HISTORY_LENGTH", 6),
        history_ttl_seconds=_int_env("COACHBOT_HISTORY_TTL", 30 * 60),
        daily_threshold=_int_env("COACHBOT_DAILY_THRESHOLD", 240),
        daily_cap=_int_env("COACHBOT_DAILY_CAP", 250),
        image_batch_delay_seconds=_int_env("COACHBOT_IMAGE_BATCH_DELAY_MS", 1500) / 1000,
        data_dir=os.getenv("DATA_DIR") or None,
    )
