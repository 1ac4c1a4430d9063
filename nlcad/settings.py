"""Settings and SettingsManager: environment profiles and secrets template.

Values are merged in order: defaults -> profile -> ``.nlcad/config.json``
-> ``.env`` -> ``NLCAD_*`` environment variables.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from nlcad.config import (
    DEFAULT_ANTHROPIC_MODEL,
    DEFAULT_ANTHROPIC_URL,
    DEFAULT_MODEL_TIMEOUT,
    DEFAULT_OLLAMA_MODEL,
    DEFAULT_OLLAMA_URL,
    DEFAULT_OPENAI_MODEL,
    DEFAULT_OPENAI_URL,
    DEFAULT_UNIT,
)
from nlcad.units import Unit, parse_unit

logger = logging.getLogger(__name__)

# NLCAD_* keys: default value and template comment
_CONFIG_KEYS: dict[str, dict[str, Any]] = {
    "NLCAD_ENV": {"default": "development", "description": "Environment profile"},
    "NLCAD_LOG_LEVEL": {"default": "INFO", "description": "Logging level"},
    "NLCAD_DEFAULT_UNIT": {"default": DEFAULT_UNIT, "description": "Unit for bare numbers"},
    "NLCAD_PROVIDER": {"default": "auto", "description": "Language model: auto, offline, ollama, openai, anthropic"},
    "NLCAD_MODEL_TIMEOUT": {"default": str(DEFAULT_MODEL_TIMEOUT), "description": "Model call timeout (s)"},
    "NLCAD_OLLAMA_URL": {"default": DEFAULT_OLLAMA_URL, "description": "Ollama LLM server"},
    "NLCAD_OLLAMA_MODEL": {"default": DEFAULT_OLLAMA_MODEL, "description": "Ollama model name"},
    "NLCAD_OPENAI_URL": {"default": DEFAULT_OPENAI_URL, "description": "OpenAI-compatible endpoint"},
    "NLCAD_OPENAI_MODEL": {"default": DEFAULT_OPENAI_MODEL, "description": "OpenAI model name"},
    "NLCAD_OPENAI_API_KEY": {"default": "", "description": "OpenAI API key (secret)"},
    "NLCAD_ANTHROPIC_URL": {"default": DEFAULT_ANTHROPIC_URL, "description": "Anthropic Messages API endpoint"},
    "NLCAD_ANTHROPIC_MODEL": {"default": DEFAULT_ANTHROPIC_MODEL, "description": "Anthropic model name"},
    "NLCAD_ANTHROPIC_API_KEY": {"default": "", "description": "Anthropic API key (secret)"},
    "NLCAD_AUTO_EXECUTE_LOW_RISK": {"default": "true", "description": "Run low-risk commands without asking"},
    "NLCAD_REQUIRE_CONFIRMATION": {"default": "true", "description": "Hold other commands for confirmation"},
}

_PROFILES: dict[str, dict[str, str]] = {
    "development": {
        "NLCAD_ENV": "development",
        "NLCAD_LOG_LEVEL": "DEBUG",
    },
    "production": {
        "NLCAD_ENV": "production",
        "NLCAD_LOG_LEVEL": "WARNING",
    },
    "testing": {
        "NLCAD_ENV": "testing",
        "NLCAD_LOG_LEVEL": "DEBUG",
        "NLCAD_PROVIDER": "offline",
    },
}

_TRUE = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Typed view of the merged configuration."""

    env: str = "development"
    log_level: str = "INFO"
    default_unit: Unit = Unit.INCH
    provider: str = "auto"
    model_timeout: float = Field(default=DEFAULT_MODEL_TIMEOUT, gt=0)
    ollama_url: str = DEFAULT_OLLAMA_URL
    ollama_model: str = DEFAULT_OLLAMA_MODEL
    openai_url: str = DEFAULT_OPENAI_URL
    openai_model: str = DEFAULT_OPENAI_MODEL
    openai_api_key: str = ""
    anthropic_url: str = DEFAULT_ANTHROPIC_URL
    anthropic_model: str = DEFAULT_ANTHROPIC_MODEL
    anthropic_api_key: str = ""
    auto_execute_low_risk: bool = True
    require_confirmation: bool = True

    @field_validator("default_unit", mode="before")
    @classmethod
    def _unit(cls, v: Any) -> Unit:
        if isinstance(v, Unit):
            return v
        unit = parse_unit(str(v))
        if unit is None:
            raise ValueError(f"Unknown unit: {v!r}")
        return unit

    @field_validator("provider", mode="before")
    @classmethod
    def _provider(cls, v: Any) -> str:
        name = str(v).strip().lower()
        if name not in ("auto", "offline", "ollama", "openai", "anthropic"):
            raise ValueError(f"Unknown provider: {v!r}")
        return name

    @field_validator("log_level", mode="before")
    @classmethod
    def _level(cls, v: Any) -> str:
        return str(v).strip().upper()

    @classmethod
    def from_mapping(cls, config: dict[str, str]) -> Settings:
        """Build from a flat ``NLCAD_*`` mapping as produced by :meth:`SettingsManager.load_config`."""
        data: dict[str, Any] = {}
        for key, value in config.items():
            if not key.startswith("NLCAD_"):
                continue
            field = key[len("NLCAD_"):].lower()
            if field not in cls.model_fields:
                continue
            if field in ("auto_execute_low_risk", "require_confirmation"):
                data[field] = str(value).strip().lower() in _TRUE
            else:
                data[field] = value
        return cls(**data)


class SettingsManager:
    """Manage nlcad configuration across environments."""

    def generate_env_template(self, project_path: str | Path) -> Path:
        """Write ``.env.example`` listing every NLCAD_* key and its default."""
        root = Path(project_path)
        env_path = root / ".env.example"

        lines = ["# nlcad configuration template", "# Copy to .env and fill in values", ""]
        for key, info in _CONFIG_KEYS.items():
            lines.append(f"# {info['description']}")
            lines.append(f"{key}={info['default']}")
            lines.append("")

        env_path.write_text("\n".join(lines), encoding="utf-8")
        return env_path

    def load_config(self, project_path: str | Path) -> dict[str, str]:
        """Load merged config: defaults -> profile -> config.json -> .env -> env vars."""
        root = Path(project_path)
        config: dict[str, str] = {}

        for key, info in _CONFIG_KEYS.items():
            config[key] = str(info["default"])

        env_name = os.environ.get("NLCAD_ENV", config.get("NLCAD_ENV", "development"))
        config.update(_PROFILES.get(env_name, {}))

        config_json = root / ".nlcad" / "config.json"
        if config_json.is_file():
            try:
                data = json.loads(config_json.read_text(encoding="utf-8"))
                for k, v in data.items():
                    config[k] = str(v).lower() if isinstance(v, bool) else str(v)
            except (json.JSONDecodeError, OSError):
                logger.warning("Could not read %s", config_json, exc_info=True)

        env_file = root / ".env"
        if env_file.is_file():
            try:
                for line in env_file.read_text(encoding="utf-8").splitlines():
                    line = line.strip()
                    if not line or line.startswith("#") or "=" not in line:
                        continue
                    k, v = line.split("=", 1)
                    config[k.strip()] = v.strip().strip("\"'")
            except OSError:
                logger.warning("Could not read %s", env_file, exc_info=True)

        for key in _CONFIG_KEYS:
            env_val = os.environ.get(key)
            if env_val is not None:
                config[key] = env_val

        return config

    def load_settings(self, project_path: str | Path = ".") -> Settings:
        settings = Settings.from_mapping(self.load_config(project_path))
        logger.info("Loaded settings (env=%s, provider=%s)", settings.env, settings.provider)
        return settings


def configure_logging(settings: Settings) -> None:
    """Apply ``settings.log_level`` to the ``nlcad`` logger hierarchy."""
    level = logging.getLevelName(settings.log_level)
    if not isinstance(level, int):
        level = logging.INFO
    logging.getLogger("nlcad").setLevel(level)
