"""Tests for Settings and SettingsManager."""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path

import pytest

from nlcad.settings import Settings, SettingsManager, configure_logging
from nlcad.units import Unit


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (
        "NLCAD_ENV",
        "NLCAD_LOG_LEVEL",
        "NLCAD_PROVIDER",
        "NLCAD_DEFAULT_UNIT",
        "NLCAD_OPENAI_API_KEY",
        "NLCAD_ANTHROPIC_API_KEY",
        "NLCAD_REQUIRE_CONFIRMATION",
    ):
        monkeypatch.delenv(key, raising=False)


# ── Settings ─────────────────────────────────────────────────────────────────

class TestSettings:

    def test_defaults(self) -> None:
        settings = Settings()
        assert settings.default_unit is Unit.INCH
        assert settings.provider == "auto"
        assert settings.auto_execute_low_risk is True
        assert settings.require_confirmation is True

    def test_unit_words(self) -> None:
        assert Settings(default_unit="millimeters").default_unit is Unit.MILLIMETER

    def test_bad_unit(self) -> None:
        with pytest.raises(ValueError):
            Settings(default_unit="cubits")

    def test_anthropic_provider_name(self) -> None:
        settings = Settings(provider="Anthropic", anthropic_api_key="sk-ant-test")
        assert settings.provider == "anthropic"
        assert settings.anthropic_model.startswith("claude-")

    def test_bad_provider(self) -> None:
        with pytest.raises(ValueError):
            Settings(provider="skynet")

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            Settings(model_timeout=0)

    def test_from_mapping(self) -> None:
        settings = Settings.from_mapping({
            "NLCAD_PROVIDER": "Offline",
            "NLCAD_DEFAULT_UNIT": "mm",
            "NLCAD_REQUIRE_CONFIRMATION": "no",
            "NLCAD_LOG_LEVEL": "debug",
            "NLCAD_UNKNOWN_KEY": "x",
            "OTHER": "y",
        })
        assert settings.provider == "offline"
        assert settings.default_unit is Unit.MILLIMETER
        assert settings.require_confirmation is False
        assert settings.log_level == "DEBUG"


# ── SettingsManager ──────────────────────────────────────────────────────────

class TestSettingsManager:

    def test_generate_env_template(self) -> None:
        mgr = SettingsManager()
        with tempfile.TemporaryDirectory() as d:
            path = mgr.generate_env_template(d)
            assert path.is_file()
            content = path.read_text()
            assert "NLCAD_ENV=development" in content
            assert "NLCAD_OLLAMA_URL" in content
            assert "NLCAD_OPENAI_API_KEY=" in content
            assert "NLCAD_ANTHROPIC_API_KEY=" in content

    def test_load_config_defaults(self) -> None:
        mgr = SettingsManager()
        with tempfile.TemporaryDirectory() as d:
            config = mgr.load_config(d)
            assert config["NLCAD_ENV"] == "development"
            assert config["NLCAD_LOG_LEVEL"] == "DEBUG"

    def test_load_config_merges_json(self) -> None:
        mgr = SettingsManager()
        with tempfile.TemporaryDirectory() as d:
            (Path(d) / ".nlcad").mkdir()
            (Path(d) / ".nlcad" / "config.json").write_text(
                json.dumps({"NLCAD_PROVIDER": "ollama", "NLCAD_AUTO_EXECUTE_LOW_RISK": False})
            )
            config = mgr.load_config(d)
            assert config["NLCAD_PROVIDER"] == "ollama"
            assert config["NLCAD_AUTO_EXECUTE_LOW_RISK"] == "false"

    def test_dotenv_overrides_json(self) -> None:
        mgr = SettingsManager()
        with tempfile.TemporaryDirectory() as d:
            (Path(d) / ".nlcad").mkdir()
            (Path(d) / ".nlcad" / "config.json").write_text(json.dumps({"NLCAD_DEFAULT_UNIT": "cm"}))
            (Path(d) / ".env").write_text('# local\nNLCAD_DEFAULT_UNIT="mm"\n\nnot a pair\n')
            assert mgr.load_config(d)["NLCAD_DEFAULT_UNIT"] == "mm"

    def test_environment_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NLCAD_PROVIDER", "openai")
        mgr = SettingsManager()
        with tempfile.TemporaryDirectory() as d:
            (Path(d) / ".env").write_text("NLCAD_PROVIDER=ollama\n")
            assert mgr.load_config(d)["NLCAD_PROVIDER"] == "openai"

    def test_testing_profile(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NLCAD_ENV", "testing")
        with tempfile.TemporaryDirectory() as d:
            settings = SettingsManager().load_settings(d)
            assert settings.env == "testing"
            assert settings.provider == "offline"

    def test_broken_json_is_skipped(self) -> None:
        mgr = SettingsManager()
        with tempfile.TemporaryDirectory() as d:
            (Path(d) / ".nlcad").mkdir()
            (Path(d) / ".nlcad" / "config.json").write_text("{not json")
            assert mgr.load_config(d)["NLCAD_PROVIDER"] == "auto"


class TestConfigureLogging:

    def test_sets_package_level(self) -> None:
        configure_logging(Settings(log_level="warning"))
        assert logging.getLogger("nlcad").level == logging.WARNING

    def test_unknown_level_uses_info(self) -> None:
        configure_logging(Settings(log_level="chatty"))
        assert logging.getLogger("nlcad").level == logging.INFO
