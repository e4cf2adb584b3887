"""Tests for award_forecaster.config."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from award_forecaster.config import (
    AppConfig,
    ForecastConfig,
    LoggingConfig,
    ModelConfig,
    load_config,
)

_ENV_VARS = (
    "AWARD_FORECASTER_LOG_LEVEL",
    "AWARD_FORECASTER_DEBUG",
    "AWARD_FORECASTER_TED_API_BASE_URL",
    "AWARD_FORECASTER_MACRO_CACHE_TTL_SECONDS",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


class TestDefaults:
    def test_app_config_defaults(self):
        cfg = AppConfig()
        assert cfg.forecast.default_horizon == 6
        assert cfg.forecast.max_horizon == 24
        assert cfg.forecast.stale_threshold_months == 6
        assert cfg.model.hidden_units == [32, 16]
        assert cfg.model.learning_rate == 0.05
        assert cfg.insights.surprising_share_threshold == 15.0
        assert cfg.macro.cache_ttl_seconds == 21_600

    def test_committed_default_toml_matches_models(self):
        cfg = load_config()
        assert cfg.forecast == ForecastConfig()
        assert cfg.model == ModelConfig()
        assert cfg.macro.countries == ["HUN", "DEU", "ITA", "POL"]

    def test_configs_are_frozen(self):
        cfg = AppConfig()
        with pytest.raises(ValidationError):
            cfg.forecast.default_horizon = 3


class TestValidation:
    def test_rejects_unknown_model_kind(self):
        with pytest.raises(ValidationError):
            ModelConfig(kind="transformer")

    @pytest.mark.parametrize("rate", [-0.1, 1.0])
    def test_rejects_dropout_out_of_range(self, rate):
        with pytest.raises(ValidationError, match="dropout_rate"):
            ModelConfig(dropout_rate=rate)

    def test_rejects_empty_hidden_units(self):
        with pytest.raises(ValidationError, match="hidden_units"):
            ModelConfig(hidden_units=[])

    def test_rejects_zero_horizon(self):
        with pytest.raises(ValidationError):
            ForecastConfig(max_horizon=0)

    def test_log_level_is_upper_cased(self):
        assert LoggingConfig(level="debug").level == "DEBUG"
        with pytest.raises(ValidationError, match="Log level"):
            LoggingConfig(level="chatty")


class TestLoadConfig:
    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.toml")

    def test_partial_file_keeps_defaults(self, tmp_path):
        path = _write(tmp_path / "custom.toml", "[forecast]\ndefault_horizon = 12\n")
        cfg = load_config(path)
        assert cfg.forecast.default_horizon == 12
        assert cfg.forecast.max_horizon == 24

    def test_local_toml_overrides(self, tmp_path):
        path = _write(tmp_path / "custom.toml", "[model]\nkind = \"mlp\"\nseed = 1\n")
        _write(tmp_path / "local.toml", "[model]\nkind = \"linear\"\n")
        cfg = load_config(path)
        assert cfg.model.kind == "linear"
        assert cfg.model.seed == 1

    def test_project_debug_flag(self, tmp_path):
        path = _write(tmp_path / "custom.toml", "[project]\ndebug = true\n")
        assert load_config(path).debug is True

    def test_env_overrides(self, tmp_path, monkeypatch):
        path = _write(tmp_path / "custom.toml", "[logging]\nlevel = \"INFO\"\n")
        monkeypatch.setenv("AWARD_FORECASTER_LOG_LEVEL", "warning")
        monkeypatch.setenv("AWARD_FORECASTER_DEBUG", "yes")
        monkeypatch.setenv("AWARD_FORECASTER_TED_API_BASE_URL", "http://ted.local")
        monkeypatch.setenv("AWARD_FORECASTER_MACRO_CACHE_TTL_SECONDS", "60")
        cfg = load_config(path)
        assert cfg.logging.level == "WARNING"
        assert cfg.debug is True
        assert cfg.macro.base_url == "http://ted.local"
        assert cfg.macro.cache_ttl_seconds == 60

    def test_invalid_values_raise(self, tmp_path):
        path = _write(tmp_path / "custom.toml", "[model]\ndropout_rate = 2.0\n")
        with pytest.raises(ValidationError):
            load_config(path)
