"""
Configuration for the award forecaster.

Layers, lowest precedence first:
  1. ``config/default.toml``   committed defaults
  2. ``config/local.toml``     machine-specific overrides, not committed
  3. ``.env``                  loaded into the environment, never overrides it
  4. ``AWARD_FORECASTER_*``    process environment

``load_config(config_path=None)`` returns the merged ``AppConfig``.

The forecast and insight engines take an optional ``AppConfig`` and default
to ``AppConfig()``, whose values mirror ``config/default.toml``, so library
callers never need a TOML file.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# ── Sections ──────────────────────────────────────────────────────────────────


class ForecastConfig(BaseModel):
    """Forecast horizon, anchoring and staleness settings."""

    model_config = ConfigDict(frozen=True)

    default_horizon: int = 6
    max_horizon: int = 24
    min_observations: int = 3
    stale_threshold_months: int = 6
    fill_missing_months: bool = True
    lock_to_current_month: bool = True
    summary_window: int = 3          # future points averaged for the summary sentence
    default_language: str = "en"

    @field_validator("max_horizon", "default_horizon", "min_observations", "summary_window")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"value must be >= 1, got {v}.")
        return v


class ModelConfig(BaseModel):
    """Hyperparameters for the monthly regression model."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["mlp", "linear"] = "mlp"
    hidden_units: list[int] = [32, 16]
    dropout_rate: float = 0.1
    learning_rate: float = 0.05
    max_epochs: int = 250
    epochs_per_sample: int = 40
    batch_size: int = 32
    seed: int = 42

    @field_validator("dropout_rate")
    @classmethod
    def validate_dropout(cls, v: float) -> float:
        if not 0.0 <= v < 1.0:
            raise ValueError(f"dropout_rate must be in [0.0, 1.0), got {v}.")
        return v

    @field_validator("hidden_units")
    @classmethod
    def validate_hidden_units(cls, v: list[int]) -> list[int]:
        if not v or any(u < 1 for u in v):
            raise ValueError(f"hidden_units must be a non-empty list of positive ints, got {v}.")
        return v

    @field_validator("learning_rate")
    @classmethod
    def validate_learning_rate(cls, v: float) -> float:
        if v <= 0.0:
            raise ValueError(f"learning_rate must be positive, got {v}.")
        return v


class InsightConfig(BaseModel):
    """Thresholds for the descriptive insight statistics."""

    model_config = ConfigDict(frozen=True)

    surprising_share_threshold: float = 15.0   # percent
    quarter_window: int = 3                    # months per comparison window
    stale_warning_months: int = 6


class MacroConfig(BaseModel):
    """TED search settings for the prior-year country budget reference."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "https://api.ted.europa.eu"
    search_endpoint: str = "/v3/notices/search"
    countries: list[str] = ["HUN", "DEU", "ITA", "POL"]
    cpv_codes: list[str] = ["33600000", "33651000", "33651600", "33631600", "33652300"]
    max_pages: int = 6
    page_size: int = 250
    cache_ttl_seconds: int = 6 * 60 * 60
    timeout_seconds: float = 30.0


class LoggingConfig(BaseModel):
    """Root logger level, optional log file and line format."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = ""
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def normalise_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Log level must be one of {', '.join(_LOG_LEVELS)}; got {v!r}.")
        return level


class AppConfig(BaseModel):
    """Every section of the merged configuration."""

    model_config = ConfigDict(frozen=True)

    forecast: ForecastConfig = ForecastConfig()
    model: ModelConfig = ModelConfig()
    insights: InsightConfig = InsightConfig()
    macro: MacroConfig = MacroConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

# (env var, section or None for top level, key, cast)
_ENV_OVERRIDES: tuple[tuple[str, Optional[str], str, Any], ...] = (
    ("AWARD_FORECASTER_LOG_LEVEL", "logging", "level", str),
    ("AWARD_FORECASTER_DEBUG", None, "debug", lambda s: s.strip().lower() in {"1", "true", "yes"}),
    ("AWARD_FORECASTER_TED_API_BASE_URL", "macro", "base_url", str),
    ("AWARD_FORECASTER_MACRO_CACHE_TTL_SECONDS", "macro", "cache_ttl_seconds", int),
)


def _repo_root() -> Path:
    """Nearest ancestor of this package holding a pyproject.toml."""
    here = Path(__file__).resolve().parent
    for parent in (here, *list(here.parents)[:4]):
        if (parent / "pyproject.toml").is_file():
            return parent
    return here.parent


def _read_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as fh:
        return tomllib.load(fh)


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Build an ``AppConfig`` from the TOML layers and the environment.

    Args:
        config_path: TOML file to start from. When omitted the committed
            ``config/default.toml`` under the repo root is used. A
            ``local.toml`` next to it is merged on top when present.

    Returns:
        Validated, frozen ``AppConfig``.

    Raises:
        FileNotFoundError: ``config_path`` points at nothing.
        pydantic.ValidationError: A merged value is out of range.
    """
    root = _repo_root()
    load_dotenv(dotenv_path=root / ".env", override=False)

    path = Path(config_path) if config_path is not None else root / "config" / "default.toml"
    if not path.is_file():
        raise FileNotFoundError(
            f"No config file at {path}. "
            "Restore config/default.toml or point --config at a TOML file."
        )

    layered = _read_toml(path)
    local = path.with_name("local.toml")
    if local.is_file():
        layered = _merged(layered, _read_toml(local))

    return _to_app_config(_with_env(layered))


def _merged(lower: dict[str, Any], upper: dict[str, Any]) -> dict[str, Any]:
    """Nested-table merge; values from ``upper`` win."""
    out = dict(lower)
    for name, value in upper.items():
        current = out.get(name)
        if isinstance(current, dict) and isinstance(value, dict):
            out[name] = _merged(current, value)
        else:
            out[name] = value
    return out


def _with_env(raw: dict[str, Any]) -> dict[str, Any]:
    """Overlay the ``AWARD_FORECASTER_*`` variables listed in ``_ENV_OVERRIDES``."""
    for var, section, key, cast in _ENV_OVERRIDES:
        text = os.environ.get(var)
        if not text:
            continue
        target = raw if section is None else raw.setdefault(section, {})
        target[key] = cast(text)
    return raw


def _to_app_config(raw: dict[str, Any]) -> AppConfig:
    project = raw.pop("project", {})
    sections = {
        "forecast": ForecastConfig,
        "model": ModelConfig,
        "insights": InsightConfig,
        "macro": MacroConfig,
        "logging": LoggingConfig,
    }
    built = {name: cls(**raw.get(name, {})) for name, cls in sections.items()}
    return AppConfig(**built, debug=raw.get("debug", project.get("debug", False)))
