"""
Command line front end for the award forecaster.

Each command loads ``AppConfig``, sets up logging, reads the JSON payload
file, runs one engine, then prints a plain-text report (or the camelCase
JSON response with ``--json``).

Examples::

    pip install -e .
    award-forecaster validate-config
    award-forecaster sample-forecast
    award-forecaster forecast payload.json --horizon 12 --now 2024-10
    award-forecaster insights payload.json --offline --json

A payload file holds the same JSON object the engines accept::

    {"aggregates": [{"month": "2024-05", "totalValue": 750000, "noticeCount": 6}],
     "notices": [{"awardDate": "2024-05-12", "contractValue": 1200, "country": "DEU"}]}
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="award-forecaster",
    help="Procurement award forecaster: monthly projections and insight highlights.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _fail(message: str) -> typer.Exit:
    typer.echo(f"[ERROR] {message}", err=True)
    return typer.Exit(code=1)


def _load_config_or_exit(config_path: Optional[str] = None):
    """Return the merged config; exit 1 on a missing or invalid file."""
    from pydantic import ValidationError

    from award_forecaster.config import load_config

    try:
        return load_config(Path(config_path) if config_path else None)
    except FileNotFoundError as exc:
        raise _fail(str(exc))
    except (ValidationError, ValueError) as exc:
        raise _fail(f"Invalid configuration: {exc}")


def _configure_logging(config) -> None:
    from award_forecaster.utils.logging import configure_logging

    configure_logging(config.logging)


def _read_payload_or_exit(payload_path: str) -> dict:
    """Read a JSON object from ``payload_path``."""
    path = Path(payload_path)
    if not path.is_file():
        raise _fail(f"Payload file not found: {path}")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise _fail(f"Payload is not valid JSON: {exc}")
    if not isinstance(raw, dict):
        raise _fail("Payload must be a JSON object.")
    return raw


def _parse_now_or_exit(now: Optional[str]) -> Optional[datetime]:
    """Parse ``--now`` as ``YYYY-MM`` or an ISO date; ``None`` means today."""
    from award_forecaster.utils.time_utils import parse_date_input, parse_month_input

    if now is None:
        return None
    parsed = parse_month_input(now) or parse_date_input(now)
    if parsed is None:
        raise _fail(f"Invalid --now value '{now}'. Use YYYY-MM or YYYY-MM-DD.")
    return parsed


def _apply_overrides(raw: dict, **overrides) -> dict:
    merged = dict(raw)
    merged.update({key: value for key, value in overrides.items() if value is not None})
    return merged


def _validate_metric_or_exit(metric: Optional[str]) -> Optional[str]:
    if metric is not None and metric not in ("value", "count"):
        raise _fail(f"--metric must be 'value' or 'count', got '{metric}'.")
    return metric


def _validate_request_or_exit(model, raw: dict):
    from pydantic import ValidationError

    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        raise _fail(f"Invalid payload: {exc}")


def _emit(response, as_json: bool, formatter) -> None:
    if as_json:
        typer.echo(response.model_dump_json(by_alias=True, indent=2))
    else:
        typer.echo(formatter(response))


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="TOML config to validate (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Also dump every field as JSON.",
    ),
) -> None:
    """Load the layered configuration and print the key settings.

    Exits 1 when a file is missing or a value is out of range.
    """
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration loaded.")
    typer.echo("")
    typer.echo(f"  Default horizon:  {config.forecast.default_horizon} (max {config.forecast.max_horizon})")
    typer.echo(f"  Stale threshold:  {config.forecast.stale_threshold_months} months")
    typer.echo(f"  Model:            {config.model.kind} {config.model.hidden_units}")
    typer.echo(f"  Macro countries:  {', '.join(config.macro.countries)}")
    typer.echo(f"  TED API:          {config.macro.base_url}")
    typer.echo(f"  Logging:          {config.logging.level}{' (json)' if config.logging.json_format else ''}")
    typer.echo(f"  Debug:            {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("All fields:")
        typer.echo(config.model_dump_json(indent=2))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("forecast")
def forecast(
    payload_path: str = typer.Argument(..., help="JSON payload with aggregates and/or notices."),
    horizon: Optional[int] = typer.Option(
        None,
        "--horizon",
        help="Months to project (clamped to 1..max_horizon).",
    ),
    metric: Optional[str] = typer.Option(
        None,
        "--metric",
        help="Force 'value' or 'count' (default: inferred).",
    ),
    now: Optional[str] = typer.Option(
        None,
        "--now",
        help="Reference month (YYYY-MM) instead of today.",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the JSON response."),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="TOML config file (default: config/default.toml).",
    ),
) -> None:
    """Project monthly award value or volume from a JSON payload.

    Exits with code 1 when the model fails (status ``error``).
    """
    from award_forecaster.forecasting.engine import build_forecast
    from award_forecaster.models.payload import ForecastRequest
    from award_forecaster.reporting.formatters import format_forecast_report

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    raw = _apply_overrides(
        _read_payload_or_exit(payload_path),
        horizon=horizon,
        metric=_validate_metric_or_exit(metric),
    )
    request = _validate_request_or_exit(ForecastRequest, raw)
    reference = _parse_now_or_exit(now)

    response = asyncio.run(build_forecast(request, now=reference, config=config))
    _emit(response, as_json, format_forecast_report)

    if response.status == "error":
        raise typer.Exit(code=1)


@app.command("insights")
def insights(
    payload_path: str = typer.Argument(..., help="JSON payload with aggregates and/or notices."),
    metric: Optional[str] = typer.Option(
        None,
        "--metric",
        help="Force 'value' or 'count' (default: inferred).",
    ),
    now: Optional[str] = typer.Option(
        None,
        "--now",
        help="Reference month (YYYY-MM) instead of today.",
    ),
    offline: bool = typer.Option(
        False,
        "--offline",
        help="Skip the TED prior-year budget lookup.",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the JSON response."),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="TOML config file (default: config/default.toml).",
    ),
) -> None:
    """Compute spike, contraction and country highlights from a JSON payload."""
    from award_forecaster.ingestion.macro_client import TedMacroBudgetClient
    from award_forecaster.insights.engine import generate_insights
    from award_forecaster.models.payload import InsightRequest
    from award_forecaster.reporting.formatters import format_insight_report

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    raw = _apply_overrides(
        _read_payload_or_exit(payload_path),
        metric=_validate_metric_or_exit(metric),
    )
    request = _validate_request_or_exit(InsightRequest, raw)
    reference = _parse_now_or_exit(now)
    provider = None if offline else TedMacroBudgetClient(config.macro)

    response = asyncio.run(
        generate_insights(request, now=reference, config=config, macro_provider=provider)
    )
    _emit(response, as_json, format_insight_report)


@app.command("sample-forecast")
def sample_forecast(
    horizon: int = typer.Option(6, "--horizon", help="Months to project."),
    now: Optional[str] = typer.Option(
        None,
        "--now",
        help="Reference month (YYYY-MM) instead of today.",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the JSON response."),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="TOML config file (default: config/default.toml).",
    ),
) -> None:
    """Run the forecast on the built-in May-Sep 2024 sample."""
    from award_forecaster.forecasting.engine import build_forecast
    from award_forecaster.forecasting.sample import sample_forecast_request
    from award_forecaster.reporting.formatters import format_forecast_report

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    reference = _parse_now_or_exit(now)
    response = asyncio.run(
        build_forecast(sample_forecast_request(horizon), now=reference, config=config)
    )
    _emit(response, as_json, format_forecast_report)


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app()
