"""
Root logger setup for the award forecaster.

Only the CLI calls ``configure_logging``; the engines are also embedded in
other services, so library modules stick to ``logging.getLogger(__name__)``
and leave handlers alone.

``json_format = true`` under ``[logging]`` switches to one JSON object per
line, with anything passed via ``extra=`` lifted to a top-level key::

    {"ts": "2024-10-03T09:12:44Z", "level": "INFO",
     "logger": "award_forecaster.forecasting.engine",
     "msg": "Forecast ready", "status": "ready", "training_samples": 5}
"""

from __future__ import annotations

import json
import logging
import sys
import time
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from award_forecaster.config import LoggingConfig

TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s | %(message)s"
UTC_STAMP = "%Y-%m-%dT%H:%M:%SZ"

_RECORD_FIELDS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime"}


class _JsonLineFormatter(logging.Formatter):
    converter = time.gmtime

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, object] = {
            "ts": self.formatTime(record, UTC_STAMP),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        line.update(
            (name, value)
            for name, value in vars(record).items()
            if name not in _RECORD_FIELDS and not name.startswith("_")
        )
        if record.exc_info:
            line["exc"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)


def _text_formatter() -> logging.Formatter:
    formatter = logging.Formatter(TEXT_FORMAT, datefmt=UTC_STAMP)
    formatter.converter = time.gmtime
    return formatter


def configure_logging(config: "LoggingConfig") -> None:
    """Install handlers on the root logger according to ``config``.

    Records go to stderr, since stdout is reserved for the CLI's JSON
    output, and additionally to ``config.log_file`` when one is set.
    """
    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    formatter = _JsonLineFormatter() if config.json_format else _text_formatter()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.log_file:
        target = Path(config.log_file)
        target.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(target, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    # one INFO line per TED page otherwise
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
