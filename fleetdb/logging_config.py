"""Root-logger setup shared by the CLI and any service embedding fleetdb.

``LOG_JSON=false`` (the default) prints one plain line per record, which
is what you want when running ``scripts/manage_db.py`` by hand.
``LOG_JSON=true`` switches to one JSON object per record; failed
statements then show up with their SQL and bound values as separate
keys, so a log search can match on ``statement`` directly.

    from fleetdb.logging_config import setup_logging
    from fleetdb.settings import get_settings

    settings = get_settings()
    setup_logging(settings.log_level, json_format=settings.log_json)
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Record attributes copied into JSON output when present.
_EXTRA_FIELDS = ("statement", "params", "backend", "db_path")

# Driver loggers held at WARNING or above; they log every round-trip.
_NOISY_LOGGERS = (
    "aiosqlite",
    "libsql_client",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
)

_PLAIN_FMT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class _JSONFormatter(logging.Formatter):
    """One JSON object per record.

    Keys: ``timestamp`` (UTC), ``severity``, ``module``, ``message``,
    then whichever of ``_EXTRA_FIELDS`` the record carries, then
    ``exception`` when a traceback is attached.
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict[str, Any] = {
            "timestamp": created.isoformat(),
            "severity": record.levelname,
            "module": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (name, getattr(record, name))
            for name in _EXTRA_FIELDS
            if hasattr(record, name)
        )
        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


def _resolve_level(level: str) -> int:
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level!r}")
    return numeric_level


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Send every fleetdb record to stderr at *level*.

    Any handlers already on the root logger are closed and dropped, so
    the CLI can call this once per invocation and tests can call it
    repeatedly. Driver loggers listed in ``_NOISY_LOGGERS`` never go
    below WARNING.

    Raises:
        ValueError: *level* is not a standard level name such as
            ``"DEBUG"`` or ``"error"``.
    """
    numeric_level = _resolve_level(level)

    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(
        _JSONFormatter() if json_format else logging.Formatter(_PLAIN_FMT)
    )
    root.addHandler(handler)
    root.setLevel(numeric_level)

    quiet_level = max(numeric_level, logging.WARNING)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)
