"""Module entrypoint for python -m agent_studio."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime

from agent_studio.cli import app


class JsonLogFormatter(logging.Formatter):
    """Format log records as JSON objects stamped with the record's creation time."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def _configure_json_logging() -> None:
    """Install the JSON formatter on the root logger unless handlers already exist."""
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(JsonLogFormatter())
        root.addHandler(handler)
        root.setLevel(logging.INFO)


if __name__ == "__main__":
    _configure_json_logging()
    app()
