"""Main entry point for edgeops.

Logs are structured JSON on stderr so that command output on stdout (human
summaries or ``--json`` payloads) stays machine-readable.
"""

from __future__ import annotations

import logging
import sys
from datetime import UTC

# Standard LogRecord attributes; anything else on a record came from ``extra``
_RESERVED_RECORD_KEYS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


def setup_logging(verbose: bool = False) -> None:
    """Configure structured logging with JSON output on stderr.

    Calling it again replaces the handler installed by the previous call.
    """
    import json
    from datetime import datetime

    class JsonFormatter(logging.Formatter):
        """Format logs as JSON for structured logging."""

        def format(self, record: logging.LogRecord) -> str:
            log_data = {
                "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
                "level": record.levelname,
                "message": record.getMessage(),
                "logger": record.name,
            }

            # Add extra fields from the record
            for key, value in record.__dict__.items():
                if key not in _RESERVED_RECORD_KEYS:
                    log_data[key] = value

            if record.exc_info:
                log_data["exception"] = self.formatException(record.exc_info)

            return json.dumps(log_data, default=str)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())
    handler.set_name("edgeops")

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        if existing.get_name() == "edgeops":
            root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Reduce noise from the HTTP stack
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def run() -> None:
    """Entry point for the edgeops CLI."""
    from .cli import cli

    cli(prog_name="edgeops")


if __name__ == "__main__":
    run()
