"""Structured JSON logging for the optimizer loop."""

from __future__ import annotations

import json
import logging
import logging.handlers
from datetime import datetime, timezone
from queue import Full, Queue
from typing import IO, Iterable, override
from uuid import uuid4

LOGGER = logging.getLogger(__name__)

_RESERVED_KEYS: frozenset[str] = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName", "session_id"}


def parse_level(name: str | int) -> int:
    """Translate a level name such as ``"debug"`` into a logging level.

    Unknown names resolve to ``logging.INFO``.
    """

    if isinstance(name, int):
        return name
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


class JsonFormatter(logging.Formatter):
    """Render log records as JSON with the session identifier and context."""

    def __init__(self, *, session_id: str | None = None) -> None:
        super().__init__()
        self._session_id = session_id

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - inherited
        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_KEYS
        }

        payload: dict[str, object] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "session_id": getattr(record, "session_id", None) or self._session_id,
            "context": context,
        }

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        elif record.exc_text:
            payload["exception"] = record.exc_text

        return json.dumps(payload, default=str)


class BoundedQueueHandler(logging.handlers.QueueHandler):
    """Queue handler that drops records when the queue is full."""

    @override
    def enqueue(self, record: logging.LogRecord) -> None:
        """Enqueue a record without blocking the optimizer loop."""

        try:
            self.queue.put_nowait(record)
        except Full:
            self.handleError(record)

    @override
    def handleError(self, record: logging.LogRecord) -> None:
        """Drop the record silently when the queue is full."""

        return


def configure_structured_logging(
    logger: logging.Logger,
    *,
    session_id: str | None = None,
    level: int = logging.INFO,
    stream: IO[str] | None = None,
) -> logging.handlers.QueueListener:
    """Configure ``logger`` with queued JSON output.

    Args:
        logger: Target logger to configure.
        session_id: Identifier stamped on every record. A random identifier
            is generated when omitted, so records from one optimizer run can
            be grouped in the daemon log.
        level: Logging verbosity level.
        stream: Destination stream. Defaults to ``sys.stderr``.

    Returns:
        The queue listener responsible for draining log records.
    """
    logger.setLevel(level)

    record_queue: Queue[logging.LogRecord] = Queue(maxsize=1024)
    logger.addHandler(BoundedQueueHandler(record_queue))

    stream_handler = logging.StreamHandler(stream)
    stream_handler.setFormatter(JsonFormatter(session_id=session_id or str(uuid4())))

    listener = logging.handlers.QueueListener(record_queue, stream_handler)
    listener.start()
    return listener


def shutdown_listeners(listeners: Iterable[logging.handlers.QueueListener]) -> None:
    """Stop all queue listeners while suppressing shutdown errors."""
    for listener in listeners:
        try:
            listener.stop()
        except Exception as exc:  # pragma: no cover - logging cleanup
            LOGGER.warning("Failed to stop logging listener", exc_info=exc)
