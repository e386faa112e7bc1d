"""Process-wide logging setup with per-request and per-session correlation."""

from __future__ import annotations

import logging
import sys

from walkquest.core.tracing import get_session_id, get_trace_id

LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(name)s | "
    "trace_id=%(trace_id)s session=%(session_id)s | %(message)s"
)


class RequestContextFilter(logging.Filter):
    """Stamps records with the current trace id and LLM session id."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401 - inherited
        record.trace_id = get_trace_id()
        record.session_id = get_session_id()
        return True


def configure_logging(service_name: str, level: str | int = logging.INFO) -> logging.Logger:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # uvicorn installs its own handlers; route them through ours
    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.propagate = True

    return logging.getLogger(service_name)
