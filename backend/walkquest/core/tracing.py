"""Request and LLM-session correlation ids carried through contextvars."""

from __future__ import annotations

import re
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Mapping, Optional
from uuid import uuid4

# Checked in order; the first non-empty header wins
TRACE_HEADER_CANDIDATES: tuple[str, ...] = (
    "x-trace-id",
    "x-request-id",
    "traceparent",
)

_TRACE_ID: ContextVar[str] = ContextVar("trace_id", default="-")
_SESSION_ID: ContextVar[str] = ContextVar("session_id", default="-")
_TRACE_ID_PATTERN = re.compile(r"^[a-fA-F0-9-]{8,64}$")


def _normalise(value: str) -> str:
    value = value.strip()
    if _TRACE_ID_PATTERN.match(value):
        return value.lower()
    return uuid4().hex


def ensure_trace_id(headers: Optional[Mapping[str, str]] = None) -> str:
    """Trace id from the incoming headers (case-insensitive) or a fresh one."""

    if headers:
        lowered = {key.lower(): value for key, value in headers.items()}
        for name in TRACE_HEADER_CANDIDATES:
            if lowered.get(name):
                return _normalise(lowered[name])

    return uuid4().hex


def set_trace_id(trace_id: str):  # noqa: ANN201 - ContextVar token
    return _TRACE_ID.set(trace_id)


def reset_trace_id(token) -> None:  # noqa: ANN001 - ContextVar token
    if token is not None:
        _TRACE_ID.reset(token)


def get_trace_id() -> str:
    return _TRACE_ID.get()


def get_session_id() -> str:
    return _SESSION_ID.get()


@contextmanager
def session_scope(session_id: str) -> Iterator[str]:
    """Tag every log line emitted inside the block with an interaction session."""

    token = _SESSION_ID.set(session_id)
    try:
        yield session_id
    finally:
        _SESSION_ID.reset(token)
