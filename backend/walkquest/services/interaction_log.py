"""Records prompt/response pairs of LLM calls for later inspection.

Each interaction is keyed by a session id derived from the call timestamp.
The file recorder writes ``<session>-prompt.txt``, ``<session>-response.json``
and ``<session>-summary.txt`` (or ``<session>-error.txt`` for failures) into
one directory.
"""

from __future__ import annotations

import json
import logging
import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from walkquest.core.config import settings

logger = logging.getLogger(__name__)

SESSION_FILE_PATTERN = re.compile(
    r"^((?:session|error)-[\dT-]+Z)-(prompt\.txt|response\.json|summary\.txt|error\.txt)$"
)


def make_session_id(moment: datetime, prefix: str = "session") -> str:
    """``session-2025-01-31T10-15-00-123Z`` for the given moment (UTC)."""
    moment = moment.astimezone(timezone.utc)
    stamp = moment.strftime("%Y-%m-%dT%H-%M-%S-") + f"{moment.microsecond // 1000:03d}Z"
    return f"{prefix}-{stamp}"


class InteractionRecorder:
    """Discards everything; base for real recorders."""

    def record(self, session_id: str, payload: Dict[str, Any]) -> None:
        return None

    def record_error(self, session_id: str, prompt: str, error: BaseException) -> None:
        return None


class FileInteractionRecorder(InteractionRecorder):
    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def _ensure_directory(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    def record(self, session_id: str, payload: Dict[str, Any]) -> None:
        try:
            self._write_interaction(session_id, payload)
        except OSError as exc:
            logger.warning(f"Could not write interaction log {session_id}: {exc}")

    def record_error(self, session_id: str, prompt: str, error: BaseException) -> None:
        try:
            self._write_error(session_id, prompt, error)
        except OSError as exc:
            logger.warning(f"Could not write error log {session_id}: {exc}")

    def _write_interaction(self, session_id: str, payload: Dict[str, Any]) -> None:
        self._ensure_directory()
        prompt = payload.get("prompt", "")
        response = payload.get("response")

        (self.directory / f"{session_id}-prompt.txt").write_text(prompt, encoding="utf-8")
        (self.directory / f"{session_id}-response.json").write_text(
            json.dumps(response, ensure_ascii=False, indent=2, default=str),
            encoding="utf-8",
        )
        (self.directory / f"{session_id}-summary.txt").write_text(
            self._summary(session_id, response), encoding="utf-8"
        )
        logger.info(f"📝 Logged to: {self.directory}/{session_id}-*")

    def _write_error(self, session_id: str, prompt: str, error: BaseException) -> None:
        self._ensure_directory()
        (self.directory / f"{session_id}-prompt.txt").write_text(prompt, encoding="utf-8")
        content = (
            "=== LLM ERROR ===\n"
            f"Timestamp: {datetime.now(timezone.utc).isoformat()}\n"
            f"Error: {type(error).__name__}: {error}\n"
        )
        raw_text = getattr(error, "raw_text", None)
        if raw_text:
            content += f"\nRaw response:\n{raw_text}\n"
        content += "=== END ERROR ===\n"
        (self.directory / f"{session_id}-error.txt").write_text(content, encoding="utf-8")
        logger.error(f"❌ Error logged to: {self.directory}/{session_id}-*")

    def _summary(self, session_id: str, response: Optional[Dict[str, Any]]) -> str:
        route = (response or {}).get("route") or {}
        statistics = route.get("statistics") or {}
        return "\n".join(
            [
                "=== LLM INTERACTION SUMMARY ===",
                f"Session ID: {session_id}",
                f"Route ID: {route.get('id') or 'N/A'}",
                f"Route name: {route.get('name') or 'N/A'}",
                f"Points count: {len(route.get('points') or [])}",
                f"Total distance: {statistics.get('total_distance') or 0} km",
                f"Total time: {statistics.get('total_walk_time') or 0} min",
                f"Personalization score: {route.get('personalization_score') or 0}%",
                f"Success: {'YES' if route else 'NO'}",
                "=== END SUMMARY ===",
            ]
        )

    def list_sessions(self) -> List[Dict[str, Any]]:
        if not self.directory.exists():
            return []

        sessions: Dict[str, List[str]] = {}
        for path in sorted(self.directory.iterdir()):
            match = SESSION_FILE_PATTERN.match(path.name)
            if match:
                sessions.setdefault(match.group(1), []).append(path.name)

        return [{"session_id": sid, "files": files} for sid, files in sorted(sessions.items())]

    def clean_old(self, days_to_keep: int = 7, now: Optional[float] = None) -> int:
        if not self.directory.exists():
            return 0

        now = time.time() if now is None else now
        max_age = days_to_keep * 24 * 60 * 60
        cleaned = 0
        for path in self.directory.iterdir():
            if not SESSION_FILE_PATTERN.match(path.name) or not path.is_file():
                continue
            if now - path.stat().st_mtime > max_age:
                path.unlink()
                cleaned += 1

        logger.info(f"🧹 Cleaned {cleaned} old log files")
        return cleaned


def build_recorder() -> InteractionRecorder:
    if settings.INTERACTION_LOG_ENABLED:
        return FileInteractionRecorder(settings.INTERACTION_LOG_DIR)
    return InteractionRecorder()


interaction_recorder = build_recorder()
