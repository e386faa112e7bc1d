from __future__ import annotations

from typing import Optional


class RoutePlanningError(Exception):
    def __init__(self, message: str, status_code: int = 500) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class GenerationError(RoutePlanningError):
    """The LLM call failed or produced text that is not a route."""

    def __init__(self, message: str, raw_text: Optional[str] = None) -> None:
        super().__init__(message, status_code=500)
        self.raw_text = raw_text


class ExternalServiceError(RoutePlanningError):
    def __init__(self, message: str, status_code: int = 503) -> None:
        super().__init__(message, status_code=status_code)
