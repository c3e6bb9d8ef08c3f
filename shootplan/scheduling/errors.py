"""Errors raised while building a shooting schedule.

Each error carries the HTTP status the API layer should answer with.
"""
from typing import Any, Dict, Optional


class ScheduleBuildError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ScheduleValidationError(ScheduleBuildError):
    """Bad input or nothing to schedule. Raised before any mutation."""

    status_code = 400


class ScheduleNotFoundError(ScheduleBuildError):
    """Project missing or not accessible."""

    status_code = 404


class UpstreamError(ScheduleBuildError):
    """The AI planner failed or returned something unusable."""

    status_code = 500


class PartialPersistenceError(ScheduleBuildError):
    """A single shooting day could not be created; the build carries on."""

    status_code = 500

    def __init__(self, message: str, day_index: int, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.day_index = day_index
