"""
Scheduling Module

This module builds shooting schedules from a project's scenes with the help
of an LLM planner and persists the resulting shooting days.
"""

from .coordinator import ScheduleBuildCoordinator
from .errors import (
    PartialPersistenceError,
    ScheduleBuildError,
    ScheduleNotFoundError,
    ScheduleValidationError,
    UpstreamError,
)

# Expose key classes at the module level
__all__ = [
    'ScheduleBuildCoordinator',
    'ScheduleBuildError',
    'ScheduleValidationError',
    'ScheduleNotFoundError',
    'UpstreamError',
    'PartialPersistenceError'
]
