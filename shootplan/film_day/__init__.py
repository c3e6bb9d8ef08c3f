"""
Film Day Module

Deterministic run-of-day (call, meal, wrap) computation for shooting days.
"""

from .schedule import (
    build_daily_film_schedule,
    derive_lunch_time,
    format_minutes_to_time,
    parse_time_to_minutes,
)
from .templates import TEMPLATES, get_template, list_templates

__all__ = [
    'build_daily_film_schedule',
    'derive_lunch_time',
    'format_minutes_to_time',
    'parse_time_to_minutes',
    'TEMPLATES',
    'get_template',
    'list_templates'
]
