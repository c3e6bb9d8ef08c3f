"""
Scheduling Agents

LLM agents used while building shooting schedules.
"""

from .schedule_planner_agent import SchedulePlannerAgent

__all__ = ['SchedulePlannerAgent']
