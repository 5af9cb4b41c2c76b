"""
Python client for the task API.

``TaskApiClient`` speaks HTTP, ``SessionContext`` holds the bearer token,
and ``TaskBoard`` keeps the fetched tasks together with the derived
statistics and display groups.
"""
from .api import TaskApiClient
from .board import TaskBoard
from .filters import FilterOptions
from .grouping import TaskGroup, TaskStats, compute_stats, group_tasks
from .session import SessionContext

__all__ = [
    "FilterOptions",
    "SessionContext",
    "TaskApiClient",
    "TaskBoard",
    "TaskGroup",
    "TaskStats",
    "compute_stats",
    "group_tasks",
]
