"""
Derived views over the client's task collection.

Nothing here is stored or fetched: statistics and buckets are recomputed from
whatever tasks the board currently holds, against an injectable ``now``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..models import Priority, utcnow
from ..schemas import TaskOut

OVERDUE = "Overdue"
TODAY = "Today"
TOMORROW = "Tomorrow"
NO_DUE_DATE = "No Due Date"

DATE_LABEL_FORMAT = "%b %d, %Y"

_PRIORITY_RANK = {Priority.HIGH: 1, Priority.MEDIUM: 2, Priority.LOW: 3}
_FIXED_ORDER = {OVERDUE: 0, TODAY: 1, TOMORROW: 2}


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class TaskStats:
    total: int
    completed: int
    pending: int
    overdue: int


# PUBLIC_INTERFACE
@dataclass
class TaskGroup:
    """One display bucket. ``day`` is set only for the formatted-date buckets."""

    label: str
    day: Optional[date] = None
    tasks: List[TaskOut] = field(default_factory=list)


# PUBLIC_INTERFACE
def compute_stats(tasks: Iterable[TaskOut], now: Optional[datetime] = None) -> TaskStats:
    """Count total, completed, pending and overdue (pending and past due) tasks."""
    current = now or utcnow()
    total = completed = overdue = 0
    for task in tasks:
        total += 1
        if task.is_completed:
            completed += 1
        elif task.overdue_at(current):
            overdue += 1
    return TaskStats(total=total, completed=completed, pending=total - completed, overdue=overdue)


# PUBLIC_INTERFACE
def bucket_for(task: TaskOut, now: Optional[datetime] = None) -> Tuple[str, Optional[date]]:
    """
    Return ``(label, day)`` for the bucket a task belongs in.

    Today and Tomorrow win over Overdue; a completed task due before today
    goes into its own dated bucket rather than Overdue.
    """
    if task.due_date is None:
        return NO_DUE_DATE, None

    today = (now or utcnow()).date()
    due_day = task.due_date.date()
    if due_day == today:
        return TODAY, None
    if due_day == today + timedelta(days=1):
        return TOMORROW, None
    if due_day < today and not task.is_completed:
        return OVERDUE, None
    return due_day.strftime(DATE_LABEL_FORMAT), due_day


# PUBLIC_INTERFACE
def sort_tasks(tasks: Sequence[TaskOut]) -> List[TaskOut]:
    """Order by priority (high first), then due date ascending with undated tasks first."""
    return sorted(
        tasks,
        key=lambda t: (_PRIORITY_RANK.get(t.priority, 4), t.due_date or datetime.min),
    )


def _group_order(group: TaskGroup) -> Tuple[int, date]:
    if group.label in _FIXED_ORDER:
        return _FIXED_ORDER[group.label], date.min
    if group.label == NO_DUE_DATE:
        return 4, date.max
    return 3, group.day or date.max


# PUBLIC_INTERFACE
def group_tasks(tasks: Iterable[TaskOut], now: Optional[datetime] = None) -> List[TaskGroup]:
    """
    Partition tasks into display buckets.

    Bucket order: Overdue, Today, Tomorrow, dated buckets by ascending date,
    No Due Date. Empty buckets are left out; tasks inside each bucket are
    ordered by ``sort_tasks``.
    """
    current = now or utcnow()
    groups: Dict[str, TaskGroup] = {}
    for task in tasks:
        label, day = bucket_for(task, current)
        groups.setdefault(label, TaskGroup(label=label, day=day)).tasks.append(task)

    ordered = sorted(groups.values(), key=_group_order)
    for group in ordered:
        group.tasks = sort_tasks(group.tasks)
    return ordered
