from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from functools import lru_cache
from threading import RLock
from typing import Callable, Dict, List, Optional, Tuple

from .errors import ValidationError
from .models import Priority, TaskEntity, utcnow
from .schemas import TaskCreate, TaskUpdate, parse_due_date
from .settings import get_settings

logger = logging.getLogger(__name__)

_TRUE_FLAGS = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ListQuery:
    """
    Filter options for listing tasks. ``None`` means "no constraint".

    The owner is not part of the query: every repository method takes it as a
    separate, mandatory argument.
    """
    completed: Optional[bool] = None
    tag: Optional[str] = None
    priority: Optional[Priority] = None
    due_on: Optional[date] = None

    @classmethod
    def from_params(
        cls,
        completed: Optional[str] = None,
        tag: Optional[str] = None,
        priority: Optional[str] = None,
        due_date: Optional[str] = None,
    ) -> "ListQuery":
        """
        Map raw query-string values onto a ListQuery.

        - completed: 'true'/'1'/'yes'/'on' (any case) is True, anything else False
        - tag: exact tag to look for, compared as sent; empty means unset
        - priority: ignored unless one of low/medium/high
        - due_date: calendar date (a datetime's date part is used); unparseable raises ValidationError
        """
        completed_flag = None
        if completed is not None:
            completed_flag = completed.strip().lower() in _TRUE_FLAGS

        tag_value = tag or None

        priority_value = Priority.parse(priority)
        if priority is not None and priority_value is None:
            logger.debug("Ignoring unknown priority filter %r", priority)

        due_on = None
        if due_date:
            try:
                parsed = parse_due_date(due_date)
            except ValueError as e:
                raise ValidationError.for_field("dueDate", str(e)) from e
            due_on = parsed.date() if parsed else None

        return cls(
            completed=completed_flag,
            tag=tag_value,
            priority=priority_value,
            due_on=due_on,
        )

    def due_window(self) -> Optional[Tuple[datetime, Optional[datetime]]]:
        """
        Half-open ``[day 00:00, next day 00:00)`` window for the due date filter.
        The upper bound is None on the last representable day.
        """
        if self.due_on is None:
            return None
        start = datetime.combine(self.due_on, time.min)
        if self.due_on == date.max:
            return start, None
        return start, start + timedelta(days=1)

    def matches(self, task: TaskEntity) -> bool:
        if self.completed is not None and task["is_completed"] != self.completed:
            return False
        if self.tag is not None and self.tag not in task["tags"]:
            return False
        if self.priority is not None and task["priority"] != self.priority.value:
            return False
        window = self.due_window()
        if window is not None:
            start, end = window
            due = task["due_date"]
            if due is None or due < start or (end is not None and due >= end):
                return False
        return True


def new_id() -> str:
    return uuid.uuid4().hex


# PUBLIC_INTERFACE
class TaskRepository(ABC):
    """
    Abstract repository contract for task storage backends.

    Every operation is scoped to ``owner_id``: records owned by someone else
    are never returned and never matched, so callers cannot tell them apart
    from records that do not exist.
    """

    @abstractmethod
    def create(self, owner_id: str, data: TaskCreate) -> TaskEntity:
        """Create and return a new TaskEntity owned by owner_id."""

    @abstractmethod
    def get(self, owner_id: str, task_id: str) -> Optional[TaskEntity]:
        """Return the owner's TaskEntity by id, or None if not found."""

    @abstractmethod
    def update(self, owner_id: str, task_id: str, data: TaskUpdate) -> Optional[TaskEntity]:
        """Update the fields present in data. Return updated entity or None if not found."""

    @abstractmethod
    def delete(self, owner_id: str, task_id: str) -> bool:
        """Delete the owner's TaskEntity by id. Return True if deleted, False if not found."""

    @abstractmethod
    def toggle(self, owner_id: str, task_id: str) -> Optional[TaskEntity]:
        """Flip is_completed. Return updated entity or None if not found."""

    @abstractmethod
    def list(self, owner_id: str, query: Optional[ListQuery] = None) -> List[TaskEntity]:
        """
        Return the owner's tasks matching query, newest first.
        - Filter by completed, tag, priority
        - Filter by due date within a whole-day window
        """


def _copy(task: TaskEntity) -> TaskEntity:
    copied = task.copy()
    copied["tags"] = list(task["tags"])
    return copied


class InMemoryTaskRepository(TaskRepository):
    """
    Thread-safe in-memory repository suitable for testing and default runtime.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._lock = RLock()
        self._items: Dict[str, TaskEntity] = {}
        self._clock = clock

    def _now(self) -> datetime:
        return self._clock()

    def _find(self, owner_id: str, task_id: str) -> Optional[TaskEntity]:
        item = self._items.get(task_id)
        if item is None or item["owner_id"] != owner_id:
            return None
        return item

    def create(self, owner_id: str, data: TaskCreate) -> TaskEntity:
        now = self._now()
        entity: TaskEntity = {
            "id": new_id(),
            "owner_id": owner_id,
            "title": data.title,
            "description": data.description,
            "due_date": data.due_date,
            "is_completed": False,
            "tags": list(data.tags),
            "priority": data.priority.value,
            "created_at": now,
            "updated_at": now,
        }
        with self._lock:
            self._items[entity["id"]] = entity
        return _copy(entity)

    def get(self, owner_id: str, task_id: str) -> Optional[TaskEntity]:
        with self._lock:
            item = self._find(owner_id, task_id)
            return None if item is None else _copy(item)

    def update(self, owner_id: str, task_id: str, data: TaskUpdate) -> Optional[TaskEntity]:
        with self._lock:
            existing = self._find(owner_id, task_id)
            if existing is None:
                return None

            # Update only provided fields
            updated = _copy(existing)
            for field, value in data.changes().items():
                updated[field] = value  # type: ignore[literal-required]
            updated["updated_at"] = self._now()

            self._items[task_id] = updated
            return _copy(updated)

    def delete(self, owner_id: str, task_id: str) -> bool:
        with self._lock:
            if self._find(owner_id, task_id) is None:
                return False
            del self._items[task_id]
            return True

    def toggle(self, owner_id: str, task_id: str) -> Optional[TaskEntity]:
        with self._lock:
            existing = self._find(owner_id, task_id)
            if existing is None:
                return None
            updated = _copy(existing)
            updated["is_completed"] = not existing["is_completed"]
            updated["updated_at"] = self._now()
            self._items[task_id] = updated
            return _copy(updated)

    def list(self, owner_id: str, query: Optional[ListQuery] = None) -> List[TaskEntity]:
        q = query or ListQuery()
        with self._lock:
            # Insertion index breaks created_at ties so the newest insert comes first
            matched = [
                (idx, t)
                for idx, t in enumerate(self._items.values())
                if t["owner_id"] == owner_id and q.matches(t)
            ]
            matched.sort(key=lambda pair: (pair[1]["created_at"], pair[0]), reverse=True)
            # Return copies to avoid external mutation
            return [_copy(t) for _, t in matched]


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_task_repository() -> TaskRepository:
    """
    Factory to return the configured task repository based on settings.
    - memory: InMemoryTaskRepository
    - sqlite: SQLiteTaskRepository (standard library sqlite3)

    Cached so that every request shares one store.
    """
    settings = get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteTaskRepository

        logger.info("Using sqlite task repository at %s", settings.sqlite_db_path)
        return SQLiteTaskRepository(settings.sqlite_db_path)
    logger.info("Using in-memory task repository")
    return InMemoryTaskRepository()
