from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, List, Optional, TypeVar

from ..errors import TaskdeskError
from ..schemas import TaskOut
from .api import TaskApiClient
from .filters import FilterOptions
from .grouping import TaskGroup, TaskStats, compute_stats, group_tasks

logger = logging.getLogger(__name__)

T = TypeVar("T")


# PUBLIC_INTERFACE
class TaskBoard:
    """
    Client-side view of the current user's tasks.

    Filtering happens on the server: changing the filters re-fetches the list.
    Mutations patch the local list from the record the server returns, and
    only after the call succeeds. A failed call leaves the list as it was,
    records ``error`` and re-raises. Starting a session re-fetches the list;
    ending one empties it. There is no rollback, retry or request
    de-duplication; when calls race, the last response to arrive wins.
    """

    def __init__(self, api: TaskApiClient, clock: Optional[Callable[[], datetime]] = None) -> None:
        self.api = api
        self.tasks: List[TaskOut] = []
        self.filters = FilterOptions()
        self.error: Optional[str] = None
        self.is_loading = False
        self._clock = clock
        api.session.on_change(self._on_session_change)

    def _now(self) -> Optional[datetime]:
        return self._clock() if self._clock else None

    def _on_session_change(self, session: Any) -> None:
        if session.is_authenticated:
            self.refresh()
        else:
            self.tasks = []

    def _run(self, action: str, call: Callable[[], T]) -> T:
        self.is_loading = True
        self.error = None
        try:
            return call()
        except TaskdeskError as e:
            self.error = e.message or f"Failed to {action}"
            logger.warning("Failed to %s: %s", action, self.error)
            raise
        finally:
            self.is_loading = False

    # Derived state

    @property
    def stats(self) -> TaskStats:
        return compute_stats(self.tasks, self._now())

    @property
    def groups(self) -> List[TaskGroup]:
        return group_tasks(self.tasks, self._now())

    # Fetching

    def refresh(self) -> None:
        """
        Re-fetch the list for the current filters. Does nothing without a
        session; on failure the previous tasks are kept and ``error`` is set.
        """
        if not self.api.session.is_authenticated:
            return
        try:
            response = self._run("fetch tasks", lambda: self.api.list_tasks(self.filters))
        except TaskdeskError:
            return
        self.tasks = list(response.tasks)

    def set_filters(self, filters: FilterOptions) -> None:
        self.filters = filters
        self.refresh()

    def update_filter(self, **changes: Any) -> None:
        """Set (or, with None, unset) individual filter keys and re-fetch."""
        self.set_filters(self.filters.with_changes(**changes))

    def clear_filters(self) -> None:
        self.set_filters(FilterOptions())

    # Mutations

    def create_task(self, title: str, **fields: Any) -> TaskOut:
        response = self._run("create task", lambda: self.api.create_task(title, **fields))
        self.tasks = [response.task, *self.tasks]
        return response.task

    def update_task(self, task_id: str, **changes: Any) -> TaskOut:
        response = self._run("update task", lambda: self.api.update_task(task_id, **changes))
        self._replace(response.task)
        return response.task

    def delete_task(self, task_id: str) -> str:
        response = self._run("delete task", lambda: self.api.delete_task(task_id))
        self.tasks = [t for t in self.tasks if t.id != task_id]
        return response.task_id

    def toggle_task(self, task_id: str) -> TaskOut:
        response = self._run("toggle task", lambda: self.api.toggle_task(task_id))
        self._replace(response.task)
        return response.task

    def _replace(self, task: TaskOut) -> None:
        self.tasks = [task if t.id == task.id else t for t in self.tasks]
