from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import date
from typing import Any, Dict, Optional, Union

from ..models import Priority


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class FilterOptions:
    """
    Optional-field description of a task list query.

    ``None`` means the key is unset and no predicate is sent for it. This is
    distinct from a falsy value: ``completed=False`` asks for pending tasks,
    while ``completed=None`` shows everything.
    """

    completed: Optional[bool] = None
    tag: Optional[str] = None
    priority: Optional[Union[Priority, str]] = None
    due_date: Optional[Union[date, str]] = None

    def with_changes(self, **changes: Any) -> "FilterOptions":
        """Return a copy with the given keys set (pass None to unset one)."""
        return replace(self, **changes)

    def without(self, name: str) -> "FilterOptions":
        """Return a copy with one key unset."""
        return replace(self, **{name: None})

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def to_params(self) -> Dict[str, str]:
        """Render only the set keys as query-string parameters."""
        params: Dict[str, str] = {}
        if self.completed is not None:
            params["completed"] = "true" if self.completed else "false"
        if self.tag:
            params["tag"] = self.tag
        if self.priority is not None:
            params["priority"] = self.priority.value if isinstance(self.priority, Priority) else str(self.priority)
        if self.due_date is not None:
            params["dueDate"] = self.due_date.isoformat() if isinstance(self.due_date, date) else str(self.due_date)
        return params
