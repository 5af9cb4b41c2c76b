from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, TypedDict


# PUBLIC_INTERFACE
class Priority(str, Enum):
    """Task priority levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Priority"]:
        """Return the matching Priority, or None for missing/unknown values. Matching is exact."""
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    A lightweight domain model representing a task for non-ORM storage
    backends.

    Fields:
    - id: Opaque unique identifier (uuid4 hex)
    - owner_id: Id of the owning user; immutable after creation
    - title: Short title (1..100 chars, trimmed on input via schemas)
    - description: Optional detailed description (<=500 chars)
    - due_date: Optional due datetime, naive UTC
    - is_completed: Boolean completion flag
    - tags: Tag strings (<=20 chars each)
    - priority: One of low/medium/high
    - created_at: naive UTC creation timestamp
    - updated_at: naive UTC last update timestamp
    """

    id: str
    owner_id: str
    title: str
    description: Optional[str]
    due_date: Optional[datetime]
    is_completed: bool
    tags: List[str]
    priority: str
    created_at: datetime
    updated_at: datetime


# PUBLIC_INTERFACE
class UserEntity(TypedDict):
    """A registered user. ``password_hash`` never leaves the service."""

    id: str
    name: str
    email: str
    password_hash: str
    created_at: datetime
    updated_at: datetime


# PUBLIC_INTERFACE
def utcnow() -> datetime:
    """Current time as a naive UTC datetime, the form every timestamp is stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# PUBLIC_INTERFACE
def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are taken as UTC already."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# PUBLIC_INTERFACE
def is_overdue(due_date: Optional[datetime], is_completed: bool, now: Optional[datetime] = None) -> bool:
    """
    A task is overdue when it has a due date in the past and is not completed.

    Never stored; callers recompute it on every read.
    """
    if due_date is None or is_completed:
        return False
    current = now if now is not None else utcnow()
    return to_naive_utc(due_date) < to_naive_utc(current)
