from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import Priority, TaskEntity, UserEntity, is_overdue, to_naive_utc

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500
TAG_MAX_LENGTH = 20
NAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 6

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Shared type for incoming due dates which can be a date, datetime, or ISO8601 string
DueDateInput = Union[date, datetime, str]


def parse_due_date(value: Optional[DueDateInput]) -> Optional[datetime]:
    """
    Normalize due date input into a naive UTC datetime.
    - If value is a string, attempt to parse via datetime.fromisoformat; if time is missing, set to 00:00.
    - If value is a date (not datetime), convert to datetime at 00:00.
    - If value is an aware datetime, convert it to UTC and drop the tzinfo.

    Raises ValueError for unparseable input, including offsets that move the
    value outside the representable calendar range.
    """
    try:
        return _coerce_due_date(value)
    except OverflowError as e:
        raise ValueError("Due date is out of range") from e


def _coerce_due_date(value: Optional[DueDateInput]) -> Optional[datetime]:
    if value is None:
        return None

    if isinstance(value, datetime):
        return to_naive_utc(value)

    if isinstance(value, date):
        # Promote a date to a datetime at midnight
        return datetime(value.year, value.month, value.day, 0, 0, 0)

    if isinstance(value, str):
        s = value.strip()
        if s.endswith(("Z", "z")):
            s = s[:-1] + "+00:00"
        try:
            return to_naive_utc(datetime.fromisoformat(s))
        except ValueError:
            try:
                d = date.fromisoformat(s)
                return datetime(d.year, d.month, d.day, 0, 0, 0)
            except ValueError as e:
                raise ValueError(
                    "Invalid date format. Use ISO8601 date or datetime string (e.g., '2025-01-31' or '2025-01-31T13:45:00')."
                ) from e

    raise ValueError("Invalid type for dueDate; expected date, datetime, or ISO8601 string.")


def _clean_title(v: str) -> str:
    s = v.strip()
    if not (1 <= len(s) <= TITLE_MAX_LENGTH):
        raise ValueError(f"Title must be between 1 and {TITLE_MAX_LENGTH} characters")
    return s


def _clean_description(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    s = v.strip()
    if len(s) > DESCRIPTION_MAX_LENGTH:
        raise ValueError(f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters")
    return s or None


def _clean_priority(v: Any) -> Any:
    if isinstance(v, Priority) or v is None:
        return v
    parsed = Priority.parse(v) if isinstance(v, str) else None
    if parsed is None:
        raise ValueError("Priority must be low, medium, or high")
    return parsed


def _clean_tags(v: List[str]) -> List[str]:
    """Strip each tag, drop blanks and collapse duplicates, keeping first-seen order."""
    seen: List[str] = []
    for raw in v:
        tag = raw.strip()
        if len(tag) > TAG_MAX_LENGTH:
            raise ValueError(f"Tag cannot exceed {TAG_MAX_LENGTH} characters")
        if tag and tag not in seen:
            seen.append(tag)
    return seen


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# PUBLIC_INTERFACE
class TaskCreate(CamelModel):
    """
    Schema for creating a new task.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Pay rent",
                "description": "Transfer before noon",
                "dueDate": "2025-02-01",
                "priority": "high",
                "tags": ["home", "bills"],
            }
        }
    )

    title: str = Field(..., description="Short title for the task (1..100 characters)")
    description: Optional[str] = Field(default=None, description="Optional detailed description (<=500 characters)")
    due_date: Optional[datetime] = Field(
        default=None,
        description="Due date/time of the task. Accepts ISO8601 date or datetime; dates are set to 00:00",
    )
    priority: Priority = Field(default=Priority.MEDIUM, description="low, medium or high")
    tags: List[str] = Field(default_factory=list, description="Tags, each at most 20 characters")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """
        Strip whitespace and enforce 1..100 length.
        """
        return _clean_title(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return _clean_description(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def validate_due_date(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        """
        Normalize dueDate from str/date/datetime to datetime.
        """
        return parse_due_date(v)

    @field_validator("priority", mode="before")
    @classmethod
    def validate_priority(cls, v: Any) -> Any:
        if v is None:
            return Priority.MEDIUM
        return _clean_priority(v)

    @field_validator("tags", mode="before")
    @classmethod
    def default_tags(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: List[str]) -> List[str]:
        return _clean_tags(v)


# PUBLIC_INTERFACE
class TaskUpdate(CamelModel):
    """
    Schema for updating an existing task.
    All fields are optional; only provided fields will be updated.
    ``description`` and ``dueDate`` may be explicitly set to null to clear them.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Pay rent and utilities",
                "isCompleted": True,
                "dueDate": "2025-02-02T09:30:00",
            }
        }
    )

    title: Optional[str] = Field(default=None, description="Short title for the task")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    due_date: Optional[datetime] = Field(default=None, description="Due date/time; null clears it")
    priority: Optional[Priority] = Field(default=None, description="low, medium or high")
    tags: Optional[List[str]] = Field(default=None, description="Replacement tag list")
    is_completed: Optional[bool] = Field(default=None, description="Completion status flag")

    @field_validator("title", "priority", "tags", "is_completed", mode="before")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        """
        If title is provided, strip whitespace and enforce 1..100 length.
        """
        if v is None:
            return v
        return _clean_title(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return _clean_description(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def validate_due_date(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        return parse_due_date(v)

    @field_validator("priority", mode="before")
    @classmethod
    def validate_priority(cls, v: Any) -> Any:
        return _clean_priority(v)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return None if v is None else _clean_tags(v)

    def changes(self) -> dict:
        """Return only the fields present in the request, keyed by entity field name."""
        data = self.model_dump(exclude_unset=True)
        if "priority" in data:
            data["priority"] = Priority(data["priority"]).value
        return data


# PUBLIC_INTERFACE
class TaskOut(CamelModel):
    """
    Schema returned by the API for a task.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "3f0c2b8e9a6d4e4f8c1b2a3d4e5f6a7b",
                "title": "Pay rent",
                "description": None,
                "dueDate": "2025-02-01T00:00:00",
                "isCompleted": False,
                "tags": ["home"],
                "priority": "high",
                "ownerId": "9b1d0c7a5e3f4a2b8c6d4e2f0a1b3c5d",
                "createdAt": "2025-01-25T10:15:30.123456",
                "updatedAt": "2025-01-26T09:00:00.000001",
                "isOverdue": False,
            }
        }
    )

    id: str = Field(..., description="Unique identifier of the task")
    title: str = Field(..., description="Short title for the task")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    due_date: Optional[datetime] = Field(default=None, description="Due date/time as an ISO8601 datetime")
    is_completed: bool = Field(..., description="Completion status flag")
    tags: List[str] = Field(default_factory=list, description="Tags attached to the task")
    priority: Priority = Field(..., description="low, medium or high")
    owner_id: str = Field(..., description="Id of the owning user")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")
    is_overdue: bool = Field(default=False, description="Derived: past due and not completed")

    @classmethod
    def from_entity(cls, entity: TaskEntity, now: Optional[datetime] = None) -> "TaskOut":
        return cls(
            **entity,
            is_overdue=is_overdue(entity["due_date"], entity["is_completed"], now),
        )

    def overdue_at(self, now: Optional[datetime] = None) -> bool:
        """Recompute the overdue flag against ``now`` rather than trusting the serialized one."""
        return is_overdue(self.due_date, self.is_completed, now)


# PUBLIC_INTERFACE
class TaskListResponse(CamelModel):
    """Envelope for list responses."""

    count: int = Field(..., description="Number of tasks returned")
    tasks: List[TaskOut] = Field(..., description="Tasks, newest first")


# PUBLIC_INTERFACE
class TaskResponse(CamelModel):
    """Envelope for single-task mutation responses."""

    message: str
    task: TaskOut


# PUBLIC_INTERFACE
class TaskDeleteResponse(CamelModel):
    """Envelope for delete responses."""

    message: str
    task_id: str


# PUBLIC_INTERFACE
class SignupRequest(CamelModel):
    """Credentials and display name for a new account."""

    model_config = ConfigDict(
        json_schema_extra={"example": {"name": "Ada", "email": "ada@example.com", "password": "s3cret!"}}
    )

    name: str = Field(..., description="Display name (1..50 characters)")
    email: str = Field(..., description="Email address, unique per account")
    password: str = Field(..., description="Password (at least 6 characters)")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        s = v.strip()
        if not (1 <= len(s) <= NAME_MAX_LENGTH):
            raise ValueError(f"Name must be between 1 and {NAME_MAX_LENGTH} characters")
        return s

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        s = v.strip().lower()
        if not _EMAIL_RE.match(s):
            raise ValueError("Please provide a valid email")
        return s

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < PASSWORD_MIN_LENGTH:
            raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
        return v


# PUBLIC_INTERFACE
class LoginRequest(CamelModel):
    """Login credentials."""

    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


# PUBLIC_INTERFACE
class UserOut(CamelModel):
    """Public view of a user."""

    id: str
    name: str
    email: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, entity: UserEntity) -> "UserOut":
        return cls(
            id=entity["id"],
            name=entity["name"],
            email=entity["email"],
            created_at=entity["created_at"],
            updated_at=entity["updated_at"],
        )


# PUBLIC_INTERFACE
class AuthResponse(CamelModel):
    """Returned by signup and login."""

    message: str
    token: str
    user: UserOut
