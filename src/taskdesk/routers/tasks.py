from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..auth import get_current_owner_id
from ..errors import NotFoundError
from ..repositories import ListQuery, TaskRepository, get_task_repository
from ..schemas import TaskCreate, TaskDeleteResponse, TaskListResponse, TaskOut, TaskResponse, TaskUpdate
from ..utils import list_envelope

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/tasks",
    tags=["tasks"],
    responses={401: {"description": "Missing or invalid bearer token"}},
)

TASK_NOT_FOUND = "Task not found"


def _get_repo(repo: TaskRepository = Depends(get_task_repository)) -> TaskRepository:
    """
    Dependency wrapper for repository to keep signatures clean.
    """
    return repo


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=TaskListResponse,
    summary="List Tasks",
    description=(
        "List the caller's tasks, newest first.\n\n"
        "Query parameters:\n"
        "- completed: filter by completion status ('true' matches completed tasks, any other value pending ones)\n"
        "- tag: only tasks carrying this tag\n"
        "- priority: low, medium or high (unknown values are ignored)\n"
        "- dueDate: calendar date; matches tasks due at any time on that day\n\n"
        "Returns the number of matching tasks and the tasks themselves."
    ),
    responses={
        200: {"description": "List retrieved successfully"},
        422: {"description": "Invalid dueDate filter"},
    },
)
def list_tasks(
    completed: Optional[str] = Query(None, description="Filter by completion status"),
    tag: Optional[str] = Query(None, description="Filter by tag"),
    priority: Optional[str] = Query(None, description="Filter by priority: low, medium, high"),
    due_date: Optional[str] = Query(None, alias="dueDate", description="Filter by due date (YYYY-MM-DD)"),
    owner_id: str = Depends(get_current_owner_id),
    repo: TaskRepository = Depends(_get_repo),
) -> TaskListResponse:
    """
    List tasks matching the filters.
    """
    query = ListQuery.from_params(completed=completed, tag=tag, priority=priority, due_date=due_date)
    items = repo.list(owner_id, query)
    envelope = list_envelope([TaskOut.from_entity(it) for it in items])
    return TaskListResponse(**envelope)


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a new task owned by the caller and return it.",
    responses={
        201: {"description": "Task created successfully"},
        422: {"description": "Validation error"},
    },
)
def create_task(
    payload: TaskCreate,
    owner_id: str = Depends(get_current_owner_id),
    repo: TaskRepository = Depends(_get_repo),
) -> TaskResponse:
    """
    Create a new task.
    """
    created = repo.create(owner_id, payload)
    logger.info("Created task %s for owner %s", created["id"], owner_id)
    return TaskResponse(message="Task created successfully", task=TaskOut.from_entity(created))


# PUBLIC_INTERFACE
@router.put(
    "/{task_id}",
    response_model=TaskResponse,
    summary="Update Task",
    description=(
        "Update an existing task. Only the fields present in the body are changed; "
        "description and dueDate may be set to null to clear them."
    ),
    responses={
        200: {"description": "Task updated"},
        404: {"description": "Task not found"},
        422: {"description": "Validation error"},
    },
)
def update_task(
    task_id: str,
    payload: TaskUpdate,
    owner_id: str = Depends(get_current_owner_id),
    repo: TaskRepository = Depends(_get_repo),
) -> TaskResponse:
    """
    Partial update of a task, even though it travels as PUT.
    """
    updated = repo.update(owner_id, task_id, payload)
    if not updated:
        raise NotFoundError(TASK_NOT_FOUND)
    logger.info("Updated task %s for owner %s", task_id, owner_id)
    return TaskResponse(message="Task updated successfully", task=TaskOut.from_entity(updated))


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    response_model=TaskDeleteResponse,
    summary="Delete Task",
    description="Delete a task by ID. Deletion is immediate and permanent.",
    responses={
        200: {"description": "Task deleted"},
        404: {"description": "Task not found"},
    },
)
def delete_task(
    task_id: str,
    owner_id: str = Depends(get_current_owner_id),
    repo: TaskRepository = Depends(_get_repo),
) -> TaskDeleteResponse:
    """
    Delete a task. Returns the deleted id, 404 if not found.
    """
    ok = repo.delete(owner_id, task_id)
    if not ok:
        raise NotFoundError(TASK_NOT_FOUND)
    logger.info("Deleted task %s for owner %s", task_id, owner_id)
    return TaskDeleteResponse(message="Task deleted successfully", task_id=task_id)


# PUBLIC_INTERFACE
@router.patch(
    "/{task_id}/toggle",
    response_model=TaskResponse,
    summary="Toggle Task",
    description="Flip the completion status of a task.",
    responses={
        200: {"description": "Task toggled"},
        404: {"description": "Task not found"},
    },
)
def toggle_task(
    task_id: str,
    owner_id: str = Depends(get_current_owner_id),
    repo: TaskRepository = Depends(_get_repo),
) -> TaskResponse:
    """
    Toggle a task between completed and incomplete.
    """
    toggled = repo.toggle(owner_id, task_id)
    if not toggled:
        raise NotFoundError(TASK_NOT_FOUND)
    state = "completed" if toggled["is_completed"] else "incomplete"
    logger.info("Toggled task %s for owner %s to %s", task_id, owner_id, state)
    return TaskResponse(message=f"Task marked as {state}", task=TaskOut.from_entity(toggled))
