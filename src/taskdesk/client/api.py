from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Union

import httpx
from pydantic.alias_generators import to_camel

from ..errors import AuthError, ServerError, TaskdeskError, ValidationError, error_from_response
from ..models import Priority
from ..schemas import AuthResponse, TaskDeleteResponse, TaskListResponse, TaskResponse, UserOut
from ..settings import get_client_settings
from .filters import FilterOptions
from .session import SessionContext

logger = logging.getLogger(__name__)


def _encode(value: Any) -> Any:
    if isinstance(value, Priority):
        return value.value
    if isinstance(value, date):
        # datetime is a date subclass; both render as ISO-8601
        return value.isoformat()
    if isinstance(value, (list, tuple, set)):
        return [_encode(v) for v in value]
    return value


def _payload(fields: Dict[str, Any], drop_none: bool) -> Dict[str, Any]:
    return {to_camel(k): _encode(v) for k, v in fields.items() if not (drop_none and v is None)}


def _require_title(title: Any) -> None:
    if not isinstance(title, str) or not title.strip():
        raise ValidationError.for_field("title", "Title is required")


# PUBLIC_INTERFACE
class TaskApiClient:
    """
    HTTP client for the task API.

    Every request carries ``Authorization: Bearer <token>`` when the session
    has one. Error responses are raised as the shared error classes; a 401 also
    clears the session.

    Args:
        base_url: API root, e.g. 'http://localhost:5000/api'. Defaults to TASKDESK_API_URL.
        session: Session holding the token. A fresh one is created when omitted.
        http: httpx.Client to send requests with (a FastAPI TestClient works too).
        timeout: Timeout in seconds for the client created when ``http`` is omitted.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        session: Optional[SessionContext] = None,
        http: Optional[httpx.Client] = None,
        timeout: float = 10.0,
    ) -> None:
        settings = get_client_settings()
        self.base_url = (base_url or settings.api_url).rstrip("/")
        self.session = session if session is not None else SessionContext(settings.session_file)
        self._owns_http = http is None
        self._http = http if http is not None else httpx.Client(timeout=timeout)

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "TaskApiClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Any:
        headers = {"Content-Type": "application/json"}
        if self.session.token:
            headers["Authorization"] = f"Bearer {self.session.token}"
        url = f"{self.base_url}/{path.lstrip('/')}"

        try:
            response = self._http.request(method, url, json=json, params=params, headers=headers)
        except httpx.TransportError as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise ServerError(f"Network error: {e}") from e

        if response.is_success:
            return response.json()

        try:
            body = response.json()
        except ValueError:
            body = None
        error: TaskdeskError = error_from_response(response.status_code, body)
        logger.warning("%s %s returned %s: %s", method, url, response.status_code, error.message)
        if isinstance(error, AuthError):
            logger.warning("Clearing session after 401")
            self.session.clear()
        raise error

    # Authentication

    def signup(self, name: str, email: str, password: str) -> AuthResponse:
        data = self._request("POST", "auth/signup", json={"name": name, "email": email, "password": password})
        result = AuthResponse.model_validate(data)
        self.session.start(result.token, result.user)
        return result

    def login(self, email: str, password: str) -> AuthResponse:
        data = self._request("POST", "auth/login", json={"email": email, "password": password})
        result = AuthResponse.model_validate(data)
        self.session.start(result.token, result.user)
        return result

    def get_current_user(self) -> UserOut:
        return UserOut.model_validate(self._request("GET", "auth/me"))

    def logout(self) -> None:
        self.session.clear()

    # Tasks

    def list_tasks(self, filters: Optional[FilterOptions] = None) -> TaskListResponse:
        params = filters.to_params() if filters is not None else {}
        return TaskListResponse.model_validate(self._request("GET", "tasks", params=params))

    def create_task(
        self,
        title: str,
        description: Optional[str] = None,
        due_date: Optional[Union[date, str]] = None,
        priority: Optional[Union[Priority, str]] = None,
        tags: Optional[List[str]] = None,
    ) -> TaskResponse:
        _require_title(title)
        body = _payload(
            {"title": title, "description": description, "due_date": due_date, "priority": priority, "tags": tags},
            drop_none=True,
        )
        return TaskResponse.model_validate(self._request("POST", "tasks", json=body))

    def update_task(self, task_id: str, **changes: Any) -> TaskResponse:
        """
        Send only the given fields. Keys are snake_case (``due_date``,
        ``is_completed``); passing ``description=None`` or ``due_date=None``
        clears that field.
        """
        if "title" in changes:
            _require_title(changes["title"])
        body = _payload(changes, drop_none=False)
        return TaskResponse.model_validate(self._request("PUT", f"tasks/{task_id}", json=body))

    def delete_task(self, task_id: str) -> TaskDeleteResponse:
        return TaskDeleteResponse.model_validate(self._request("DELETE", f"tasks/{task_id}"))

    def toggle_task(self, task_id: str) -> TaskResponse:
        return TaskResponse.model_validate(self._request("PATCH", f"tasks/{task_id}/toggle"))

    def health(self) -> Dict[str, Any]:
        return self._request("GET", "health")
