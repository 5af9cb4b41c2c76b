from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable, List, Optional, Union

import pydantic

from ..schemas import UserOut

logger = logging.getLogger(__name__)

Listener = Callable[["SessionContext"], None]


# PUBLIC_INTERFACE
class SessionContext:
    """
    Holds the bearer token and user for the current client session.

    The session is set explicitly with ``start()`` after login/signup and torn
    down with ``clear()`` on logout or when any request comes back 401. When a
    ``storage_path`` is given, the session is mirrored to a JSON file so that
    ``restore()`` can pick it up in a later process.
    """

    def __init__(self, storage_path: Optional[Union[str, Path]] = None) -> None:
        self._storage_path = Path(storage_path) if storage_path else None
        self._token: Optional[str] = None
        self._user: Optional[UserOut] = None
        self._listeners: List[Listener] = []

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def user(self) -> Optional[UserOut]:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return bool(self._token) and self._user is not None

    def on_change(self, listener: Listener) -> None:
        """Call listener(session) after every start/clear."""
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def start(self, token: str, user: UserOut) -> None:
        self._token = token
        self._user = user
        self._save()
        self._notify()

    def clear(self) -> None:
        self._token = None
        self._user = None
        if self._storage_path is not None and self._storage_path.exists():
            self._storage_path.unlink()
        self._notify()

    def restore(self) -> bool:
        """
        Load a previously saved session. Both token and user must be present
        and readable; anything else clears the stored session.
        """
        if self._storage_path is None or not self._storage_path.exists():
            return False
        try:
            data = json.loads(self._storage_path.read_text(encoding="utf-8"))
            token = data.get("token") if isinstance(data, dict) else None
            user = UserOut.model_validate(data.get("user")) if token else None
        except (OSError, ValueError, pydantic.ValidationError):
            # json.JSONDecodeError is a ValueError
            logger.warning("Discarding unreadable session file %s", self._storage_path)
            token, user = None, None

        if not token or user is None:
            self.clear()
            return False
        self._token = token
        self._user = user
        self._notify()
        return True

    def _save(self) -> None:
        if self._storage_path is None or self._user is None:
            return
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"token": self._token, "user": self._user.model_dump(mode="json", by_alias=True)}
        self._storage_path.write_text(json.dumps(payload), encoding="utf-8")
