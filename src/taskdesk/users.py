from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from functools import lru_cache
from threading import RLock
from typing import Callable, Dict, Optional

from .models import UserEntity, utcnow
from .repositories import new_id
from .settings import get_settings

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class UserRepository(ABC):
    """Abstract repository contract for user accounts."""

    @abstractmethod
    def create(self, name: str, email: str, password_hash: str) -> Optional[UserEntity]:
        """Create a user. Return None if the email is already registered."""

    @abstractmethod
    def get(self, user_id: str) -> Optional[UserEntity]:
        """Return a user by id, or None."""

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[UserEntity]:
        """Return a user by (case-insensitive) email, or None."""


class InMemoryUserRepository(UserRepository):
    """Thread-safe in-memory user store."""

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._lock = RLock()
        self._items: Dict[str, UserEntity] = {}
        self._by_email: Dict[str, str] = {}
        self._clock = clock

    def create(self, name: str, email: str, password_hash: str) -> Optional[UserEntity]:
        key = email.strip().lower()
        now = self._clock()
        with self._lock:
            if key in self._by_email:
                return None
            user: UserEntity = {
                "id": new_id(),
                "name": name,
                "email": key,
                "password_hash": password_hash,
                "created_at": now,
                "updated_at": now,
            }
            self._items[user["id"]] = user
            self._by_email[key] = user["id"]
            return user.copy()

    def get(self, user_id: str) -> Optional[UserEntity]:
        with self._lock:
            user = self._items.get(user_id)
            return None if user is None else user.copy()

    def get_by_email(self, email: str) -> Optional[UserEntity]:
        with self._lock:
            user_id = self._by_email.get(email.strip().lower())
            return None if user_id is None else self._items[user_id].copy()


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_user_repository() -> UserRepository:
    """
    Factory to return the configured user repository based on settings.
    Uses the same backend (and sqlite file) as the task repository.
    """
    settings = get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteUserRepository

        return SQLiteUserRepository(settings.sqlite_db_path)
    return InMemoryUserRepository()
