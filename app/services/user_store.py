from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError
from app.models import SimpleUser
from app.services.reference_data import OFFLINE_USERS


@dataclass
class UserRecord:
    id: int
    email: str
    password: str
    name: str | None = None


class UserStore(Protocol):
    def get_by_email(self, email: str) -> UserRecord | None: ...

    def create(self, email: str, password_hash: str, name: str | None) -> UserRecord: ...

    def update_password(self, email: str, password_hash: str) -> bool: ...


class OfflineUserStore:
    """In-memory users available while the database is unreachable."""

    def __init__(self, seed: list[dict] | None = None) -> None:
        self._lock = threading.Lock()
        self._users: dict[str, UserRecord] = {}
        for user in OFFLINE_USERS if seed is None else seed:
            record = UserRecord(**user)
            self._users[record.email.lower()] = record

    def get_by_email(self, email: str) -> UserRecord | None:
        with self._lock:
            user = self._users.get(email.lower())
            return UserRecord(**vars(user)) if user else None

    def create(self, email: str, password_hash: str, name: str | None) -> UserRecord:
        with self._lock:
            key = email.lower()
            if key in self._users:
                raise ConflictError("Email ja cadastrado")
            record = UserRecord(
                id=max((user.id for user in self._users.values()), default=0) + 1,
                email=key,
                password=password_hash,
                name=name,
            )
            self._users[key] = record
            return UserRecord(**vars(record))

    def update_password(self, email: str, password_hash: str) -> bool:
        with self._lock:
            user = self._users.get(email.lower())
            if user is None:
                return False
            user.password = password_hash
            return True


class DatabaseUserStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    @staticmethod
    def _record(user: SimpleUser) -> UserRecord:
        return UserRecord(id=user.id, email=user.email, password=user.password, name=user.name)

    def _find(self, email: str) -> SimpleUser | None:
        return self.db.scalar(select(SimpleUser).where(SimpleUser.email == email.lower()))

    def get_by_email(self, email: str) -> UserRecord | None:
        user = self._find(email)
        return self._record(user) if user else None

    def create(self, email: str, password_hash: str, name: str | None) -> UserRecord:
        if self._find(email) is not None:
            raise ConflictError("Email ja cadastrado")
        user = SimpleUser(email=email.lower(), password=password_hash, name=name)
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError("Email ja cadastrado") from exc
        self.db.refresh(user)
        return self._record(user)

    def update_password(self, email: str, password_hash: str) -> bool:
        user = self._find(email)
        if user is None:
            return False
        user.password = password_hash
        self.db.commit()
        return True


_OFFLINE_STORE: OfflineUserStore | None = None
_OFFLINE_LOCK = threading.Lock()


def get_offline_user_store() -> OfflineUserStore:
    global _OFFLINE_STORE
    if _OFFLINE_STORE is None:
        with _OFFLINE_LOCK:
            if _OFFLINE_STORE is None:
                _OFFLINE_STORE = OfflineUserStore()
    return _OFFLINE_STORE


def reset_offline_user_store() -> None:
    global _OFFLINE_STORE
    with _OFFLINE_LOCK:
        _OFFLINE_STORE = None
