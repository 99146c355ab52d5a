from __future__ import annotations

from collections.abc import Iterator
from functools import lru_cache

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.exceptions import DatabaseUnavailableError, UnauthorizedError
from app.core.state import SystemState
from app.integrations.apify import ApifyClient, build_apify_client
from app.services.auth_service import decode_access_token
from app.services.email_service import EmailService, build_email_service
from app.services.user_store import DatabaseUserStore, UserRecord, UserStore, get_offline_user_store

bearer_scheme = HTTPBearer(auto_error=False)


def get_system_state(request: Request) -> SystemState:
    return request.app.state.system


def get_optional_db(state: SystemState = Depends(get_system_state)) -> Iterator[Session | None]:
    session = state.open_session()
    if session is None:
        yield None
        return
    try:
        yield session
    finally:
        session.close()


def get_db(db: Session | None = Depends(get_optional_db)) -> Session:
    if db is None:
        raise DatabaseUnavailableError()
    return db


def get_user_store(db: Session | None = Depends(get_optional_db)) -> UserStore:
    if db is None:
        return get_offline_user_store()
    return DatabaseUserStore(db)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    store: UserStore = Depends(get_user_store),
) -> UserRecord:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError("Token de acesso ausente")

    payload = decode_access_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise UnauthorizedError("Token invalido ou expirado")

    user = store.get_by_email(str(payload["sub"]))
    if user is None:
        raise UnauthorizedError("Usuario nao encontrado")
    return user


@lru_cache
def get_email_service() -> EmailService:
    return build_email_service()


def get_apify_client() -> ApifyClient:
    return build_apify_client()
