from __future__ import annotations

import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.config import settings
from app.core.exceptions import UnauthorizedError, ValidationError
from app.core.logging import get_logger
from app.services.user_store import UserRecord, UserStore

logger = get_logger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

_PASSWORD_ALPHABET = string.ascii_letters + string.digits


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False


def generate_password(length: int = 10) -> str:
    return "".join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(length))


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=settings.JWT_EXPIRATION_HOURS))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any] | None:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


def issue_token(user: UserRecord) -> str:
    return create_access_token({"sub": user.email, "uid": user.id, "name": user.name})


def authenticate_user(store: UserStore, email: str, password: str) -> UserRecord:
    user = store.get_by_email(email)
    if user is None or not verify_password(password, user.password):
        logger.info("auth.login_failed", email=email)
        raise UnauthorizedError("Email ou senha incorretos")
    logger.info("auth.login", user_id=user.id)
    return user


def change_password(store: UserStore, email: str, current_password: str, new_password: str) -> None:
    user = store.get_by_email(email)
    if user is None or not verify_password(current_password, user.password):
        raise UnauthorizedError("Senha atual incorreta")
    if current_password == new_password:
        raise ValidationError("A nova senha deve ser diferente da atual")
    store.update_password(user.email, hash_password(new_password))
    logger.info("auth.password_changed", user_id=user.id)
