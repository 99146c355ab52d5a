from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from starlette.concurrency import run_in_threadpool

from app.api.deps import get_current_user, get_email_service, get_system_state, get_user_store
from app.config import settings
from app.core.exceptions import AppError, DatabaseUnavailableError
from app.core.logging import get_logger
from app.core.state import SystemState
from app.middleware.rate_limit import limiter
from app.schemas.auth import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    TokenResponse,
    UserRead,
)
from app.services import auth_service
from app.services.email_service import EmailService
from app.services.user_store import UserRecord, UserStore

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

FORGOT_PASSWORD_MESSAGE = "Se o email estiver cadastrado, uma nova senha sera enviada"


def _login_url() -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/login"


def _user_read(user: UserRecord) -> UserRead:
    return UserRead(id=user.id, email=user.email, name=user.name)


@router.post("/login", response_model=TokenResponse, summary="Login")
@limiter.limit("10/minute")
def login(
    request: Request,
    body: LoginRequest,
    store: UserStore = Depends(get_user_store),
    state: SystemState = Depends(get_system_state),
) -> TokenResponse:
    user = auth_service.authenticate_user(store, body.email, body.password)
    return TokenResponse(token=auth_service.issue_token(user), user=_user_read(user), mode=state.mode.value)


@router.get("/me", response_model=UserRead, summary="Usuario autenticado")
def me(user: UserRecord = Depends(get_current_user)) -> UserRead:
    return _user_read(user)


@router.post("/change-password", response_model=MessageResponse, summary="Alterar senha")
@limiter.limit("10/minute")
def change_password(
    request: Request,
    body: ChangePasswordRequest,
    user: UserRecord = Depends(get_current_user),
    store: UserStore = Depends(get_user_store),
) -> MessageResponse:
    auth_service.change_password(store, user.email, body.current_password, body.new_password)
    return MessageResponse(message="Senha alterada com sucesso")


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Cadastrar usuario",
)
@limiter.limit("5/minute")
async def register(
    request: Request,
    body: RegisterRequest,
    store: UserStore = Depends(get_user_store),
    state: SystemState = Depends(get_system_state),
    email_service: EmailService = Depends(get_email_service),
) -> TokenResponse:
    if not state.is_online:
        raise DatabaseUnavailableError("Cadastro indisponivel no modo offline")

    password_hash = await run_in_threadpool(auth_service.hash_password, body.password)
    user = await run_in_threadpool(store.create, body.email, password_hash, body.name.strip())
    logger.info("auth.registered", user_id=user.id)

    try:
        await email_service.send_welcome_email(user.email, user.name, _login_url())
        if settings.ADMIN_EMAIL:
            await email_service.send_admin_notification(settings.ADMIN_EMAIL, user.email, user.name)
    except AppError:
        logger.warning("auth.register_email_failed", user_id=user.id)

    return TokenResponse(token=auth_service.issue_token(user), user=_user_read(user), mode=state.mode.value)


@router.post("/forgot-password", response_model=MessageResponse, summary="Recuperar senha")
@limiter.limit("5/minute")
async def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    store: UserStore = Depends(get_user_store),
    email_service: EmailService = Depends(get_email_service),
) -> MessageResponse:
    user = await run_in_threadpool(store.get_by_email, body.email)
    if user is None:
        logger.info("auth.forgot_password_unknown")
        return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)

    new_password = auth_service.generate_password()
    password_hash = await run_in_threadpool(auth_service.hash_password, new_password)
    try:
        await email_service.send_password_reset_email(user.email, user.name, new_password, _login_url())
    except AppError as exc:
        # Same answer as an unknown email; the stored password stays unchanged.
        logger.warning("auth.password_reset_email_failed", user_id=user.id, error=exc.code)
        return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)

    await run_in_threadpool(store.update_password, user.email, password_hash)
    logger.info("auth.password_reset", user_id=user.id)
    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)
