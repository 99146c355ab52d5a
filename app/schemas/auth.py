from __future__ import annotations

from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _normalize_email(value: str) -> str:
    value = value.strip().lower()
    local, _, domain = value.partition("@")
    if not local or not domain:
        raise ValueError("Email invalido")
    return value


Email = Annotated[str, AfterValidator(_normalize_email)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoginRequest(CamelModel):
    email: Email
    password: str = Field(min_length=1)


class RegisterRequest(CamelModel):
    email: Email
    password: str = Field(min_length=6, max_length=128)
    name: str = Field(min_length=1, max_length=255)


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6, max_length=128)


class ForgotPasswordRequest(CamelModel):
    email: Email


class UserRead(BaseModel):
    id: int
    email: str
    name: str | None = None

    model_config = ConfigDict(from_attributes=True)


class TokenResponse(BaseModel):
    success: bool = True
    token: str
    user: UserRead
    mode: str


class MessageResponse(BaseModel):
    success: bool = True
    message: str
