from __future__ import annotations

from datetime import timedelta

from app.api.deps import get_email_service
from app.config import settings
from app.main import app
from app.services.auth_service import create_access_token, decode_access_token, verify_password
from app.services.email_service import EmailService
from tests.conftest import auth_header


def test_login_offline_returns_token(client, offline_users):
    response = client.post("/api/auth/login", json={"email": "TEST@test.com", "password": "test123"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["mode"] == "OFFLINE"
    assert body["user"] == {"id": 1, "email": "test@test.com", "name": "Test User"}
    payload = decode_access_token(body["token"])
    assert payload["sub"] == "test@test.com"
    assert payload["uid"] == 1


def test_login_with_wrong_password(client, offline_users):
    response = client.post("/api/auth/login", json={"email": "test@test.com", "password": "nope"})

    assert response.status_code == 401
    assert response.json()["message"] == "Email ou senha incorretos"
    assert response.json()["error"] == "UNAUTHORIZED"


def test_login_with_unknown_email(client, offline_users):
    response = client.post("/api/auth/login", json={"email": "ghost@test.com", "password": "test123"})

    assert response.status_code == 401


def test_login_rejects_malformed_email(client, offline_users):
    response = client.post("/api/auth/login", json={"email": "not-an-email", "password": "test123"})

    assert response.status_code == 400


def test_me_requires_token(client, offline_users):
    response = client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.json()["message"] == "Token de acesso ausente"


def test_me_rejects_expired_token(client, offline_users):
    token = create_access_token({"sub": "test@test.com"}, expires_delta=timedelta(seconds=-1))

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["message"] == "Token invalido ou expirado"


def test_me_returns_user(client, offline_users):
    response = client.get("/api/auth/me", headers=auth_header("test@test.com"))

    assert response.status_code == 200
    assert response.json()["email"] == "test@test.com"


def test_me_with_token_for_unknown_user(client, offline_users):
    response = client.get("/api/auth/me", headers=auth_header("ghost@test.com"))

    assert response.status_code == 401
    assert response.json()["message"] == "Usuario nao encontrado"


def test_change_password(client, offline_users):
    response = client.post(
        "/api/auth/change-password",
        json={"currentPassword": "test123", "newPassword": "nova-senha"},
        headers=auth_header("test@test.com"),
    )

    assert response.status_code == 200
    assert verify_password("nova-senha", offline_users.get_by_email("test@test.com").password)
    login = client.post("/api/auth/login", json={"email": "test@test.com", "password": "nova-senha"})
    assert login.status_code == 200


def test_change_password_with_wrong_current_password(client, offline_users):
    response = client.post(
        "/api/auth/change-password",
        json={"currentPassword": "errada", "newPassword": "nova-senha"},
        headers=auth_header("test@test.com"),
    )

    assert response.status_code == 401
    assert response.json()["message"] == "Senha atual incorreta"


def test_change_password_must_differ(client, offline_users):
    response = client.post(
        "/api/auth/change-password",
        json={"currentPassword": "test123", "newPassword": "test123"},
        headers=auth_header("test@test.com"),
    )

    assert response.status_code == 400


def test_register_is_unavailable_offline(client, email_outbox):
    response = client.post(
        "/api/auth/register",
        json={"email": "new@test.com", "password": "secret1", "name": "Nova"},
    )

    assert response.status_code == 503
    assert response.json()["error"] == "DATABASE_OFFLINE"
    assert email_outbox.sent == []


def test_register_online_creates_user_and_sends_emails(client, online_engine, email_outbox, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_EMAIL", "admin@test.com")

    response = client.post(
        "/api/auth/register",
        json={"email": "New@Test.com", "password": "secret1", "name": " Nova Pessoa "},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["mode"] == "RAILWAY"
    assert body["user"]["email"] == "new@test.com"
    assert body["user"]["name"] == "Nova Pessoa"
    assert [message.to for message in email_outbox.sent] == ["new@test.com", "admin@test.com"]
    assert email_outbox.sent[0].tags == ["welcome"]

    login = client.post("/api/auth/login", json={"email": "new@test.com", "password": "secret1"})
    assert login.status_code == 200
    assert login.json()["user"]["id"] == body["user"]["id"]


def test_register_duplicate_email(client, online_engine, email_outbox):
    payload = {"email": "dup@test.com", "password": "secret1", "name": "Dup"}
    assert client.post("/api/auth/register", json=payload).status_code == 201

    response = client.post("/api/auth/register", json=payload)

    assert response.status_code == 409
    assert response.json()["message"] == "Email ja cadastrado"


def test_register_rejects_short_password(client, online_engine, email_outbox):
    response = client.post("/api/auth/register", json={"email": "a@test.com", "password": "123", "name": "A"})

    assert response.status_code == 400


def test_forgot_password_resets_and_emails_new_password(client, offline_users, email_outbox):
    response = client.post("/api/auth/forgot-password", json={"email": "test@test.com"})

    assert response.status_code == 200
    assert response.json()["message"] == "Se o email estiver cadastrado, uma nova senha sera enviada"
    assert len(email_outbox.sent) == 1
    message = email_outbox.sent[0]
    new_password = message.text.split("Nova senha: ", 1)[1].split("\n", 1)[0]
    assert verify_password(new_password, offline_users.get_by_email("test@test.com").password)
    assert not verify_password("test123", offline_users.get_by_email("test@test.com").password)


def test_forgot_password_for_unknown_email_reveals_nothing(client, offline_users, email_outbox):
    response = client.post("/api/auth/forgot-password", json={"email": "ghost@test.com"})

    assert response.status_code == 200
    assert response.json()["message"] == "Se o email estiver cadastrado, uma nova senha sera enviada"
    assert email_outbox.sent == []


def test_forgot_password_with_failed_delivery_answers_like_unknown_email(client, offline_users):
    app.dependency_overrides[get_email_service] = lambda: EmailService([], console_fallback=False)

    known = client.post("/api/auth/forgot-password", json={"email": "test@test.com"})
    unknown = client.post("/api/auth/forgot-password", json={"email": "ghost@test.com"})

    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()
    assert verify_password("test123", offline_users.get_by_email("test@test.com").password)
