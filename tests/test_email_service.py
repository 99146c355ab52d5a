from __future__ import annotations

import asyncio
import json

import aiosmtplib
import httpx
import pytest

from app.core.exceptions import EmailDeliveryError
from app.services import email_service
from app.services.email_service import (
    EmailMessage,
    EmailService,
    ResendProvider,
    SendGridProvider,
    SmtpProvider,
    is_configured,
    password_reset_message,
    welcome_message,
)


def _message() -> EmailMessage:
    return EmailMessage(to="user@test.com", subject="Oi", html="<p>Oi</p>", text="Oi", tags=["welcome"])


def _recording_transport(status_code: int, body: dict | None = None, headers: dict | None = None):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status_code, json=body or {}, headers=headers)

    return httpx.MockTransport(handler), requests


@pytest.mark.parametrize("value", ["", "   ", None, "COLOQUE_AQUI_SUA_CHAVE", "SG.COLOQUE_AQUI"])
def test_placeholder_keys_are_not_configured(value):
    assert is_configured(value) is False


def test_real_key_is_configured():
    assert is_configured("re_123") is True


def test_resend_success():
    transport, requests = _recording_transport(200, {"id": "msg-1"})
    provider = ResendProvider("re_key", "DataAtlas <noreply@test.com>", transport=transport)

    result = asyncio.run(provider.send(_message()))

    assert result.success is True
    assert result.message_id == "msg-1"
    sent = json.loads(requests[0].content)
    assert requests[0].url.path == "/emails"
    assert requests[0].headers["Authorization"] == "Bearer re_key"
    assert sent["to"] == ["user@test.com"]
    assert sent["tags"] == [{"name": "category", "value": "welcome"}]


def test_sendgrid_payload_and_failure():
    transport, requests = _recording_transport(401, {"errors": [{"message": "bad key"}]})
    provider = SendGridProvider("SG.real", "noreply@test.com", "DataAtlas", transport=transport)

    result = asyncio.run(provider.send(_message()))

    assert result.success is False
    assert result.error.startswith("HTTP 401")
    sent = json.loads(requests[0].content)
    assert requests[0].url.path == "/v3/mail/send"
    assert sent["personalizations"] == [{"to": [{"email": "user@test.com"}]}]
    assert sent["categories"] == ["welcome"]
    assert [part["type"] for part in sent["content"]] == ["text/plain", "text/html"]


def test_chain_falls_through_to_next_provider():
    failing, _ = _recording_transport(500)
    working, requests = _recording_transport(202, headers={"X-Message-Id": "sg-1"})
    service = EmailService(
        [
            ResendProvider("re_key", "noreply@test.com", transport=failing),
            SendGridProvider("SG.real", "noreply@test.com", "DataAtlas", transport=working),
        ]
    )

    result = asyncio.run(service.send_email(_message()))

    assert result.provider == "sendgrid"
    assert result.message_id == "sg-1"
    assert len(requests) == 1


def test_chain_skips_unconfigured_providers():
    transport, requests = _recording_transport(200, {"id": "msg-2"})
    service = EmailService(
        [
            ResendProvider("COLOQUE_AQUI", "noreply@test.com", transport=transport),
            SendGridProvider("SG.real", "noreply@test.com", "DataAtlas", transport=transport),
            SmtpProvider("", 587, "", "", "noreply@test.com", "DataAtlas"),
        ]
    )

    assert service.enabled_providers == ["sendgrid"]
    asyncio.run(service.send_email(_message()))
    assert requests[0].url.host == "api.sendgrid.com"


def test_console_fallback_when_nothing_delivers():
    failing, _ = _recording_transport(500)
    service = EmailService([ResendProvider("re_key", "noreply@test.com", transport=failing)], console_fallback=True)

    result = asyncio.run(service.send_email(_message()))

    assert result.success is True
    assert result.provider == "console"


def test_delivery_error_without_fallback():
    service = EmailService([ResendProvider("", "noreply@test.com")])

    with pytest.raises(EmailDeliveryError):
        asyncio.run(service.send_email(_message()))


def test_smtp_enabled_rules():
    assert SmtpProvider("smtp.test.com", 587, "", "", "a@test.com", "A").enabled is True
    assert SmtpProvider("smtp.test.com", 587, "user", "COLOQUE_AQUI", "a@test.com", "A").enabled is False
    assert SmtpProvider("smtp.test.com", 587, "user", "secret", "a@test.com", "A").enabled is True
    assert SmtpProvider(" ", 587, "", "", "a@test.com", "A").enabled is False


def test_templates_escape_user_values():
    message = welcome_message("a@test.com", "<script>", "https://app.test/login")

    assert "<script>" not in message.html
    assert "&lt;script&gt;" in message.html
    assert message.tags == ["welcome"]


def test_password_reset_template_contains_password():
    message = password_reset_message("a@test.com", "Ana", "Xyz123abc9", "https://app.test/login")

    assert "Nova senha: Xyz123abc9" in message.text
    assert "Xyz123abc9" in message.html
    assert message.to == "a@test.com"


def _recording_smtp(monkeypatch, error: Exception | None = None) -> list[tuple]:
    calls: list[tuple] = []

    async def fake_send(message, **kwargs):
        calls.append((message, kwargs))
        if error is not None:
            raise error
        return {}, "OK"

    monkeypatch.setattr(email_service.aiosmtplib, "send", fake_send)
    return calls


def test_smtp_sends_multipart_message_with_starttls(monkeypatch):
    calls = _recording_smtp(monkeypatch)
    provider = SmtpProvider("smtp.test.com", 587, "user", "secret", "noreply@test.com", "DataAtlas")

    result = asyncio.run(provider.send(_message()))

    assert result.success is True
    assert result.message_id.endswith("@test.com>")
    mime, options = calls[0]
    assert mime["To"] == "user@test.com"
    assert mime["From"] == "DataAtlas <noreply@test.com>"
    assert [part.get_content_type() for part in mime.iter_parts()] == ["text/plain", "text/html"]
    assert options["hostname"] == "smtp.test.com"
    assert options["username"] == "user"
    assert options["password"] == "secret"
    assert options["start_tls"] is True
    assert options["use_tls"] is False


def test_smtp_port_465_uses_implicit_tls_without_login(monkeypatch):
    calls = _recording_smtp(monkeypatch)
    provider = SmtpProvider("smtp.test.com", 465, "", "", "noreply@test.com", "DataAtlas")

    asyncio.run(provider.send(_message()))

    options = calls[0][1]
    assert options["use_tls"] is True
    assert options["start_tls"] is False
    assert options["username"] is None
    assert options["password"] is None


def test_smtp_failure_is_reported(monkeypatch):
    _recording_smtp(monkeypatch, aiosmtplib.SMTPConnectError("connection refused"))
    provider = SmtpProvider("smtp.test.com", 587, "", "", "noreply@test.com", "DataAtlas")

    result = asyncio.run(provider.send(_message()))

    assert result.success is False
    assert result.provider == "smtp"
    assert "connection refused" in result.error
