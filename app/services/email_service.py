from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.message import EmailMessage as MimeMessage
from email.utils import formataddr, make_msgid
from html import escape
from typing import Protocol

import aiosmtplib
import httpx

from app.config import settings
from app.core.exceptions import EmailDeliveryError
from app.core.logging import get_logger
from app.core.metrics import increment_emails_sent_total

logger = get_logger(__name__)

_PLACEHOLDER_PREFIXES = ("COLOQUE_AQUI", "SG.COLOQUE_AQUI")


def is_configured(value: str | None) -> bool:
    value = (value or "").strip()
    return bool(value) and not value.upper().startswith(_PLACEHOLDER_PREFIXES)


@dataclass
class EmailMessage:
    to: str
    subject: str
    html: str
    text: str = ""
    tags: list[str] = field(default_factory=list)


@dataclass
class EmailResult:
    success: bool
    provider: str
    message_id: str | None = None
    error: str | None = None


class EmailProvider(Protocol):
    name: str

    @property
    def enabled(self) -> bool: ...

    async def send(self, message: EmailMessage) -> EmailResult: ...


class ResendProvider:
    name = "resend"

    def __init__(
        self,
        api_key: str,
        sender: str,
        *,
        base_url: str = "https://api.resend.com",
        timeout: float = 15,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.sender = sender
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return is_configured(self.api_key)

    async def send(self, message: EmailMessage) -> EmailResult:
        payload = {
            "from": self.sender,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
            "text": message.text,
        }
        if message.tags:
            payload["tags"] = [{"name": "category", "value": tag} for tag in message.tags]

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}/emails",
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPStatusError as exc:
            return EmailResult(False, self.name, error=f"HTTP {exc.response.status_code}: {exc.response.text[:200]}")
        except (httpx.HTTPError, ValueError) as exc:
            return EmailResult(False, self.name, error=str(exc) or exc.__class__.__name__)

        return EmailResult(True, self.name, message_id=body.get("id"))


class SendGridProvider:
    name = "sendgrid"

    def __init__(
        self,
        api_key: str,
        sender_email: str,
        sender_name: str,
        *,
        base_url: str = "https://api.sendgrid.com/v3",
        timeout: float = 15,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.sender_email = sender_email
        self.sender_name = sender_name
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return is_configured(self.api_key)

    async def send(self, message: EmailMessage) -> EmailResult:
        content = []
        if message.text:
            content.append({"type": "text/plain", "value": message.text})
        content.append({"type": "text/html", "value": message.html})
        payload = {
            "personalizations": [{"to": [{"email": message.to}]}],
            "from": {"email": self.sender_email, "name": self.sender_name},
            "subject": message.subject,
            "content": content,
        }
        if message.tags:
            payload["categories"] = message.tags

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}/mail/send",
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            return EmailResult(False, self.name, error=f"HTTP {exc.response.status_code}: {exc.response.text[:200]}")
        except httpx.HTTPError as exc:
            return EmailResult(False, self.name, error=str(exc) or exc.__class__.__name__)

        return EmailResult(True, self.name, message_id=response.headers.get("X-Message-Id"))


class SmtpProvider:
    name = "smtp"

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        sender_email: str,
        sender_name: str,
        *,
        use_tls: bool = True,
        timeout: float = 15,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender_email = sender_email
        self.sender_name = sender_name
        self.use_tls = use_tls
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        if not self.host.strip():
            return False
        return not self.username or is_configured(self.password)

    def _build(self, message: EmailMessage) -> MimeMessage:
        mime = MimeMessage()
        mime["From"] = formataddr((self.sender_name, self.sender_email))
        mime["To"] = message.to
        mime["Subject"] = message.subject
        mime["Message-ID"] = make_msgid(domain=self.sender_email.partition("@")[2] or None)
        mime.set_content(message.text or message.subject)
        mime.add_alternative(message.html, subtype="html")
        return mime

    async def send(self, message: EmailMessage) -> EmailResult:
        mime = self._build(message)
        # Port 465 speaks TLS from the first byte; other ports upgrade with STARTTLS.
        implicit_tls = self.port == 465
        try:
            await aiosmtplib.send(
                mime,
                hostname=self.host,
                port=self.port,
                username=self.username or None,
                password=self.password if self.username else None,
                use_tls=implicit_tls,
                start_tls=self.use_tls and not implicit_tls,
                timeout=self.timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as exc:
            return EmailResult(False, self.name, error=str(exc) or exc.__class__.__name__)
        return EmailResult(True, self.name, message_id=str(mime["Message-ID"]))


class EmailService:
    """Sends through the first provider that accepts the message."""

    def __init__(self, providers: list[EmailProvider], *, console_fallback: bool = False) -> None:
        self.providers = providers
        self.console_fallback = console_fallback

    @property
    def enabled_providers(self) -> list[str]:
        return [provider.name for provider in self.providers if provider.enabled]

    async def send_email(self, message: EmailMessage) -> EmailResult:
        errors: list[str] = []
        for provider in self.providers:
            if not provider.enabled:
                continue
            result = await provider.send(message)
            if result.success:
                increment_emails_sent_total()
                logger.info("email.sent", provider=provider.name, to=message.to, message_id=result.message_id)
                return result
            logger.warning("email.provider_failed", provider=provider.name, error=result.error)
            errors.append(f"{provider.name}: {result.error}")

        if self.console_fallback:
            logger.info("email.console", to=message.to, subject=message.subject, body=message.text)
            return EmailResult(True, "console", message_id=f"console-{uuid.uuid4()}")

        logger.error("email.delivery_failed", to=message.to, errors=errors)
        raise EmailDeliveryError()

    async def send_welcome_email(self, email: str, name: str | None, login_url: str) -> EmailResult:
        return await self.send_email(welcome_message(email, name, login_url))

    async def send_account_approved_email(self, email: str, name: str | None, login_url: str) -> EmailResult:
        return await self.send_email(account_approved_message(email, name, login_url))

    async def send_admin_notification(self, admin_email: str, user_email: str, user_name: str | None) -> EmailResult:
        return await self.send_email(admin_notification_message(admin_email, user_email, user_name))

    async def send_password_reset_email(self, email: str, name: str | None, new_password: str, login_url: str) -> EmailResult:
        return await self.send_email(password_reset_message(email, name, new_password, login_url))


def _layout(title: str, body: str) -> str:
    year = datetime.now(timezone.utc).year
    return (
        '<!DOCTYPE html><html lang="pt-BR"><head><meta charset="UTF-8">'
        f"<title>{escape(title)} - {escape(settings.EMAIL_FROM_NAME)}</title></head>"
        '<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">'
        f'<div style="text-align: center; border-bottom: 2px solid #36e961; padding-bottom: 16px;">'
        f'<h1 style="color: #0a3042;">{escape(settings.EMAIL_FROM_NAME)}</h1></div>'
        f'<div style="padding: 24px 0;">{body}</div>'
        '<div style="border-top: 1px solid #e5e7eb; padding-top: 16px; text-align: center; color: #6b7280; font-size: 12px;">'
        f"&copy; {year} {escape(settings.EMAIL_FROM_NAME)}<br>Este e um email automatico, nao responda a esta mensagem.</div>"
        "</body></html>"
    )


def _button(url: str, label: str) -> str:
    return (
        f'<p style="text-align: center;"><a href="{escape(url, quote=True)}" '
        'style="background: #36e961; color: #0a3042; padding: 12px 30px; border-radius: 8px; '
        f'text-decoration: none; font-weight: 700;">{escape(label)}</a></p>'
    )


def welcome_message(email: str, name: str | None, login_url: str) -> EmailMessage:
    greeting = f"Ola, {name}!" if name else "Ola!"
    html = _layout(
        "Bem-vindo",
        f"<p>{escape(greeting)}</p>"
        f"<p>Sua conta no <strong>{escape(settings.EMAIL_FROM_NAME)}</strong> foi criada com o email "
        f"<code>{escape(email)}</code>.</p>"
        "<p>Assim que seu cadastro for aprovado voce recebera um novo aviso.</p>"
        + _button(login_url, "Acessar sistema"),
    )
    text = (
        f"{greeting}\n\nSua conta no {settings.EMAIL_FROM_NAME} foi criada com o email {email}.\n"
        f"Assim que seu cadastro for aprovado voce recebera um novo aviso.\n\nAcesse: {login_url}\n"
    )
    return EmailMessage(to=email, subject=f"Bem-vindo ao {settings.EMAIL_FROM_NAME}", html=html, text=text, tags=["welcome"])


def account_approved_message(email: str, name: str | None, login_url: str) -> EmailMessage:
    greeting = f"Ola, {name}!" if name else "Ola!"
    html = _layout(
        "Conta aprovada",
        f"<p>{escape(greeting)}</p><p>Sua conta foi aprovada e ja pode ser utilizada.</p>"
        + _button(login_url, "Fazer login"),
    )
    text = f"{greeting}\n\nSua conta foi aprovada e ja pode ser utilizada.\n\nAcesse: {login_url}\n"
    return EmailMessage(
        to=email,
        subject=f"Sua conta foi aprovada - {settings.EMAIL_FROM_NAME}",
        html=html,
        text=text,
        tags=["account-approved"],
    )


def admin_notification_message(admin_email: str, user_email: str, user_name: str | None) -> EmailMessage:
    label = user_name or user_email
    registered_at = datetime.now(timezone.utc).strftime("%d/%m/%Y %H:%M UTC")
    html = _layout(
        "Novo cadastro",
        "<p>Um novo usuario se cadastrou:</p>"
        f"<ul><li><strong>Nome:</strong> {escape(user_name or '-')}</li>"
        f"<li><strong>Email:</strong> {escape(user_email)}</li>"
        f"<li><strong>Data:</strong> {registered_at}</li></ul>",
    )
    text = f"Novo cadastro\n\nNome: {user_name or '-'}\nEmail: {user_email}\nData: {registered_at}\n"
    return EmailMessage(
        to=admin_email,
        subject=f"Novo Cadastro Pendente - {label}",
        html=html,
        text=text,
        tags=["admin-notification"],
    )


def password_reset_message(email: str, name: str | None, new_password: str, login_url: str) -> EmailMessage:
    html = _layout(
        "Nova senha",
        f"<p>Ola <strong>{escape(name or 'usuario')}</strong>,</p>"
        f"<p>Uma nova senha foi gerada para sua conta no <strong>{escape(settings.EMAIL_FROM_NAME)}</strong>.</p>"
        f"<p>Email: <code>{escape(email)}</code><br>Nova senha: <code>{escape(new_password)}</code></p>"
        + _button(login_url, "Acessar sistema")
        + "<p>Apos o login, recomendamos alterar a senha nas configuracoes da conta.</p>",
    )
    text = (
        f"Ola {name or 'usuario'},\n\nUma nova senha foi gerada para sua conta no {settings.EMAIL_FROM_NAME}.\n\n"
        f"Email: {email}\nNova senha: {new_password}\n\nAcesse: {login_url}\n\n"
        "Apos o login, recomendamos alterar a senha nas configuracoes da conta.\n"
    )
    return EmailMessage(
        to=email,
        subject=f"Nova Senha - {settings.EMAIL_FROM_NAME}",
        html=html,
        text=text,
        tags=["password-reset"],
    )


def build_email_service() -> EmailService:
    sender = formataddr((settings.EMAIL_FROM_NAME, settings.EMAIL_FROM))
    providers: list[EmailProvider] = [
        ResendProvider(settings.RESEND_API_KEY, sender, timeout=settings.EMAIL_TIMEOUT_SECONDS),
        SendGridProvider(
            settings.SENDGRID_API_KEY,
            settings.EMAIL_FROM,
            settings.EMAIL_FROM_NAME,
            timeout=settings.EMAIL_TIMEOUT_SECONDS,
        ),
        SmtpProvider(
            settings.SMTP_HOST,
            settings.SMTP_PORT,
            settings.SMTP_USER,
            settings.SMTP_PASSWORD,
            settings.EMAIL_FROM,
            settings.EMAIL_FROM_NAME,
            use_tls=settings.SMTP_USE_TLS,
            timeout=settings.EMAIL_TIMEOUT_SECONDS,
        ),
    ]
    service = EmailService(providers, console_fallback=settings.is_development)
    logger.info("email.configured", providers=service.enabled_providers, console_fallback=service.console_fallback)
    return service
