from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import stripe

from app.config import settings
from app.core.exceptions import ServiceUnavailableError, UpstreamError, ValidationError
from app.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Plan:
    id: str
    name: str
    price: float
    company_limit: int


PLANS: dict[str, Plan] = {
    "pro": Plan("pro", "Plano Pro", 97.0, 10000),
    "premium": Plan("premium", "Plano Premium", 147.0, 25000),
    "max": Plan("max", "Plano Max", 197.0, 50000),
}


def get_plan(plan_type: str) -> Plan:
    plan = PLANS.get((plan_type or "").strip().lower())
    if plan is None:
        raise ValidationError("Plano invalido")
    return plan


def plan_price_cents(plan: Plan, affiliate_code: str | None = None) -> int:
    price = plan.price
    if affiliate_code and affiliate_code.strip():
        price = price * (1 - settings.AFFILIATE_DISCOUNT)
    return int(round(price * 100))


def _require_secret_key() -> str:
    if not settings.STRIPE_SECRET_KEY.strip():
        raise ServiceUnavailableError("Pagamentos nao configurados", code="STRIPE_NOT_CONFIGURED")
    return settings.STRIPE_SECRET_KEY


def create_checkout_session(plan_type: str, user_email: str, affiliate_code: str | None = None) -> dict[str, str]:
    plan = get_plan(plan_type)
    api_key = _require_secret_key()
    amount = plan_price_cents(plan, affiliate_code)
    frontend_url = settings.FRONTEND_URL.rstrip("/")
    affiliate = (affiliate_code or "").strip()

    try:
        session = stripe.checkout.Session.create(
            api_key=api_key,
            mode="subscription",
            customer_email=user_email,
            line_items=[
                {
                    "price_data": {
                        "currency": "brl",
                        "product_data": {
                            "name": plan.name,
                            "description": f"Ate {plan.company_limit:,} empresas por consulta".replace(",", "."),
                        },
                        "unit_amount": amount,
                        "recurring": {"interval": "month"},
                    },
                    "quantity": 1,
                }
            ],
            success_url=f"{frontend_url}/dashboard?checkout=success&session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{frontend_url}/checkout?checkout=cancelled",
            metadata={"planType": plan.id, "userEmail": user_email, "affiliateCode": affiliate},
        )
    except stripe.StripeError as exc:
        logger.warning("billing.checkout_failed", plan=plan.id, error=str(exc))
        raise UpstreamError("Falha ao criar sessao de pagamento", code="STRIPE_ERROR") from exc

    logger.info("billing.checkout_created", plan=plan.id, amount=amount, affiliate=bool(affiliate))
    return {"url": session.url, "sessionId": session.id}


def handle_webhook(payload: bytes, signature: str | None) -> dict[str, Any]:
    if not settings.STRIPE_WEBHOOK_SECRET.strip():
        raise ServiceUnavailableError("Webhook de pagamentos nao configurado", code="STRIPE_NOT_CONFIGURED")
    try:
        event = stripe.Webhook.construct_event(payload, signature or "", settings.STRIPE_WEBHOOK_SECRET).to_dict()
    except ValueError as exc:
        raise ValidationError("Payload de webhook invalido") from exc
    except stripe.SignatureVerificationError as exc:
        raise ValidationError("Assinatura de webhook invalida") from exc

    event_type = event["type"]
    if event_type == "checkout.session.completed":
        session = event["data"]["object"]
        metadata = session.get("metadata") or {}
        logger.info(
            "billing.checkout_completed",
            session_id=session.get("id"),
            plan=metadata.get("planType"),
            user_email=metadata.get("userEmail"),
        )
    else:
        logger.info("billing.webhook_ignored", event_type=event_type)
    return {"received": True, "type": event_type}
