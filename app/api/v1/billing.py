from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Header, Request

from app.api.deps import get_current_user
from app.middleware.rate_limit import limiter
from app.schemas.billing import CheckoutSessionRequest, CheckoutSessionResponse
from app.services import billing_service
from app.services.user_store import UserRecord

router = APIRouter(prefix="/stripe", tags=["billing"])


@router.get("/plans", summary="Planos disponiveis")
def list_plans() -> dict[str, Any]:
    return {
        "success": True,
        "plans": [
            {"id": plan.id, "name": plan.name, "price": plan.price, "companyLimit": plan.company_limit}
            for plan in billing_service.PLANS.values()
        ],
    }


@router.post(
    "/create-checkout-session",
    response_model=CheckoutSessionResponse,
    summary="Criar sessao de checkout",
)
@limiter.limit("10/minute")
def create_checkout_session(
    request: Request,
    body: CheckoutSessionRequest,
    user: UserRecord = Depends(get_current_user),
) -> CheckoutSessionResponse:
    session = billing_service.create_checkout_session(body.plan_type, user.email, body.affiliate_code)
    return CheckoutSessionResponse(**session)


@router.post("/webhook", summary="Webhook do Stripe", include_in_schema=False)
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(None, alias="Stripe-Signature"),
) -> dict[str, Any]:
    payload = await request.body()
    return billing_service.handle_webhook(payload, stripe_signature)
