from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CheckoutSessionRequest(BaseModel):
    plan_type: str
    affiliate_code: str | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CheckoutSessionResponse(BaseModel):
    success: bool = True
    url: str
    sessionId: str
