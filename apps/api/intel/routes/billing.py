from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from ..db import Database
from ..deps import get_db, get_payments
from ..errors import SignatureError
from ..payments import PaymentGateway
from ..webhooks import apply_event, parse_event

logger = logging.getLogger(__name__)

router = APIRouter()


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    price_id: str = Field(alias="priceId", min_length=1)
    plan_id: Optional[str] = Field(default=None, alias="planId")


@router.post("/create-checkout-session")
def create_checkout_session(body: CheckoutRequest, payments: PaymentGateway = Depends(get_payments)):
    session_id = payments.create_checkout_session(body.price_id, body.plan_id)
    return {"sessionId": session_id}


@router.post("/stripe-webhook")
async def stripe_webhook(
    request: Request,
    background: BackgroundTasks,
    db: Database = Depends(get_db),
    payments: PaymentGateway = Depends(get_payments),
):
    # Signature covers the exact bytes Stripe sent, so never parse before verifying
    raw = await request.body()
    try:
        payload = payments.verify_webhook(raw, request.headers.get("stripe-signature"))
    except SignatureError as exc:
        logger.warning("Webhook signature verification failed: %s", exc.message)
        return PlainTextResponse(f"Webhook Error: {exc.message}", status_code=400)

    event = parse_event(payload)
    background.add_task(apply_event, db, event)
    return {"received": True}
