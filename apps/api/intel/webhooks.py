"""Stripe webhook events and the state changes they cause.

Payloads are parsed into a closed set of event variants; anything that is not
a completed checkout or a deleted subscription becomes an ``IgnoredEvent`` so
the "do nothing" branch is explicit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from sqlalchemy import DateTime, bindparam, text

from .db import Database, SubscriptionStatus
from .errors import DatabaseError

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
SUBSCRIPTION_DELETED = "customer.subscription.deleted"


@dataclass(frozen=True)
class CheckoutCompleted:
    customer_id: str
    subscription_id: Optional[str]
    plan_id: Optional[str]


@dataclass(frozen=True)
class SubscriptionDeleted:
    subscription_id: str


@dataclass(frozen=True)
class IgnoredEvent:
    event_type: str
    reason: str = "unhandled event type"


WebhookEvent = Union[CheckoutCompleted, SubscriptionDeleted, IgnoredEvent]


UPSERT_SUBSCRIPTION = text(
    """
    INSERT INTO users (stripe_customer_id, subscription_id, plan_id, status, created_at, updated_at)
    VALUES (:customer, :subscription, :plan, :status, :now, :now)
    ON CONFLICT (stripe_customer_id) DO UPDATE SET
        subscription_id = excluded.subscription_id,
        plan_id = excluded.plan_id,
        status = excluded.status,
        updated_at = excluded.updated_at
    """
).bindparams(bindparam("now", type_=DateTime()))

CANCEL_SUBSCRIPTION = text(
    "UPDATE users SET status = :status, updated_at = :now WHERE subscription_id = :subscription"
).bindparams(bindparam("now", type_=DateTime()))


def _object(event: Dict[str, Any]) -> Dict[str, Any]:
    data = event.get("data") or {}
    obj = data.get("object") if isinstance(data, dict) else None
    return obj if isinstance(obj, dict) else {}


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    # Expanded objects carry the id under "id"
    if isinstance(value, dict):
        value = value.get("id")
    return str(value) if value is not None else None


def parse_event(event: Dict[str, Any]) -> WebhookEvent:
    event_type = str(event.get("type") or "")
    obj = _object(event)

    if event_type == CHECKOUT_COMPLETED:
        customer = _optional_str(obj.get("customer"))
        if not customer:
            return IgnoredEvent(event_type, reason="checkout session has no customer")
        metadata = obj.get("metadata") or {}
        return CheckoutCompleted(
            customer_id=customer,
            subscription_id=_optional_str(obj.get("subscription")),
            plan_id=_optional_str(metadata.get("planId")) if isinstance(metadata, dict) else None,
        )

    if event_type == SUBSCRIPTION_DELETED:
        subscription = _optional_str(obj.get("id"))
        if not subscription:
            return IgnoredEvent(event_type, reason="subscription has no id")
        return SubscriptionDeleted(subscription_id=subscription)

    return IgnoredEvent(event_type or "<missing>")


def record_checkout(db: Database, event: CheckoutCompleted) -> int:
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return db.execute(
        UPSERT_SUBSCRIPTION,
        {
            "customer": event.customer_id,
            "subscription": event.subscription_id,
            "plan": event.plan_id,
            "status": SubscriptionStatus.active.value,
            "now": now,
        },
    )


def record_cancellation(db: Database, event: SubscriptionDeleted) -> int:
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return db.execute(
        CANCEL_SUBSCRIPTION,
        {"status": SubscriptionStatus.cancelled.value, "subscription": event.subscription_id, "now": now},
    )


def apply_event(db: Database, event: WebhookEvent) -> None:
    """Apply one verified event.

    Runs after the HTTP response has been sent. Database failures are logged
    and dropped: Stripe has already been told the event was received.
    """
    if isinstance(event, CheckoutCompleted):
        try:
            record_checkout(db, event)
            logger.info("User subscription saved for customer %s", event.customer_id)
        except DatabaseError:
            logger.exception("Error saving user subscription for customer %s", event.customer_id)
    elif isinstance(event, SubscriptionDeleted):
        try:
            affected = record_cancellation(db, event)
            logger.info("Subscription %s cancelled (%d user rows)", event.subscription_id, affected)
        except DatabaseError:
            logger.exception("Error handling cancellation of subscription %s", event.subscription_id)
    elif isinstance(event, IgnoredEvent):
        logger.info("Unhandled event type %s (%s)", event.event_type, event.reason)
    else:
        raise TypeError(f"unknown webhook event {event!r}")
