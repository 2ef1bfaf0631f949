from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import stripe

from .config import Settings
from .errors import SignatureError, UpstreamError

logger = logging.getLogger(__name__)


class PaymentGateway:
    """Stripe checkout and webhook verification.

    The API key is passed per request rather than through ``stripe.api_key`` so
    gateways configured with different keys can share one process.
    """

    def __init__(
        self,
        secret_key: str,
        webhook_secret: str,
        frontend_url: str,
        tolerance: int = stripe.Webhook.DEFAULT_TOLERANCE,
    ) -> None:
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.frontend_url = frontend_url.rstrip("/")
        # Max age in seconds of a signed timestamp before the event counts as a replay
        self.tolerance = tolerance

    @classmethod
    def from_settings(cls, cfg: Settings) -> "PaymentGateway":
        return cls(cfg.stripe_secret_key, cfg.stripe_webhook_secret, cfg.frontend_url)

    @property
    def success_url(self) -> str:
        # {CHECKOUT_SESSION_ID} is substituted by Stripe on redirect
        return f"{self.frontend_url}/dashboard?session_id={{CHECKOUT_SESSION_ID}}"

    @property
    def cancel_url(self) -> str:
        return f"{self.frontend_url}/pricing"

    def create_checkout_session(self, price_id: str, plan_id: Optional[str]) -> str:
        try:
            session = stripe.checkout.Session.create(
                api_key=self.secret_key,
                payment_method_types=["card"],
                line_items=[{"price": price_id, "quantity": 1}],
                mode="subscription",
                success_url=self.success_url,
                cancel_url=self.cancel_url,
                metadata={"planId": plan_id},
            )
        except stripe.StripeError as exc:
            raise UpstreamError("Failed to create checkout session") from exc
        session_id = getattr(session, "id", None)
        if not session_id:
            raise UpstreamError("Failed to create checkout session")
        return str(session_id)

    def verify_webhook(self, raw_body: bytes, signature_header: Optional[str]) -> Dict[str, Any]:
        """Check the Stripe-Signature header against the exact bytes received and decode the event."""
        if not signature_header:
            raise SignatureError("Missing Stripe-Signature header")
        try:
            payload = raw_body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SignatureError("Payload is not valid UTF-8") from exc
        try:
            stripe.WebhookSignature.verify_header(payload, signature_header, self.webhook_secret, tolerance=self.tolerance)
        except stripe.SignatureVerificationError as exc:
            raise SignatureError(str(exc.user_message or exc)) from exc
        try:
            event = json.loads(payload)
        except ValueError as exc:
            raise SignatureError("Invalid payload") from exc
        if not isinstance(event, dict):
            raise SignatureError("Invalid payload")
        return event
