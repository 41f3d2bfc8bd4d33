# src/tradecraft/infrastructure/billing/stripe_gateway.py
"""
Thin wrapper around the Stripe SDK. This is the only module that talks to
Stripe; everything above it receives plain dicts and dataclasses.
The SDK is blocking, so callers on the event loop run these methods in an
executor.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

import stripe

from tradecraft.domain.errors import PaymentGatewayError, ValidationError, WebhookSignatureError

log = logging.getLogger(__name__)

PLAN_MODES = {"subscription": "subscription", "lifetime": "payment"}


def field(obj: Any, key: str) -> Any:
    """Reads a key from a StripeObject or a plain dict; None when absent."""
    if obj is None:
        return None
    try:
        return obj[key]
    except (KeyError, TypeError, AttributeError):
        return None


@dataclass(frozen=True)
class CheckoutSessionSummary:
    id: str
    payment_status: Optional[str]
    plan_type: Optional[str]
    customer_email: Optional[str]
    subscription_id: Optional[str]
    payment_intent_id: Optional[str]


def _id_of(value: Any) -> Optional[str]:
    # Expanded objects come back as objects, unexpanded ones as id strings.
    if value is None or isinstance(value, str):
        return value
    return field(value, "id")


class StripeGateway:

    def __init__(
        self,
        api_key: Optional[str],
        webhook_secret: Optional[str],
        subscription_price_id: Optional[str] = None,
        lifetime_price_id: Optional[str] = None,
        tolerance: int = stripe.Webhook.DEFAULT_TOLERANCE,
    ):
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.price_ids = {"subscription": subscription_price_id, "lifetime": lifetime_price_id}
        self.tolerance = tolerance

    # --- Webhooks ---

    def construct_event(self, payload: bytes, signature: Optional[str]) -> dict:
        """Verifies the stripe-signature header and returns the decoded event."""
        if not self.webhook_secret:
            log.error("STRIPE_WEBHOOK_SECRET is not configured; rejecting webhook.")
            raise WebhookSignatureError("Webhook secret is not configured")
        if not signature:
            raise WebhookSignatureError("Missing stripe-signature header")

        try:
            text = payload.decode("utf-8") if isinstance(payload, bytes) else payload
        except UnicodeDecodeError as e:
            raise WebhookSignatureError("Webhook payload is not valid UTF-8") from e

        try:
            stripe.WebhookSignature.verify_header(text, signature, self.webhook_secret, self.tolerance)
        except stripe.SignatureVerificationError as e:
            raise WebhookSignatureError(str(e)) from e

        try:
            event = json.loads(text)
        except ValueError as e:
            raise WebhookSignatureError("Webhook payload is not valid JSON") from e
        if not isinstance(event, dict):
            raise WebhookSignatureError("Webhook payload is not a JSON object")
        return event

    # --- API calls ---

    def retrieve_customer_email(self, customer_id: str) -> Optional[str]:
        try:
            customer = stripe.Customer.retrieve(customer_id, api_key=self.api_key)
        except stripe.StripeError as e:
            raise PaymentGatewayError(f"Could not retrieve customer {customer_id}: {e}") from e
        if field(customer, "deleted"):
            log.warning(f"Stripe customer {customer_id} is deleted; no email available.")
            return None
        return field(customer, "email")

    def retrieve_checkout_session(self, session_id: str) -> CheckoutSessionSummary:
        try:
            session = stripe.checkout.Session.retrieve(
                session_id,
                expand=["customer", "payment_intent", "subscription"],
                api_key=self.api_key,
            )
        except stripe.StripeError as e:
            raise PaymentGatewayError(str(e)) from e

        metadata = field(session, "metadata")
        return CheckoutSessionSummary(
            id=field(session, "id") or session_id,
            payment_status=field(session, "payment_status"),
            plan_type=field(metadata, "planType") or field(metadata, "plan"),
            customer_email=field(field(session, "customer_details"), "email"),
            subscription_id=_id_of(field(session, "subscription")),
            payment_intent_id=_id_of(field(session, "payment_intent")),
        )

    def create_checkout_session(self, plan: str, email: str, origin: str) -> str:
        mode = PLAN_MODES.get(plan)
        if mode is None:
            raise ValidationError("Invalid plan type. Must be 'subscription' or 'lifetime'")
        price_id = self.price_ids.get(plan)
        if not price_id:
            log.error(f"Missing price ID for plan: {plan}")
            raise PaymentGatewayError("Server configuration error: Missing price ID")

        line_items: List[dict] = [{"price": price_id, "quantity": 1}]
        try:
            session = stripe.checkout.Session.create(
                payment_method_types=["card"],
                line_items=line_items,
                mode=mode,
                success_url=f"{origin}/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{origin}/pricing?canceled=true",
                customer_email=email,
                metadata={"planType": plan},
                api_key=self.api_key,
            )
        except stripe.StripeError as e:
            raise PaymentGatewayError(str(e)) from e
        return field(session, "url")
