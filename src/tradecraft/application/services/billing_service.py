# src/tradecraft/application/services/billing_service.py
"""
Stripe webhook ingestion.

Flow per delivery:
    1. Verify the signature. Nothing else runs if this fails.
    2. Drop redeliveries: an event id already in the log is acknowledged
       without touching the store.
    3. Validate the event into its typed model and dispatch on `type`.
    4. Update the user record, append to the event log, emit analytics.

Every store write carries the Stripe event id, so a delivery that failed
half-way can be replayed safely by Stripe's own retry.
"""

import asyncio
import functools
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from tradecraft.domain.entities import SubscriptionEventType, SubscriptionStatus
from tradecraft.domain.errors import MalformedEventError, WebhookSignatureError
from tradecraft.domain.ports import SubscriptionStore
from tradecraft.infrastructure.billing.stripe_gateway import StripeGateway
from tradecraft.infrastructure.metrics import WEBHOOK_EVENTS

from .analytics_service import AnalyticsService
from .stripe_events import (
    CheckoutSessionCompleted,
    SubscriptionCreated,
    SubscriptionDeleted,
    SubscriptionUpdated,
    parse_event,
)

log = logging.getLogger(__name__)

PLAN_STATUSES = {
    "lifetime": SubscriptionStatus.LIFETIME,
    "subscription": SubscriptionStatus.ACTIVE,
}


@dataclass(frozen=True)
class WebhookResult:
    received: bool = True
    handled: bool = False
    duplicate: bool = False
    event_type: Optional[str] = None


def _from_epoch(seconds: Optional[int]) -> Optional[datetime]:
    if seconds is None:
        return None
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


class BillingWebhookService:

    def __init__(self, store: SubscriptionStore, gateway: StripeGateway, analytics: AnalyticsService):
        self.store = store
        self.gateway = gateway
        self.analytics = analytics
        self._handlers: Dict[str, Callable[[Any], Awaitable[bool]]] = {
            "checkout.session.completed": self._on_checkout_completed,
            "customer.subscription.created": self._on_subscription_created,
            "customer.subscription.updated": self._on_subscription_updated,
            "customer.subscription.deleted": self._on_subscription_deleted,
        }

    async def handle(self, payload: bytes, signature: Optional[str]) -> WebhookResult:
        try:
            raw = self.gateway.construct_event(payload, signature)
        except WebhookSignatureError as e:
            log.warning(f"Stripe webhook rejected: {e}")
            WEBHOOK_EVENTS.labels(type="unknown", outcome="rejected").inc()
            raise

        event_id = str(raw.get("id") or "")
        event_type = str(raw.get("type") or "")
        log.info(f"Received Stripe event {event_type} ({event_id})")

        try:
            if event_id and (await self._in_thread(self.store.find_event_by_stripe_id, event_id)) is not None:
                log.info(f"Stripe event {event_id} was already processed; acknowledging duplicate.")
                WEBHOOK_EVENTS.labels(type=event_type, outcome="duplicate").inc()
                return WebhookResult(handled=False, duplicate=True, event_type=event_type)

            event = parse_event(raw)
            if event is None:
                log.debug(f"Ignoring unhandled Stripe event type: {event_type}")
                WEBHOOK_EVENTS.labels(type=event_type, outcome="ignored").inc()
                return WebhookResult(handled=False, event_type=event_type)

            handled = await self._handlers[event.type](event)
        except MalformedEventError:
            WEBHOOK_EVENTS.labels(type=event_type, outcome="rejected").inc()
            raise
        except Exception:
            WEBHOOK_EVENTS.labels(type=event_type, outcome="error").inc()
            raise

        WEBHOOK_EVENTS.labels(type=event_type, outcome="handled" if handled else "skipped").inc()
        return WebhookResult(handled=handled, event_type=event_type)

    # --- Helpers ---

    async def _in_thread(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Runs a blocking store or Stripe call in the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))

    async def _resolve_email(self, customer_id: str) -> Optional[str]:
        email = await self._in_thread(self.gateway.retrieve_customer_email, customer_id)
        if not email:
            log.warning(f"No email found for Stripe customer {customer_id}; event skipped.")
        return email

    # --- Handlers ---

    async def _on_checkout_completed(self, event: CheckoutSessionCompleted) -> bool:
        session = event.data.object
        email = session.email
        plan_type = session.plan_type
        if not email:
            log.warning(f"Checkout session {session.id} has no customer email; event skipped.")
            return False

        status = PLAN_STATUSES.get(plan_type or "")
        if status is not None:
            await self._in_thread(
                self.store.update_user_subscription,
                email=email,
                status=status,
                stripe_customer_id=session.customer,
                stripe_event_id=event.id,
            )
        else:
            log.warning(f"Checkout session {session.id} has unknown planType {plan_type!r}; status unchanged.")

        await self._in_thread(
            self.store.record_subscription_event,
            user_id=email,
            type=SubscriptionEventType.PAYMENT_SUCCEEDED,
            stripe_event_id=event.id,
            metadata={
                "sessionId": session.id,
                "planType": plan_type,
                "amount": session.amount_total,
            },
        )
        self.analytics.track_server_event("checkout_completed", {
            "email": email,
            "planType": plan_type,
            "amount": session.amount_total,
        })
        return True

    async def _apply_subscription(self, event, event_type: SubscriptionEventType) -> Optional[str]:
        subscription = event.data.object
        email = await self._resolve_email(subscription.customer)
        if not email:
            return None

        status = SubscriptionStatus.ACTIVE if subscription.status == "active" else SubscriptionStatus.CANCELED
        await self._in_thread(
            self.store.update_user_subscription,
            email=email,
            status=status,
            subscription_expires=_from_epoch(subscription.period_end),
            stripe_customer_id=subscription.customer,
            stripe_event_id=event.id,
        )
        await self._in_thread(
            self.store.record_subscription_event,
            user_id=email,
            type=event_type,
            stripe_event_id=event.id,
            metadata={
                "subscriptionId": subscription.id,
                "status": subscription.status,
                "currentPeriodEnd": subscription.period_end,
                "cancelAtPeriodEnd": subscription.cancel_at_period_end,
            },
        )
        return email

    async def _on_subscription_created(self, event: SubscriptionCreated) -> bool:
        email = await self._apply_subscription(event, SubscriptionEventType.SUBSCRIPTION_CREATED)
        if not email:
            return False
        subscription = event.data.object
        self.analytics.track_server_event("subscription_created", {
            "email": email,
            "subscriptionId": subscription.id,
            "status": subscription.status,
        })
        return True

    async def _on_subscription_updated(self, event: SubscriptionUpdated) -> bool:
        email = await self._apply_subscription(event, SubscriptionEventType.SUBSCRIPTION_UPDATED)
        if not email:
            return False
        subscription = event.data.object
        # Scheduling a cancellation only changes analytics; the status follows `status`.
        name = "subscription_canceled" if subscription.cancel_at_period_end else "subscription_renewed"
        self.analytics.track_server_event(name, {
            "email": email,
            "subscriptionId": subscription.id,
            "status": subscription.status,
        })
        return True

    async def _on_subscription_deleted(self, event: SubscriptionDeleted) -> bool:
        subscription = event.data.object
        email = await self._resolve_email(subscription.customer)
        if not email:
            return False

        await self._in_thread(
            self.store.update_user_subscription,
            email=email,
            status=SubscriptionStatus.CANCELED,
            stripe_customer_id=subscription.customer,
            stripe_event_id=event.id,
        )
        await self._in_thread(
            self.store.record_subscription_event,
            user_id=email,
            type=SubscriptionEventType.SUBSCRIPTION_CANCELED,
            stripe_event_id=event.id,
            metadata={"subscriptionId": subscription.id},
        )
        self.analytics.track_server_event("subscription_ended", {
            "email": email,
            "subscriptionId": subscription.id,
        })
        return True
