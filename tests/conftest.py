# tests/conftest.py
"""
Fixtures and test setup for the Pytest suite.
"""

import hashlib
import hmac
import json
import os
import time
from datetime import datetime, timezone
from typing import Dict, Optional

import pytest

# Set test environment variables BEFORE any application code is imported.
os.environ["ENV"] = "test"
os.environ["SUBSCRIPTION_STORE"] = "memory"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_fake"
os.environ["STRIPE_SUBSCRIPTION_PRICE_ID"] = "price_sub"
os.environ["STRIPE_LIFETIME_PRICE_ID"] = "price_life"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ.pop("FINNHUB_API_KEY", None)

from tradecraft.application.services import AnalyticsService, BillingWebhookService
from tradecraft.domain.errors import PaymentGatewayError
from tradecraft.infrastructure.billing.stripe_gateway import CheckoutSessionSummary, StripeGateway
from tradecraft.infrastructure.db.base import build_engine, build_session_factory, create_tables
from tradecraft.infrastructure.db.subscription_repository import SqlSubscriptionStore
from tradecraft.infrastructure.memory_store import InMemorySubscriptionStore

WEBHOOK_SECRET = os.environ["STRIPE_WEBHOOK_SECRET"]


def sign(payload: str, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """Builds a stripe-signature header the same way Stripe does."""
    ts = timestamp if timestamp is not None else int(time.time())
    mac = hmac.new(secret.encode(), f"{ts}.{payload}".encode(), hashlib.sha256).hexdigest()
    return f"t={ts},v1={mac}"


def make_event(event_type: str, obj: dict, event_id: str = "evt_1") -> str:
    return json.dumps({"id": event_id, "object": "event", "type": event_type, "data": {"object": obj}})


class FakeStripeGateway(StripeGateway):
    """Real signature verification; customer/session lookups served from dicts."""

    def __init__(self, customers: Optional[Dict[str, Optional[str]]] = None):
        super().__init__(
            api_key="sk_test_fake",
            webhook_secret=WEBHOOK_SECRET,
            subscription_price_id="price_sub",
            lifetime_price_id="price_life",
        )
        self.customers = customers if customers is not None else {}
        self.sessions: Dict[str, CheckoutSessionSummary] = {}
        self.customer_lookups = []

    def retrieve_customer_email(self, customer_id: str) -> Optional[str]:
        self.customer_lookups.append(customer_id)
        return self.customers.get(customer_id)

    def retrieve_checkout_session(self, session_id: str) -> CheckoutSessionSummary:
        if session_id not in self.sessions:
            raise PaymentGatewayError(f"No such checkout.session: '{session_id}'")
        return self.sessions[session_id]


class FrozenClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def frozen_clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def memory_store() -> InMemorySubscriptionStore:
    return InMemorySubscriptionStore()


@pytest.fixture
def sql_store() -> SqlSubscriptionStore:
    engine = build_engine("sqlite:///:memory:")
    create_tables(engine)
    yield SqlSubscriptionStore(build_session_factory(engine))
    engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Runs a test against both store implementations."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def gateway() -> FakeStripeGateway:
    return FakeStripeGateway(customers={"cus_123": "trader@example.com"})


@pytest.fixture
def analytics() -> AnalyticsService:
    return AnalyticsService()


@pytest.fixture
def billing_service(memory_store, gateway, analytics) -> BillingWebhookService:
    return BillingWebhookService(store=memory_store, gateway=gateway, analytics=analytics)
