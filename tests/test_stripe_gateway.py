import time

import pytest
import stripe

from tradecraft.domain.errors import PaymentGatewayError, ValidationError, WebhookSignatureError
from tradecraft.infrastructure.billing.stripe_gateway import StripeGateway

from conftest import WEBHOOK_SECRET, make_event, sign


@pytest.fixture
def real_gateway() -> StripeGateway:
    return StripeGateway(
        api_key="sk_test_fake",
        webhook_secret=WEBHOOK_SECRET,
        subscription_price_id="price_sub",
        lifetime_price_id="price_life",
    )


def test_construct_event_accepts_valid_signature(real_gateway):
    payload = make_event("invoice.paid", {"id": "in_1"}, event_id="evt_42")
    event = real_gateway.construct_event(payload.encode(), sign(payload))
    assert event["id"] == "evt_42"
    assert event["type"] == "invoice.paid"


def test_construct_event_rejects_wrong_secret(real_gateway):
    payload = make_event("invoice.paid", {"id": "in_1"})
    with pytest.raises(WebhookSignatureError):
        real_gateway.construct_event(payload.encode(), sign(payload, secret="whsec_other"))


def test_construct_event_rejects_stale_timestamp(real_gateway):
    payload = make_event("invoice.paid", {"id": "in_1"})
    old = int(time.time()) - 3600
    with pytest.raises(WebhookSignatureError):
        real_gateway.construct_event(payload.encode(), sign(payload, timestamp=old))


def test_construct_event_requires_header(real_gateway):
    with pytest.raises(WebhookSignatureError):
        real_gateway.construct_event(b"{}", "")


def test_construct_event_requires_configured_secret():
    gateway = StripeGateway(api_key="sk_test_fake", webhook_secret=None)
    payload = make_event("invoice.paid", {"id": "in_1"})
    with pytest.raises(WebhookSignatureError):
        gateway.construct_event(payload.encode(), sign(payload))


def test_construct_event_rejects_non_json_body(real_gateway):
    payload = "not json"
    with pytest.raises(WebhookSignatureError):
        real_gateway.construct_event(payload.encode(), sign(payload))


def test_retrieve_customer_email(monkeypatch, real_gateway):
    calls = {}

    def fake_retrieve(customer_id, **kwargs):
        calls["id"] = customer_id
        calls["api_key"] = kwargs.get("api_key")
        return {"id": customer_id, "email": "trader@example.com"}

    monkeypatch.setattr(stripe.Customer, "retrieve", fake_retrieve)
    assert real_gateway.retrieve_customer_email("cus_1") == "trader@example.com"
    assert calls == {"id": "cus_1", "api_key": "sk_test_fake"}


def test_retrieve_deleted_customer_has_no_email(monkeypatch, real_gateway):
    monkeypatch.setattr(stripe.Customer, "retrieve", lambda cid, **kw: {"id": cid, "deleted": True})
    assert real_gateway.retrieve_customer_email("cus_gone") is None


def test_retrieve_customer_wraps_stripe_errors(monkeypatch, real_gateway):
    def boom(cid, **kw):
        raise stripe.InvalidRequestError("No such customer", param="id")

    monkeypatch.setattr(stripe.Customer, "retrieve", boom)
    with pytest.raises(PaymentGatewayError):
        real_gateway.retrieve_customer_email("cus_missing")


def test_retrieve_checkout_session_summary(monkeypatch, real_gateway):
    session = {
        "id": "cs_1",
        "payment_status": "paid",
        "metadata": {"planType": "subscription"},
        "customer_details": {"email": "a@b.com"},
        "subscription": {"id": "sub_1", "object": "subscription"},
        "payment_intent": "pi_1",
    }
    monkeypatch.setattr(stripe.checkout.Session, "retrieve", lambda sid, **kw: session)

    summary = real_gateway.retrieve_checkout_session("cs_1")
    assert summary.payment_status == "paid"
    assert summary.plan_type == "subscription"
    assert summary.customer_email == "a@b.com"
    assert summary.subscription_id == "sub_1"
    assert summary.payment_intent_id == "pi_1"


def test_create_checkout_session(monkeypatch, real_gateway):
    captured = {}

    class DummySession:
        @staticmethod
        def create(**kwargs):
            captured.update(kwargs)
            return {"id": "cs_new", "url": "https://checkout.stripe.test/cs_new"}

    monkeypatch.setattr(stripe.checkout, "Session", DummySession)

    url = real_gateway.create_checkout_session("lifetime", "a@b.com", "https://app.example.com")
    assert url == "https://checkout.stripe.test/cs_new"
    assert captured["mode"] == "payment"
    assert captured["line_items"] == [{"price": "price_life", "quantity": 1}]
    assert captured["metadata"] == {"planType": "lifetime"}
    assert captured["customer_email"] == "a@b.com"
    assert captured["success_url"] == "https://app.example.com/payment-success?session_id={CHECKOUT_SESSION_ID}"
    assert captured["cancel_url"] == "https://app.example.com/pricing?canceled=true"


def test_create_checkout_session_rejects_unknown_plan(real_gateway):
    with pytest.raises(ValidationError):
        real_gateway.create_checkout_session("gold", "a@b.com", "https://app.example.com")


def test_create_checkout_session_requires_price_id():
    gateway = StripeGateway(api_key="sk_test_fake", webhook_secret=WEBHOOK_SECRET)
    with pytest.raises(PaymentGatewayError):
        gateway.create_checkout_session("subscription", "a@b.com", "https://app.example.com")



def test_construct_event_rejects_non_utf8_body(real_gateway):
    with pytest.raises(WebhookSignatureError):
        real_gateway.construct_event(b'{"id": "evt_1", "x": "\xff\xfe"}', "t=1,v1=deadbeef")
