# src/tradecraft/application/services/stripe_events.py
"""
Typed views of the Stripe webhook events the billing flow reacts to.

Events are validated once, at the boundary, into a discriminated union keyed
on `type`; each handler then receives exactly the shape it needs.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from tradecraft.domain.errors import MalformedEventError


def _to_id(v: Any) -> Any:
    # `customer` is an id string unless the event was expanded.
    if isinstance(v, dict):
        return v.get("id")
    return v


class _StripeModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class CustomerDetails(_StripeModel):
    email: Optional[str] = None


class CheckoutSession(_StripeModel):
    id: str
    customer: Optional[str] = None
    customer_details: Optional[CustomerDetails] = None
    customer_email: Optional[str] = None
    metadata: Optional[Dict[str, str]] = None
    amount_total: Optional[int] = None

    @field_validator("customer", mode="before")
    @classmethod
    def v_customer(cls, v):
        return _to_id(v)

    @property
    def email(self) -> Optional[str]:
        if self.customer_details and self.customer_details.email:
            return self.customer_details.email
        return self.customer_email

    @property
    def plan_type(self) -> Optional[str]:
        metadata = self.metadata or {}
        # Sessions created before planType was introduced carry `plan`.
        return metadata.get("planType") or metadata.get("plan")


class SubscriptionItem(_StripeModel):
    current_period_end: Optional[int] = None


class SubscriptionItems(_StripeModel):
    data: List[SubscriptionItem] = Field(default_factory=list)


class Subscription(_StripeModel):
    id: str
    customer: str
    status: str
    current_period_end: Optional[int] = None
    cancel_at_period_end: bool = False
    items: Optional[SubscriptionItems] = None

    @field_validator("customer", mode="before")
    @classmethod
    def v_customer(cls, v):
        return _to_id(v)

    @property
    def period_end(self) -> Optional[int]:
        """Newer API versions move current_period_end onto the subscription items."""
        if self.current_period_end is not None:
            return self.current_period_end
        if self.items and self.items.data:
            return self.items.data[0].current_period_end
        return None


class CheckoutSessionData(_StripeModel):
    object: CheckoutSession


class SubscriptionData(_StripeModel):
    object: Subscription


class CheckoutSessionCompleted(_StripeModel):
    id: str
    type: Literal["checkout.session.completed"]
    data: CheckoutSessionData


class SubscriptionCreated(_StripeModel):
    id: str
    type: Literal["customer.subscription.created"]
    data: SubscriptionData


class SubscriptionUpdated(_StripeModel):
    id: str
    type: Literal["customer.subscription.updated"]
    data: SubscriptionData


class SubscriptionDeleted(_StripeModel):
    id: str
    type: Literal["customer.subscription.deleted"]
    data: SubscriptionData


StripeEvent = Annotated[
    Union[CheckoutSessionCompleted, SubscriptionCreated, SubscriptionUpdated, SubscriptionDeleted],
    Field(discriminator="type"),
]

HANDLED_EVENT_TYPES = frozenset({
    "checkout.session.completed",
    "customer.subscription.created",
    "customer.subscription.updated",
    "customer.subscription.deleted",
})

_adapter = TypeAdapter(StripeEvent)


def parse_event(raw: Dict[str, Any]) -> Optional[StripeEvent]:
    """
    Returns the typed event, or None for event types the billing flow ignores.
    Raises MalformedEventError when a handled type does not match its schema.
    """
    if raw.get("type") not in HANDLED_EVENT_TYPES:
        return None
    try:
        return _adapter.validate_python(raw)
    except ValidationError as e:
        raise MalformedEventError(f"Malformed {raw.get('type')} event: {e.error_count()} validation error(s)") from e
