# src/tradecraft/domain/entities.py
"""
Defines the core business entities of the system: users with their
subscription fields, the append-only subscription event log, and quotes.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- ENUMERATIONS ---

class SubscriptionStatus(str, Enum):
    """Lifecycle states of a user's paid access."""
    NONE = "none"
    ACTIVE = "active"
    LIFETIME = "lifetime"
    CANCELED = "canceled"
    EXPIRED = "expired"

    @classmethod
    def parse(cls, value: Any) -> "SubscriptionStatus":
        """Accepts an enum member or its string value; raises ValueError otherwise."""
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


class SubscriptionEventType(str, Enum):
    """Kinds of entries written to the subscription event log."""
    SUBSCRIPTION_CREATED = "subscription_created"
    SUBSCRIPTION_UPDATED = "subscription_updated"
    SUBSCRIPTION_CANCELED = "subscription_canceled"
    PAYMENT_SUCCEEDED = "payment_succeeded"


PROFILE_FIELDS = ("name", "title", "bio", "trading_style", "risk_tolerance")

# --- ENTITIES ---

@dataclass
class User:
    """
    A TradeCraft account. Profile fields are display-only; the subscription
    fields are written exclusively by the billing webhook flow.
    """
    id: str
    email: str

    name: Optional[str] = None
    title: Optional[str] = None
    bio: Optional[str] = None
    trading_style: Optional[str] = None
    risk_tolerance: Optional[str] = None

    subscription_status: SubscriptionStatus = SubscriptionStatus.NONE
    # Only meaningful while the status is ACTIVE.
    subscription_expires: Optional[datetime] = None
    stripe_customer_id: Optional[str] = None

    hashed_password: Optional[str] = field(default=None, repr=False)

    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class SubscriptionEvent:
    """An immutable entry in the subscription event log."""
    id: str
    user_id: str  # the user's email
    type: SubscriptionEventType
    stripe_event_id: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class Quote:
    """A price snapshot for a ticker symbol. `timestamp` is epoch milliseconds."""
    symbol: str
    price: float
    change: float
    change_percent: float
    previous_close: float
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "price": self.price,
            "change": self.change,
            "changePercent": self.change_percent,
            "previousClose": self.previous_close,
            "timestamp": self.timestamp,
        }
