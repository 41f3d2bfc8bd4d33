# src/tradecraft/domain/__init__.py
"""
Core entities and rules of the billing/entitlement domain.
Nothing in this package imports FastAPI, SQLAlchemy or Stripe.
"""

from .entities import (
    Quote,
    SubscriptionEvent,
    SubscriptionEventType,
    SubscriptionStatus,
    User,
)
from .entitlement import Entitlement, entitlement_for, is_pro

__all__ = [
    "Quote",
    "SubscriptionEvent",
    "SubscriptionEventType",
    "SubscriptionStatus",
    "User",
    "Entitlement",
    "entitlement_for",
    "is_pro",
]
