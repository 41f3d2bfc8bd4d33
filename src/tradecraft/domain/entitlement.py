# src/tradecraft/domain/entitlement.py
"""
Derives whether a user should see "Pro" features.

The decision is made from the server-side user record only. Client-held
flags are never an input.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .entities import SubscriptionStatus, User, utcnow

PRO_STATUSES = frozenset({SubscriptionStatus.ACTIVE, SubscriptionStatus.LIFETIME})


@dataclass(frozen=True)
class Entitlement:
    is_pro: bool
    status: SubscriptionStatus
    expires: Optional[datetime] = None


def _aware(dt: datetime) -> datetime:
    # SQLite drops tzinfo; stored values are always UTC.
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def is_pro(user: Optional[User], now: Optional[datetime] = None) -> bool:
    """Pro when the status is active/lifetime, or a paid period has not yet ended."""
    if user is None:
        return False
    if user.subscription_status in PRO_STATUSES:
        return True
    if user.subscription_expires is None:
        return False
    now = _aware(now or utcnow())
    return _aware(user.subscription_expires) > now


def entitlement_for(user: Optional[User], now: Optional[datetime] = None) -> Entitlement:
    if user is None:
        return Entitlement(is_pro=False, status=SubscriptionStatus.NONE)
    return Entitlement(
        is_pro=is_pro(user, now),
        status=user.subscription_status,
        expires=user.subscription_expires,
    )
