# src/tradecraft/infrastructure/memory_store.py
"""
Process-local implementation of the SubscriptionStore port.

State lives for the lifetime of the process and is not shared between
workers; use SqlSubscriptionStore for anything that must survive a restart.
"""

import logging
import threading
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from tradecraft.domain.entities import (
    PROFILE_FIELDS,
    SubscriptionEvent,
    SubscriptionEventType,
    SubscriptionStatus,
    User,
    utcnow,
)
from tradecraft.domain.errors import DuplicateUserError, ValidationError

log = logging.getLogger(__name__)

_USER_FIELDS = set(PROFILE_FIELDS) | {
    "subscription_status",
    "subscription_expires",
    "stripe_customer_id",
    "hashed_password",
}


def new_id() -> str:
    return uuid.uuid4().hex


def parse_status(value: Any) -> SubscriptionStatus:
    try:
        return SubscriptionStatus.parse(value)
    except ValueError:
        raise ValidationError(f"Invalid subscription status: {value!r}")


def parse_event_type(value: Any) -> SubscriptionEventType:
    try:
        return SubscriptionEventType(value)
    except ValueError:
        raise ValidationError(f"Invalid subscription event type: {value!r}")


def next_timestamp(now: datetime, previous: datetime) -> datetime:
    """Keeps updated_at strictly increasing even when the clock has not advanced."""
    if now <= previous:
        return previous + timedelta(microseconds=1)
    return now


class InMemorySubscriptionStore:
    """Users keyed by email plus an append-only event list, guarded by one lock."""

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._lock = threading.RLock()
        self._users: Dict[str, User] = {}
        self._events: List[SubscriptionEvent] = []
        self._events_by_stripe_id: Dict[str, SubscriptionEvent] = {}

    # --- Users ---

    def find_user_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            return self._users.get(email)

    def create_user(self, email: Optional[str] = None, **fields: Any) -> User:
        if not email:
            raise ValidationError("Email is required")
        unknown = set(fields) - _USER_FIELDS
        if unknown:
            raise ValidationError(f"Unknown user fields: {', '.join(sorted(unknown))}")
        if "subscription_status" in fields:
            fields["subscription_status"] = parse_status(fields["subscription_status"])
        fields = {k: v for k, v in fields.items() if v is not None}

        with self._lock:
            if email in self._users:
                raise DuplicateUserError(f"User {email} already exists.")
            now = self._clock()
            user = User(id=new_id(), email=email, created_at=now, updated_at=now, **fields)
            self._users[email] = user
        log.info(f"Created user {email} with status '{user.subscription_status.value}'.")
        return user

    def update_user_subscription(
        self,
        email: str,
        status: SubscriptionStatus | str,
        subscription_expires: Optional[datetime] = None,
        stripe_customer_id: Optional[str] = None,
        stripe_event_id: Optional[str] = None,
    ) -> User:
        status = parse_status(status)
        with self._lock:
            user = self._users.get(email)
            if user is None:
                return self.create_user(
                    email=email,
                    subscription_status=status,
                    subscription_expires=subscription_expires,
                    stripe_customer_id=stripe_customer_id,
                )

            if stripe_event_id and self._already_applied(email, stripe_event_id):
                log.info(f"Subscription update for {email} from {stripe_event_id} already applied; skipping.")
                return user

            user.subscription_status = status
            if subscription_expires is not None:
                user.subscription_expires = subscription_expires
            if stripe_customer_id:
                user.stripe_customer_id = stripe_customer_id
            user.updated_at = next_timestamp(self._clock(), user.updated_at)
            return user

    def update_profile(self, email: str, **fields: Any) -> User:
        unknown = set(fields) - set(PROFILE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown profile fields: {', '.join(sorted(unknown))}")
        with self._lock:
            user = self._users.get(email)
            if user is None:
                raise ValidationError(f"User {email} not found.")
            for key, value in fields.items():
                setattr(user, key, value)
            user.updated_at = next_timestamp(self._clock(), user.updated_at)
            return user

    def set_password_hash(self, email: str, hashed_password: str) -> User:
        with self._lock:
            user = self._users.get(email)
            if user is None:
                raise ValidationError(f"User {email} not found.")
            user.hashed_password = hashed_password
            user.updated_at = next_timestamp(self._clock(), user.updated_at)
            return user

    # --- Events ---

    def record_subscription_event(
        self,
        user_id: str,
        type: SubscriptionEventType | str,
        stripe_event_id: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> SubscriptionEvent:
        event_type = parse_event_type(type)
        with self._lock:
            if stripe_event_id:
                existing = self._events_by_stripe_id.get(stripe_event_id)
                if existing is not None:
                    log.info(f"Event {stripe_event_id} already recorded as #{existing.id}; not appending.")
                    return existing

            event = SubscriptionEvent(
                id=new_id(),
                user_id=user_id,
                type=event_type,
                stripe_event_id=stripe_event_id,
                metadata=dict(metadata or {}),
                created_at=self._clock(),
            )
            self._events.append(event)
            if stripe_event_id:
                self._events_by_stripe_id[stripe_event_id] = event
            return event

    def find_event_by_stripe_id(self, stripe_event_id: str) -> Optional[SubscriptionEvent]:
        with self._lock:
            return self._events_by_stripe_id.get(stripe_event_id)

    def list_events(self, user_id: Optional[str] = None) -> List[SubscriptionEvent]:
        with self._lock:
            return [e for e in self._events if user_id is None or e.user_id == user_id]

    def _already_applied(self, email: str, stripe_event_id: str) -> bool:
        event = self._events_by_stripe_id.get(stripe_event_id)
        return event is not None and event.user_id == email
