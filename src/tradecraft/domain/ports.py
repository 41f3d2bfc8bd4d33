# src/tradecraft/domain/ports.py
"""
Storage port for users and the subscription event log.
Services depend on this protocol; infrastructure supplies the implementations.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from .entities import SubscriptionEvent, SubscriptionEventType, SubscriptionStatus, User


class SubscriptionStore(Protocol):

    def find_user_by_email(self, email: str) -> Optional[User]: ...

    def create_user(self, email: Optional[str] = None, **fields: Any) -> User:
        """Raises DuplicateUserError when the email is taken."""
        ...

    def update_user_subscription(
        self,
        email: str,
        status: SubscriptionStatus | str,
        subscription_expires: Optional[datetime] = None,
        stripe_customer_id: Optional[str] = None,
        stripe_event_id: Optional[str] = None,
    ) -> User: ...

    def record_subscription_event(
        self,
        user_id: str,
        type: SubscriptionEventType | str,
        stripe_event_id: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> SubscriptionEvent: ...

    def find_event_by_stripe_id(self, stripe_event_id: str) -> Optional[SubscriptionEvent]: ...

    def list_events(self, user_id: Optional[str] = None) -> List[SubscriptionEvent]: ...

    def update_profile(self, email: str, **fields: Any) -> User: ...

    def set_password_hash(self, email: str, hashed_password: str) -> User: ...
