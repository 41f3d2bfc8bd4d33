# src/tradecraft/infrastructure/db/subscription_repository.py
"""
SQLAlchemy implementation of the SubscriptionStore port.
Every public method runs in its own transaction and returns detached domain
entities, never ORM rows.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from tradecraft.domain.entities import (
    PROFILE_FIELDS,
    SubscriptionEvent,
    SubscriptionEventType,
    SubscriptionStatus,
    User,
    utcnow,
)
from tradecraft.domain.errors import DuplicateUserError, ValidationError
from tradecraft.infrastructure.memory_store import (
    new_id,
    next_timestamp,
    parse_event_type,
    parse_status,
)

from .base import session_scope
from .models import SubscriptionEventModel, UserModel

log = logging.getLogger(__name__)

_CREATE_FIELDS = set(PROFILE_FIELDS) | {
    "subscription_status",
    "subscription_expires",
    "stripe_customer_id",
    "hashed_password",
}


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class SqlSubscriptionStore:
    """Repository for users and subscription events."""

    def __init__(self, session_factory: sessionmaker, clock: Callable[[], datetime] = utcnow):
        self.session_factory = session_factory
        self._clock = clock

    # --- Mapping ---

    @staticmethod
    def _to_user(row: UserModel) -> User:
        return User(
            id=row.id,
            email=row.email,
            name=row.name,
            title=row.title,
            bio=row.bio,
            trading_style=row.trading_style,
            risk_tolerance=row.risk_tolerance,
            subscription_status=SubscriptionStatus(row.subscription_status),
            subscription_expires=_aware(row.subscription_expires),
            stripe_customer_id=row.stripe_customer_id,
            hashed_password=row.hashed_password,
            created_at=_aware(row.created_at),
            updated_at=_aware(row.updated_at),
        )

    @staticmethod
    def _to_event(row: SubscriptionEventModel) -> SubscriptionEvent:
        return SubscriptionEvent(
            id=row.id,
            user_id=row.user_id,
            type=SubscriptionEventType(row.type),
            stripe_event_id=row.stripe_event_id or "",
            metadata=dict(row.event_metadata or {}),
            created_at=_aware(row.created_at),
        )

    @staticmethod
    def _user_row(session: Session, email: str) -> Optional[UserModel]:
        return session.query(UserModel).filter(UserModel.email == email).first()

    @staticmethod
    def _event_row(session: Session, stripe_event_id: str) -> Optional[SubscriptionEventModel]:
        return (
            session.query(SubscriptionEventModel)
            .filter(SubscriptionEventModel.stripe_event_id == stripe_event_id)
            .first()
        )

    def _touch(self, row: UserModel) -> None:
        row.updated_at = next_timestamp(self._clock(), _aware(row.updated_at))

    # --- Users ---

    def find_user_by_email(self, email: str) -> Optional[User]:
        with session_scope(self.session_factory) as session:
            row = self._user_row(session, email)
            return self._to_user(row) if row else None

    def _insert_user(self, session: Session, email: Optional[str], fields: Dict[str, Any]) -> UserModel:
        if not email:
            raise ValidationError("Email is required")
        unknown = set(fields) - _CREATE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown user fields: {', '.join(sorted(unknown))}")
        fields = {k: v for k, v in fields.items() if v is not None}
        fields["subscription_status"] = parse_status(fields.get("subscription_status", SubscriptionStatus.NONE))
        if self._user_row(session, email) is not None:
            raise DuplicateUserError(f"User {email} already exists.")

        now = self._clock()
        row = UserModel(id=new_id(), email=email, created_at=now, updated_at=now, **fields)
        session.add(row)
        try:
            session.flush()
        except IntegrityError as e:
            raise DuplicateUserError(f"User {email} already exists.") from e
        log.info(f"Created user {email} with status '{row.subscription_status.value}'.")
        return row

    def create_user(self, email: Optional[str] = None, **fields: Any) -> User:
        with session_scope(self.session_factory) as session:
            return self._to_user(self._insert_user(session, email, fields))

    def update_user_subscription(
        self,
        email: str,
        status: SubscriptionStatus | str,
        subscription_expires: Optional[datetime] = None,
        stripe_customer_id: Optional[str] = None,
        stripe_event_id: Optional[str] = None,
    ) -> User:
        status = parse_status(status)
        with session_scope(self.session_factory) as session:
            row = self._user_row(session, email)
            if row is None:
                row = self._insert_user(session, email, {
                    "subscription_status": status,
                    "subscription_expires": subscription_expires,
                    "stripe_customer_id": stripe_customer_id,
                })
                return self._to_user(row)

            if stripe_event_id:
                applied = self._event_row(session, stripe_event_id)
                if applied is not None and applied.user_id == email:
                    log.info(f"Subscription update for {email} from {stripe_event_id} already applied; skipping.")
                    return self._to_user(row)

            row.subscription_status = status
            if subscription_expires is not None:
                row.subscription_expires = subscription_expires
            if stripe_customer_id:
                row.stripe_customer_id = stripe_customer_id
            self._touch(row)
            session.flush()
            return self._to_user(row)

    def update_profile(self, email: str, **fields: Any) -> User:
        unknown = set(fields) - set(PROFILE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown profile fields: {', '.join(sorted(unknown))}")
        with session_scope(self.session_factory) as session:
            row = self._user_row(session, email)
            if row is None:
                raise ValidationError(f"User {email} not found.")
            for key, value in fields.items():
                setattr(row, key, value)
            self._touch(row)
            session.flush()
            return self._to_user(row)

    def set_password_hash(self, email: str, hashed_password: str) -> User:
        with session_scope(self.session_factory) as session:
            row = self._user_row(session, email)
            if row is None:
                raise ValidationError(f"User {email} not found.")
            row.hashed_password = hashed_password
            self._touch(row)
            session.flush()
            return self._to_user(row)

    # --- Events ---

    def record_subscription_event(
        self,
        user_id: str,
        type: SubscriptionEventType | str,
        stripe_event_id: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> SubscriptionEvent:
        event_type = parse_event_type(type)
        if stripe_event_id:
            existing = self.find_event_by_stripe_id(stripe_event_id)
            if existing is not None:
                log.info(f"Event {stripe_event_id} already recorded as #{existing.id}; not appending.")
                return existing

        try:
            with session_scope(self.session_factory) as session:
                row = SubscriptionEventModel(
                    id=new_id(),
                    user_id=user_id,
                    type=event_type,
                    stripe_event_id=stripe_event_id or None,
                    event_metadata=dict(metadata or {}),
                    created_at=self._clock(),
                )
                session.add(row)
                session.flush()
                return self._to_event(row)
        except IntegrityError:
            # Lost a race with a concurrent delivery of the same event.
            existing = self.find_event_by_stripe_id(stripe_event_id) if stripe_event_id else None
            if existing is None:
                raise
            return existing

    def find_event_by_stripe_id(self, stripe_event_id: str) -> Optional[SubscriptionEvent]:
        if not stripe_event_id:
            return None
        with session_scope(self.session_factory) as session:
            row = self._event_row(session, stripe_event_id)
            return self._to_event(row) if row else None

    def list_events(self, user_id: Optional[str] = None) -> List[SubscriptionEvent]:
        with session_scope(self.session_factory) as session:
            query = session.query(SubscriptionEventModel)
            if user_id is not None:
                query = query.filter(SubscriptionEventModel.user_id == user_id)
            rows = query.order_by(SubscriptionEventModel.pk.asc()).all()
            return [self._to_event(r) for r in rows]
