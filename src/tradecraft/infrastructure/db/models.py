# src/tradecraft/infrastructure/db/models.py
"""
SQLAlchemy ORM models for users and the subscription event log.
"""

from sqlalchemy import JSON, Column, DateTime, Enum, Integer, String, Text

from tradecraft.domain.entities import SubscriptionEventType, SubscriptionStatus

from .base import Base


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class UserModel(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True)
    email = Column(String(320), unique=True, nullable=False, index=True)

    name = Column(String, nullable=True)
    title = Column(String, nullable=True)
    bio = Column(Text, nullable=True)
    trading_style = Column(String, nullable=True)
    risk_tolerance = Column(String, nullable=True)

    subscription_status = Column(
        Enum(SubscriptionStatus, name="subscription_status", values_callable=_enum_values),
        nullable=False,
        default=SubscriptionStatus.NONE,
    )
    subscription_expires = Column(DateTime(timezone=True), nullable=True)
    stripe_customer_id = Column(String(255), nullable=True, index=True)
    hashed_password = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', status='{self.subscription_status.value}')>"


class SubscriptionEventModel(Base):
    """
    Append-only log of processed billing events. The unique constraint on
    stripe_event_id is what makes webhook redelivery harmless.
    """
    __tablename__ = "subscription_events"

    pk = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(32), unique=True, nullable=False)
    user_id = Column(String(320), nullable=False, index=True)
    type = Column(
        Enum(SubscriptionEventType, name="subscription_event_type", values_callable=_enum_values),
        nullable=False,
    )
    # NULL when the event has no Stripe id; UNIQUE ignores NULLs.
    stripe_event_id = Column(String(255), unique=True, nullable=True)
    event_metadata = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<SubscriptionEvent(id={self.id}, user='{self.user_id}', type='{self.type.value}')>"
