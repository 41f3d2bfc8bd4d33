# src/tradecraft/interfaces/api/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from tradecraft.domain.entitlement import is_pro
from tradecraft.domain.entities import User


def _to_str(v: Any) -> str | None:
    if v is None: return None
    if hasattr(v, "value"): return str(v.value)
    return str(v)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PublicUser(CamelModel):
    """User fields safe to hand to the browser (no password hash, no Stripe ids)."""
    id: str
    email: str
    name: str | None = None
    title: str | None = None
    bio: str | None = None
    trading_style: str | None = None
    risk_tolerance: str | None = None
    subscription_status: str
    subscription_expires: datetime | None = None
    is_pro: bool = False
    created_at: datetime
    updated_at: datetime

    @field_validator("subscription_status", mode="before")
    @classmethod
    def v_status(cls, v): return _to_str(v) or "none"

    @classmethod
    def from_user(cls, user: User, now: Optional[datetime] = None) -> "PublicUser":
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            title=user.title,
            bio=user.bio,
            trading_style=user.trading_style,
            risk_tolerance=user.risk_tolerance,
            subscription_status=user.subscription_status,
            subscription_expires=user.subscription_expires,
            is_pro=is_pro(user, now),
            created_at=user.created_at,
            updated_at=user.updated_at,
        )

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Credentials(BaseModel):
    # Optional so that missing fields produce the API's own 400, not a 422.
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


class ProfileUpdate(CamelModel):
    name: Optional[str] = None
    title: Optional[str] = None
    bio: Optional[str] = None
    trading_style: Optional[str] = None
    risk_tolerance: Optional[str] = None


class CheckoutRequest(CamelModel):
    plan: Optional[str] = None
    email: Optional[str] = None
    base_url: Optional[str] = None
