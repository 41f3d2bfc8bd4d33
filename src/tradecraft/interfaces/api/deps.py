# src/tradecraft/interfaces/api/deps.py
from __future__ import annotations

from typing import Optional

from fastapi import Cookie, Depends, HTTPException, Request, status

from tradecraft.application.services import BillingWebhookService, QuoteService
from tradecraft.domain.entities import User
from tradecraft.domain.ports import SubscriptionStore
from tradecraft.infrastructure.billing.stripe_gateway import StripeGateway
from tradecraft.interfaces.api.security.auth import SESSION_COOKIE, subject_from_token

# --- Service Dependencies ---

def _service(request: Request, name: str, label: str):
    services = request.app.state.services or {}
    service = services.get(name)
    if not service:
        raise HTTPException(status_code=503, detail=f"{label} is currently unavailable.")
    return service


def get_store(request: Request) -> SubscriptionStore:
    """Dependency to get the subscription store from the app state."""
    return _service(request, "store", "User store")


def get_quote_service(request: Request) -> QuoteService:
    return _service(request, "quote_service", "Quote service")


def get_billing_service(request: Request) -> BillingWebhookService:
    return _service(request, "billing_service", "Billing service")


def get_stripe_gateway(request: Request) -> StripeGateway:
    return _service(request, "stripe_gateway", "Payment service")

# --- Session Dependencies ---

def get_session_email(session: Optional[str] = Cookie(default=None, alias=SESSION_COOKIE)) -> Optional[str]:
    """The email in a valid session cookie, or None for anonymous requests."""
    return subject_from_token(session)


def require_session_email(email: Optional[str] = Depends(get_session_email)) -> str:
    if not email:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return email


def get_current_user(
    email: str = Depends(require_session_email),
    store: SubscriptionStore = Depends(get_store),
) -> User:
    user = store.find_user_by_email(email)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user
