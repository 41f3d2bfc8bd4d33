# src/tradecraft/interfaces/api/routers/user.py
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from tradecraft.domain.entitlement import entitlement_for
from tradecraft.domain.ports import SubscriptionStore
from tradecraft.interfaces.api.deps import get_session_email, get_store

router = APIRouter(prefix="/api/user", tags=["User"])


@router.get("/status")
def subscription_status(
    email: Optional[str] = Depends(get_session_email),
    store: SubscriptionStore = Depends(get_store),
):
    """Server-side entitlement check; the only input is the stored user record."""
    if not email:
        return JSONResponse({"isPro": False}, status_code=401)

    entitlement = entitlement_for(store.find_user_by_email(email))
    return {
        "isPro": entitlement.is_pro,
        "subscriptionStatus": entitlement.status.value,
        "subscriptionExpires": entitlement.expires.isoformat() if entitlement.expires else None,
    }
