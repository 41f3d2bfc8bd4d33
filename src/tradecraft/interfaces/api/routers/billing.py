# src/tradecraft/interfaces/api/routers/billing.py
"""
Checkout endpoints: starting a Stripe Checkout session and confirming one
after the redirect back from Stripe.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from tradecraft.config import settings
from tradecraft.domain.errors import PaymentGatewayError, ValidationError
from tradecraft.infrastructure.billing.stripe_gateway import StripeGateway
from tradecraft.interfaces.api.deps import get_stripe_gateway
from tradecraft.interfaces.api.schemas import CheckoutRequest

log = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["Billing"])


@router.post("/create-checkout-session")
async def create_checkout_session(
    body: CheckoutRequest,
    gateway: StripeGateway = Depends(get_stripe_gateway),
):
    if not body.plan:
        raise HTTPException(status_code=400, detail="Missing required field: plan")
    if not body.email:
        raise HTTPException(status_code=400, detail="Missing required field: email")

    origin = (body.base_url or settings.PUBLIC_BASE_URL).rstrip("/")
    loop = asyncio.get_running_loop()
    try:
        url = await loop.run_in_executor(None, gateway.create_checkout_session, body.plan, body.email, origin)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PaymentGatewayError as e:
        log.error(f"Stripe checkout error: {e}")
        return JSONResponse(
            {"error": "Failed to create checkout session", "details": str(e)},
            status_code=500,
        )
    return {"url": url}


@router.get("/verify-payment")
async def verify_payment(
    session_id: Optional[str] = Query(default=None),
    gateway: StripeGateway = Depends(get_stripe_gateway),
):
    if not session_id:
        raise HTTPException(status_code=400, detail="Missing session_id parameter")

    log.info(f"Verifying payment session: {session_id}")
    loop = asyncio.get_running_loop()
    try:
        session = await loop.run_in_executor(None, gateway.retrieve_checkout_session, session_id)
    except PaymentGatewayError as e:
        log.error(f"Error verifying payment: {e}")
        return JSONResponse({"error": "Error verifying payment", "details": str(e)}, status_code=500)

    if session.payment_status != "paid":
        raise HTTPException(
            status_code=400,
            detail=f"Payment not completed. Status: {session.payment_status}",
        )

    return {
        "success": True,
        "planType": session.plan_type or "unknown",
        "customerEmail": session.customer_email,
        "subscriptionId": session.subscription_id,
        "paymentIntentId": session.payment_intent_id,
    }
