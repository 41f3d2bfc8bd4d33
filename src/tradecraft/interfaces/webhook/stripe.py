# src/tradecraft/interfaces/webhook/stripe.py
"""
Webhook endpoint for Stripe billing events.
The raw body is passed through untouched: signature verification needs the
exact bytes Stripe signed.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from tradecraft.application.services import BillingWebhookService
from tradecraft.domain.errors import MalformedEventError, WebhookSignatureError
from tradecraft.interfaces.api.deps import get_billing_service

log = logging.getLogger(__name__)
router = APIRouter(prefix="/api/webhooks", tags=["Webhooks"])


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    billing_service: BillingWebhookService = Depends(get_billing_service),
):
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    try:
        result = await billing_service.handle(payload, signature)
    except WebhookSignatureError:
        return JSONResponse({"error": "Webhook signature verification failed"}, status_code=400)
    except MalformedEventError as e:
        log.error(f"Rejected malformed Stripe event: {e}")
        return JSONResponse({"error": "Malformed webhook event"}, status_code=400)
    except Exception:
        log.exception("Error processing Stripe webhook")
        return JSONResponse({"error": "Error processing webhook"}, status_code=500)

    return {"received": result.received}
