from .analytics_service import AnalyticsService
from .billing_service import BillingWebhookService, WebhookResult
from .quote_service import QuoteService

__all__ = [
    "AnalyticsService",
    "BillingWebhookService",
    "WebhookResult",
    "QuoteService",
]
