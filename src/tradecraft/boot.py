# src/tradecraft/boot.py
"""
Builds and wires the application services into a plain dict container,
which the API stores on `app.state.services`.
"""

import logging
from typing import Any, Dict, Optional

from tradecraft.config import Settings, settings as default_settings
from tradecraft.application.services import AnalyticsService, BillingWebhookService, QuoteService
from tradecraft.infrastructure.billing.stripe_gateway import StripeGateway
from tradecraft.infrastructure.cache import InMemoryCache
from tradecraft.infrastructure.market.finnhub_client import FinnhubClient
from tradecraft.infrastructure.memory_store import InMemorySubscriptionStore

log = logging.getLogger(__name__)


def build_store(settings: Settings):
    backend = (settings.SUBSCRIPTION_STORE or "memory").strip().lower()
    if backend == "memory":
        log.warning("Using the in-memory subscription store; data is lost on restart.")
        return InMemorySubscriptionStore()
    if backend == "sql":
        from tradecraft.infrastructure.db.base import build_engine, build_session_factory, create_tables
        from tradecraft.infrastructure.db.subscription_repository import SqlSubscriptionStore

        engine = build_engine(settings.DATABASE_URL)
        create_tables(engine)
        return SqlSubscriptionStore(build_session_factory(engine))
    raise ValueError(f"Unknown SUBSCRIPTION_STORE backend: {settings.SUBSCRIPTION_STORE!r}")


def build_services(settings: Optional[Settings] = None) -> Dict[str, Any]:
    """Build and wire all application services and dependencies."""
    settings = settings or default_settings
    log.info("Building application services...")
    services: Dict[str, Any] = {}

    try:
        store = build_store(settings)
        services["store"] = store

        gateway = StripeGateway(
            api_key=settings.STRIPE_SECRET_KEY,
            webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
            subscription_price_id=settings.STRIPE_SUBSCRIPTION_PRICE_ID,
            lifetime_price_id=settings.STRIPE_LIFETIME_PRICE_ID,
        )
        services["stripe_gateway"] = gateway

        live_client = FinnhubClient(settings.FINNHUB_API_KEY) if settings.FINNHUB_API_KEY else None
        if live_client is None:
            log.info("FINNHUB_API_KEY not set; quotes are synthetic.")
        services["quote_service"] = QuoteService(
            cache=InMemoryCache(ttl_seconds=settings.QUOTE_CACHE_TTL_SECONDS),
            live_client=live_client,
        )

        analytics_service = AnalyticsService()
        services["analytics_service"] = analytics_service
        services["billing_service"] = BillingWebhookService(
            store=store,
            gateway=gateway,
            analytics=analytics_service,
        )

        log.info("✅ All services built and wired successfully.")
        return services

    except Exception as e:
        log.critical(f"❌ Service building failed: {e}", exc_info=True)
        raise
