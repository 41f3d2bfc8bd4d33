from prometheus_client import Counter, Histogram

REQUESTS = Counter("tradecraft_requests_total", "Total API requests")
LATENCY = Histogram("tradecraft_request_latency_seconds", "Request latency")

WEBHOOK_EVENTS = Counter(
    "tradecraft_webhook_events_total",
    "Stripe webhook deliveries by event type and outcome",
    ["type", "outcome"],
)
ANALYTICS_EVENTS = Counter(
    "tradecraft_analytics_events_total",
    "Server-side analytics events by name",
    ["event"],
)
