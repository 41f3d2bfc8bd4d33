# src/tradecraft/application/services/analytics_service.py
"""
Server-side analytics side channel for billing events.
Events are logged and counted; there is no external analytics sink.
"""

import logging
from typing import Any, Dict, Optional

from tradecraft.infrastructure.metrics import ANALYTICS_EVENTS

log = logging.getLogger(__name__)


class AnalyticsService:

    def track_server_event(self, name: str, data: Optional[Dict[str, Any]] = None) -> None:
        log.info(f"Server event tracked: {name} {data or {}}")
        ANALYTICS_EVENTS.labels(event=name).inc()
