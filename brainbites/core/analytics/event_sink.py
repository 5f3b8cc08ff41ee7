"""
Analytics event sink
"""

import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class AnalyticsSink(Protocol):
    """Fire-and-forget analytics events"""

    def track(self, event_name: str, properties: dict[str, Any] | None = None) -> None: ...


class LoggingAnalyticsSink:
    """Analytics sink that records events in the log"""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def track(self, event_name: str, properties: dict[str, Any] | None = None) -> None:
        if not self.enabled:
            return
        logger.info(f"Analytics event: {event_name} {properties or {}}")
