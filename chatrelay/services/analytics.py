"""Fire-and-forget analytics events (Mixpanel).

Events are handed to a small thread pool and never awaited; any failure is
logged and dropped so it cannot change the outcome of a request.
"""
import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Dict, Optional

from mixpanel import Mixpanel

logger = logging.getLogger(__name__)

AI_RESPONSE_GENERATED = "AI Response Generated"


class AnalyticsEmitter:
    """Non-blocking side channel for product analytics."""

    def __init__(
        self,
        token: Optional[str],
        executor: Optional[Executor] = None,
        tracker: Optional[Any] = None,
    ):
        self.tracker = tracker if tracker is not None else (Mixpanel(token) if token else None)
        self.enabled = self.tracker is not None
        if not self.enabled:
            logger.info("Analytics disabled: MIXPANEL_TOKEN not set")
        self._executor = executor or ThreadPoolExecutor(
            max_workers=2, thread_name_prefix="analytics"
        )

    def emit(self, event: str, distinct_id: str, properties: Dict[str, Any]) -> None:
        """Schedule an event and return immediately."""
        if not self.enabled:
            return
        try:
            self._executor.submit(self._track, event, distinct_id, dict(properties))
        except Exception:
            logger.exception("Analytics dispatch error for event %r", event)

    def _track(self, event: str, distinct_id: str, properties: Dict[str, Any]) -> None:
        try:
            self.tracker.track(distinct_id, event, properties)
        except Exception:
            logger.exception("Mixpanel tracking error for event %r", event)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
