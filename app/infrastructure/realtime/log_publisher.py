import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from ...application.ports.notification_publisher import NotificationPublisher


class LoggingNotificationPublisher(NotificationPublisher):
    """Emits realtime notification events as structured log lines."""

    def __init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def publish(self, user_id: str, event: Dict[str, Any]) -> None:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "user_id": user_id,
            **event,
        }
        self._logger.info(f"NOTIFY: {json.dumps(entry, default=str)}")
