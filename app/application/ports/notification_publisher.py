from typing import Any, Dict, Protocol


class NotificationPublisher(Protocol):
    def publish(self, user_id: str, event: Dict[str, Any]) -> None:
        ...
