import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from fastapi import HTTPException

from ..ports.notification_repo import NotificationRepository, NotificationRecord
from ..ports.notification_publisher import NotificationPublisher
from .notification_grouping import NotificationGroup, group_notifications

logger = logging.getLogger(__name__)

VALID_TYPES = (
    "message", "typing", "follow", "unfollow", "like", "unlike", "comment", "comment_reply",
    "post_published", "post_approved", "post_rejected", "mention",
    "application_approved", "application_rejected", "login", "login_alert",
    "profile_update", "bookmark", "share", "system_alert", "welcome", "achievement", "milestone",
)


@dataclass
class NotificationService:
    repo: NotificationRepository
    publisher: NotificationPublisher

    def _publish(self, user_id: str, event: Dict[str, Any]) -> None:
        try:
            self.publisher.publish(user_id, event)
        except Exception as e:
            # best effort
            logger.error(f"Failed to publish {event.get('type')} to {user_id}: {e}")

    def list_notifications(self, user_id: str, limit: int = 50, offset: int = 0,
                           unread_only: bool = False, type: Optional[str] = None) -> Dict[str, Any]:
        notifications = self.repo.list_for_user(
            user_id, type=type, read=False if unread_only else None, limit=limit, offset=offset
        )
        return {
            "notifications": notifications,
            "unread_count": self.repo.count_unread(user_id),
            "has_more": len(notifications) == limit,
        }

    def grouped(self, caller_id: str, target_user_id: Optional[str] = None, is_admin: bool = False,
                limit: int = 50, offset: int = 0, category: Optional[str] = None,
                type: Optional[str] = None) -> List[NotificationGroup]:
        owner = target_user_id or caller_id
        if owner != caller_id and not is_admin:
            raise HTTPException(status_code=403, detail="Not allowed to view another user's notifications")
        notifications = self.repo.list_for_user(owner, type=type, category=category, limit=limit, offset=offset)
        return group_notifications(notifications)

    def unread_count(self, user_id: str) -> int:
        return self.repo.count_unread(user_id)

    def create(self, payload: Dict[str, Any], caller_id: Optional[str] = None,
               server_call: bool = False) -> NotificationRecord:
        if not server_call and not caller_id:
            raise HTTPException(status_code=401, detail="Unauthorized")
        for name in ("user_id", "type", "title", "message"):
            if not payload.get(name):
                raise HTTPException(status_code=400, detail="Missing required fields")
        if payload["type"] not in VALID_TYPES:
            raise HTTPException(status_code=400, detail="Invalid notification type")
        if not server_call and payload["user_id"] != caller_id:
            raise HTTPException(status_code=403, detail="Cannot create notifications for another user")

        record = self.repo.create(
            user_id=payload["user_id"],
            type=payload["type"],
            title=payload["title"],
            message=payload["message"],
            category=payload.get("category"),
            data=payload.get("data"),
        )
        logger.info(f"Created {record.type} notification {record.id} for {record.user_id}")
        self._publish(record.user_id, {"type": "new_notification", "notification_id": record.id})
        return record

    def mark_read(self, user_id: str, notification_id: str) -> None:
        if not self.repo.mark_read(notification_id, user_id):
            raise HTTPException(status_code=404, detail="Notification not found")
        self._publish(user_id, {"type": "notification_read", "notification_id": notification_id})

    def mark_all_read(self, user_id: str) -> int:
        updated = self.repo.mark_all_read(user_id)
        self._publish(user_id, {"type": "notifications_all_read", "updated_count": updated})
        return updated

    def delete(self, user_id: str, notification_id: str) -> None:
        if not self.repo.delete(notification_id, user_id):
            raise HTTPException(status_code=404, detail="Notification not found")
        self._publish(user_id, {"type": "notification_removed", "notification_id": notification_id})

    def clear_all(self, user_id: str) -> int:
        deleted = self.repo.clear_all(user_id)
        self._publish(user_id, {"type": "notifications_cleared"})
        return deleted
