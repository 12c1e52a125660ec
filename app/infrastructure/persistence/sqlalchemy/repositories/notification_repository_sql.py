import json
import logging
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any
from sqlmodel import Session, select, col, func

from .....db.models import Notification
from .....application.ports.notification_repo import NotificationRepository, NotificationRecord

logger = logging.getLogger(__name__)

class SqlNotificationRepository(NotificationRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_record(self, n: Notification) -> NotificationRecord:
        data: Dict[str, Any] = {}
        if n.data:
            try:
                decoded = json.loads(n.data)
                if isinstance(decoded, dict):
                    data = decoded
            except json.JSONDecodeError:
                logger.warning(f"Notification {n.id} has undecodable data payload")
        return NotificationRecord(
            id=n.id,
            user_id=n.user_id,
            type=n.type,
            category=n.category or "system",
            title=n.title,
            message=n.message,
            data=data,
            read=bool(n.read),
            read_at=n.read_at,
            created_at=n.created_at,
        )

    def _owned(self, notification_id: str, user_id: str) -> Optional[Notification]:
        return self.session.exec(
            select(Notification)
            .where(Notification.id == notification_id)
            .where(Notification.user_id == user_id)
        ).first()

    def list_for_user(self, user_id: str, *, type: Optional[str] = None, category: Optional[str] = None,
                      read: Optional[bool] = None, limit: int = 50, offset: int = 0) -> List[NotificationRecord]:
        query = select(Notification).where(Notification.user_id == user_id)
        if type:
            query = query.where(Notification.type == type)
        if category:
            query = query.where(Notification.category == category)
        if read is not None:
            query = query.where(Notification.read == read)
        query = query.order_by(col(Notification.created_at).desc()).offset(offset).limit(limit)
        return [self._to_record(n) for n in self.session.exec(query).all()]

    def count_unread(self, user_id: str) -> int:
        return self.session.exec(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id)
            .where(Notification.read == False)  # noqa: E712
        ).one()

    def get_for_user(self, notification_id: str, user_id: str) -> Optional[NotificationRecord]:
        n = self._owned(notification_id, user_id)
        return self._to_record(n) if n else None

    def create(self, user_id: str, type: str, title: str, message: str, category: Optional[str],
               data: Optional[Dict[str, Any]]) -> NotificationRecord:
        n = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            category=category or "system",
            data=json.dumps(data) if data else None,
            read=False,
        )
        self.session.add(n)
        self.session.commit()
        self.session.refresh(n)
        return self._to_record(n)

    def mark_read(self, notification_id: str, user_id: str) -> bool:
        n = self._owned(notification_id, user_id)
        if not n:
            return False
        n.read = True
        n.read_at = datetime.now(timezone.utc)
        self.session.add(n)
        self.session.commit()
        return True

    def mark_all_read(self, user_id: str) -> int:
        unread = self.session.exec(
            select(Notification)
            .where(Notification.user_id == user_id)
            .where(Notification.read == False)  # noqa: E712
        ).all()
        now = datetime.now(timezone.utc)
        for n in unread:
            n.read = True
            n.read_at = now
            self.session.add(n)
        self.session.commit()
        return len(unread)

    def delete(self, notification_id: str, user_id: str) -> bool:
        n = self._owned(notification_id, user_id)
        if not n:
            return False
        self.session.delete(n)
        self.session.commit()
        return True

    def clear_all(self, user_id: str) -> int:
        rows = self.session.exec(select(Notification).where(Notification.user_id == user_id)).all()
        for n in rows:
            self.session.delete(n)
        self.session.commit()
        return len(rows)
