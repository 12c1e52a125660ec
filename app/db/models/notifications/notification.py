# app/db/models/notifications/notification.py
from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime, timezone
import uuid

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

class Notification(SQLModel, table=True):
    __tablename__ = "notifications"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    user_id: str = Field(index=True, max_length=128)
    type: str = Field(index=True, max_length=50)
    category: str = Field(default="system", max_length=50)
    title: str
    message: str
    # JSON-encoded payload; shape depends on type
    data: Optional[str] = Field(default=None)
    read: bool = Field(default=False)
    read_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=_utcnow, index=True)
