# app/schemas/notifications/notification.py
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Dict, Any
from datetime import datetime

class NotificationCreate(BaseModel):
    user_id: Optional[str] = None
    type: Optional[str] = None
    title: Optional[str] = None
    message: Optional[str] = None
    category: Optional[str] = None
    data: Optional[Dict[str, Any]] = None

class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    type: str
    category: str = "system"
    title: Optional[str] = None
    message: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    read: bool
    read_at: Optional[datetime] = None
    created_at: datetime

class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    unread_count: int
    has_more: bool

class NotificationGroupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    type: str
    category: str
    notifications: List[NotificationResponse]
    unread_count: int
    latest_notification: NotificationResponse
    created_at: datetime
    updated_at: datetime

class NotificationCountResponse(BaseModel):
    unread_count: int
