"""Collapse a user's flat notifications into grouped, summarized views.

Notifications about the same conversation, the same liked or commented
target, the same follower, the same login device or the same achievement
share a group. Any other type shares one group per type string.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from ..ports.notification_repo import (
    AchievementPayload,
    ContractViolation,
    FollowPayload,
    LoginPayload,
    MessagePayload,
    NotificationRecord,
    TargetPayload,
)

UNKNOWN = "unknown"


@dataclass
class NotificationGroup:
    id: str
    user_id: str
    type: str
    category: str
    notifications: List[NotificationRecord] = field(default_factory=list)
    unread_count: int = 0
    latest_notification: Optional[NotificationRecord] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


def _part(value: Any) -> str:
    # Missing, null and empty values all collapse to the same bucket
    if not value:
        return UNKNOWN
    # Render scalars the way the client-side keys were produced
    if isinstance(value, bool):
        return "true"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def group_key(record: NotificationRecord) -> str:
    payload = record.payload
    if isinstance(payload, MessagePayload):
        return f"message_{_part(payload.conversation_id)}"
    if isinstance(payload, TargetPayload):
        return f"{record.type}_{_part(payload.target_id)}"
    if isinstance(payload, FollowPayload):
        return f"follow_{_part(payload.actor_id)}"
    if isinstance(payload, LoginPayload):
        return f"login_{_part(payload.device_info)}"
    if isinstance(payload, AchievementPayload):
        return f"achievement_{_part(payload.achievement_type)}"
    return record.type


def _coerce(item: Union[NotificationRecord, Mapping[str, Any]]) -> NotificationRecord:
    if isinstance(item, NotificationRecord):
        return item
    if isinstance(item, Mapping):
        return NotificationRecord.from_mapping(item)
    raise ContractViolation(f"expected a notification record, got {type(item).__name__}")


def group_notifications(notifications: Sequence[Union[NotificationRecord, Mapping[str, Any]]]) -> List[NotificationGroup]:
    """Group notifications by derived key, newest group first.

    Input order is not trusted: members are re-sorted by ``created_at``
    within each group. Duplicate rows are kept as separate members.
    """
    if isinstance(notifications, (str, bytes)) or not isinstance(notifications, Sequence):
        raise ContractViolation(f"expected a sequence of notifications, got {type(notifications).__name__}")

    buckets: Dict[str, List[NotificationRecord]] = {}
    for item in notifications:
        record = _coerce(item)
        buckets.setdefault(group_key(record), []).append(record)

    groups = []
    for key, members in buckets.items():
        members.sort(key=lambda n: n.created_at, reverse=True)
        latest = members[0]
        groups.append(NotificationGroup(
            id=key,
            user_id=latest.user_id,
            type=latest.type,
            category=latest.category or "system",
            notifications=members,
            unread_count=sum(1 for n in members if not n.read),
            latest_notification=latest,
            created_at=latest.created_at,
            updated_at=latest.created_at,
        ))

    groups.sort(key=lambda g: g.updated_at, reverse=True)
    return groups
