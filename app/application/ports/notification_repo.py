from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol, Optional, List, Dict, Any, Mapping, Union
from pydantic import TypeAdapter, ValidationError


class ContractViolation(ValueError):
    """Raised when notification input does not have the shape callers promised."""


# Payload variants, one per notification type that carries a grouping target.

@dataclass(frozen=True)
class MessagePayload:
    conversation_id: Optional[Any] = None


@dataclass(frozen=True)
class TargetPayload:
    # like / comment
    target_id: Optional[Any] = None


@dataclass(frozen=True)
class FollowPayload:
    actor_id: Optional[Any] = None


@dataclass(frozen=True)
class LoginPayload:
    device_info: Optional[Any] = None


@dataclass(frozen=True)
class AchievementPayload:
    achievement_type: Optional[Any] = None


@dataclass(frozen=True)
class GenericPayload:
    fields: Dict[str, Any] = field(default_factory=dict)


Payload = Union[MessagePayload, TargetPayload, FollowPayload, LoginPayload, AchievementPayload, GenericPayload]

_datetime_adapter = TypeAdapter(datetime)


def parse_payload(type: str, data: Optional[Mapping[str, Any]]) -> Payload:
    data = data or {}
    if type == "message":
        return MessagePayload(conversation_id=data.get("conversation_id"))
    if type in ("like", "comment"):
        return TargetPayload(target_id=data.get("target_id"))
    if type == "follow":
        return FollowPayload(actor_id=data.get("actor_id"))
    if type == "login":
        return LoginPayload(device_info=data.get("device_info"))
    if type == "achievement":
        return AchievementPayload(achievement_type=data.get("achievement_type"))
    return GenericPayload(fields=dict(data))


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """Parse an ISO-8601 string or datetime into an aware UTC-based datetime."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = _datetime_adapter.validate_python(value)
        except ValidationError:
            raise ContractViolation(f"created_at is not an ISO-8601 timestamp: {value!r}")
    else:
        raise ContractViolation(f"created_at must be a datetime or ISO string, got {type(value).__name__}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class NotificationRecord:
    id: str
    user_id: str
    type: str
    read: bool
    created_at: datetime
    category: str = "system"
    data: Dict[str, Any] = field(default_factory=dict)
    title: Optional[str] = None
    message: Optional[str] = None
    read_at: Optional[datetime] = None
    payload: Payload = field(init=False)

    def __post_init__(self):
        self.created_at = parse_timestamp(self.created_at)
        self.payload = parse_payload(self.type, self.data)

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "NotificationRecord":
        if not isinstance(row, Mapping):
            raise ContractViolation(f"notification must be a mapping, got {type(row).__name__}")
        for name in ("id", "user_id", "type", "created_at", "read"):
            if row.get(name) is None:
                raise ContractViolation(f"notification is missing required field '{name}'")
        if not isinstance(row["type"], str) or not row["type"]:
            raise ContractViolation("notification field 'type' must be a non-empty string")
        if not isinstance(row["read"], bool):
            raise ContractViolation("notification field 'read' must be a boolean")
        data = row.get("data")
        if data is not None and not isinstance(data, Mapping):
            raise ContractViolation("notification field 'data' must be an object")
        read_at = row.get("read_at")
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            type=row["type"],
            read=row["read"],
            created_at=parse_timestamp(row["created_at"]),
            category=row.get("category") or "system",
            data=dict(data or {}),
            title=row.get("title"),
            message=row.get("message"),
            read_at=parse_timestamp(read_at) if read_at is not None else None,
        )


class NotificationRepository(Protocol):
    def list_for_user(self, user_id: str, *, type: Optional[str] = None, category: Optional[str] = None,
                      read: Optional[bool] = None, limit: int = 50, offset: int = 0) -> List[NotificationRecord]:
        ...

    def count_unread(self, user_id: str) -> int:
        ...

    def get_for_user(self, notification_id: str, user_id: str) -> Optional[NotificationRecord]:
        ...

    def create(self, user_id: str, type: str, title: str, message: str, category: Optional[str],
               data: Optional[Dict[str, Any]]) -> NotificationRecord:
        ...

    def mark_read(self, notification_id: str, user_id: str) -> bool:
        ...

    def mark_all_read(self, user_id: str) -> int:
        ...

    def delete(self, notification_id: str, user_id: str) -> bool:
        ...

    def clear_all(self, user_id: str) -> int:
        ...
