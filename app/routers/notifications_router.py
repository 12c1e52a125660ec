from dataclasses import dataclass
from typing import List, Optional
from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session
import hmac
import logging

from ..database import get_session
from ..core.config import settings
from ..utils import decode_jwt_token
from ..application.ports.notification_publisher import NotificationPublisher
from ..application.ports.notification_repo import ContractViolation
from ..application.services.notification_service import NotificationService
from ..infrastructure.persistence.sqlalchemy.repositories.notification_repository_sql import SqlNotificationRepository
from ..infrastructure.realtime.log_publisher import LoggingNotificationPublisher
from ..schemas.notifications.notification import (
    NotificationCreate,
    NotificationResponse,
    NotificationListResponse,
    NotificationGroupResponse,
    NotificationCountResponse,
)
from ..schemas.common.common import ErrorResponse, SuccessResponse, UpdatedCountResponse, DeletedCountResponse

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/notifications",
    tags=["Notifications"],
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)

oauth2_scheme = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    id: str
    role: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _resolve_user(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[CurrentUser]:
    token = None
    if credentials and credentials.credentials:
        token = credentials.credentials
    else:
        # Fallback to cookie
        token = request.cookies.get("access_token")
    if not token:
        return None
    payload = decode_jwt_token(token)
    if not payload or not payload.get("sub"):
        logger.warning("JWT token decode failed - invalid or expired token")
        return None
    return CurrentUser(id=str(payload["sub"]), role=payload.get("role"))


def get_current_user(request: Request, credentials: HTTPAuthorizationCredentials = Depends(oauth2_scheme)) -> CurrentUser:
    user = _resolve_user(request, credentials)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return user


def get_optional_user(request: Request, credentials: HTTPAuthorizationCredentials = Depends(oauth2_scheme)) -> Optional[CurrentUser]:
    return _resolve_user(request, credentials)


def is_server_call(x_server_key: Optional[str] = Header(None)) -> bool:
    if not x_server_key or not settings.SERVER_API_KEY:
        return False
    return hmac.compare_digest(x_server_key, settings.SERVER_API_KEY)


def get_notification_publisher(request: Request) -> NotificationPublisher:
    publisher = getattr(request.app.state, "notification_publisher", None)
    return publisher or LoggingNotificationPublisher()


def get_notification_service(
    session: Session = Depends(get_session),
    publisher: NotificationPublisher = Depends(get_notification_publisher),
) -> NotificationService:
    return NotificationService(repo=SqlNotificationRepository(session), publisher=publisher)


@router.get("/", response_model=NotificationListResponse)
def list_notifications(
    limit: int = Query(settings.NOTIFICATIONS_DEFAULT_LIMIT, ge=1, le=settings.NOTIFICATIONS_MAX_LIMIT),
    offset: int = Query(0, ge=0),
    unread_only: bool = Query(False),
    type: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    try:
        return service.list_notifications(current_user.id, limit=limit, offset=offset, unread_only=unread_only, type=type)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error retrieving notifications: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch notifications")


@router.get("/grouped", response_model=List[NotificationGroupResponse])
def get_grouped_notifications(
    user_id: Optional[str] = Query(None),
    limit: int = Query(settings.NOTIFICATIONS_DEFAULT_LIMIT, ge=1, le=settings.NOTIFICATIONS_MAX_LIMIT),
    offset: int = Query(0, ge=0),
    category: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    try:
        return service.grouped(
            current_user.id,
            target_user_id=user_id,
            is_admin=current_user.is_admin,
            limit=limit,
            offset=offset,
            category=category,
            type=type,
        )
    except (HTTPException, ContractViolation):
        # ContractViolation goes to its dedicated handler
        raise
    except Exception as e:
        logger.error(f"Error retrieving grouped notifications: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch notifications")


@router.get("/unread-count", response_model=NotificationCountResponse)
def get_unread_count(
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    try:
        return NotificationCountResponse(unread_count=service.unread_count(current_user.id))
    except Exception as e:
        logger.error(f"Error getting unread count: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch unread count")


@router.post("/", response_model=NotificationResponse)
def create_notification(
    notification_data: NotificationCreate,
    server_call: bool = Depends(is_server_call),
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    service: NotificationService = Depends(get_notification_service),
):
    try:
        return service.create(
            notification_data.model_dump(),
            caller_id=current_user.id if current_user else None,
            server_call=server_call,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating notification: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to create notification")


@router.patch("/mark-all-read", response_model=UpdatedCountResponse)
def mark_all_notifications_read(
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    try:
        return UpdatedCountResponse(updated_count=service.mark_all_read(current_user.id))
    except Exception as e:
        logger.error(f"Error marking all notifications as read: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to mark notifications as read")


@router.delete("/clear-all", response_model=DeletedCountResponse)
def clear_all_notifications(
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    try:
        return DeletedCountResponse(deleted_count=service.clear_all(current_user.id))
    except Exception as e:
        logger.error(f"Error clearing all notifications: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to clear all notifications")


@router.patch("/{notification_id}/read", response_model=SuccessResponse)
def mark_notification_read(
    notification_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    try:
        service.mark_read(current_user.id, notification_id)
        return SuccessResponse()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error marking notification {notification_id} as read: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to mark notification as read")


@router.delete("/{notification_id}", response_model=SuccessResponse)
def delete_notification(
    notification_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    try:
        service.delete(current_user.id, notification_id)
        return SuccessResponse()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting notification {notification_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to delete notification")
