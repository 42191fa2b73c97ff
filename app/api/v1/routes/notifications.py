from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel

from api.dependencies.identity import CurrentUserId
from infrastructure.logging import get_module_logger
from infrastructure.notifications import (
    AnnouncementRequest,
    BulkNotificationRequest,
    CreateNotificationRequest,
    DeliveryLog,
    Notification,
    NotificationPriority,
    NotificationQuery,
    NotificationStats,
    NotificationStatus,
    NotificationType,
)
from infrastructure.services import NotificationServiceDep

logger = get_module_logger()

router = APIRouter(prefix="/notifications", tags=["Notifications"])


class MarkAllReadResponse(BaseModel):
    updated: int


class DeliveryReceipt(BaseModel):
    delivered_at: Optional[datetime] = None
    provider_message_id: Optional[str] = None


@router.get("", response_model=List[Notification])
def list_notifications(
    user_id: CurrentUserId,
    service: NotificationServiceDep,
    type: Optional[NotificationType] = None,
    status: Optional[NotificationStatus] = None,
    priority: Optional[NotificationPriority] = None,
    unread_only: bool = False,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: Optional[int] = Query(default=None, ge=1),
):
    """List the caller's notifications, newest first (at most 100)."""
    return service.list(
        NotificationQuery(
            user_id=user_id,
            type=type,
            status=status,
            priority=priority,
            unread_only=unread_only,
            start_date=start_date,
            end_date=end_date,
            limit=limit,
        )
    )


@router.post("", response_model=Notification, status_code=201)
def create_notification(
    request: CreateNotificationRequest,
    user_id: CurrentUserId,
    service: NotificationServiceDep,
):
    """Create a notification and dispatch it now unless it is scheduled."""
    logger.info(
        "create_notification_requested",
        requested_by=user_id,
        recipient=request.user_id,
        notification_type=request.type.value,
    )
    return service.create(request)


@router.post("/bulk", response_model=List[Notification], status_code=201)
def create_bulk_notifications(
    request: BulkNotificationRequest,
    user_id: CurrentUserId,
    service: NotificationServiceDep,
):
    """Create the same notification for several residents."""
    logger.info(
        "bulk_notification_requested",
        requested_by=user_id,
        recipients=len(request.user_ids),
        notification_type=request.type.value,
    )
    return service.create_bulk(request)


@router.post("/announcement", response_model=List[Notification], status_code=201)
def create_announcement(
    request: AnnouncementRequest,
    user_id: CurrentUserId,
    service: NotificationServiceDep,
):
    """Send a system announcement (all active residents if no user_ids)."""
    logger.info("announcement_requested", requested_by=user_id)
    return service.announce(request)


@router.put("/read-all", response_model=MarkAllReadResponse)
def mark_all_read(user_id: CurrentUserId, service: NotificationServiceDep):
    return MarkAllReadResponse(updated=service.mark_all_read(user_id))


@router.get("/stats", response_model=NotificationStats)
def get_stats(
    user_id: CurrentUserId,
    service: NotificationServiceDep,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
):
    """Delivery statistics for the caller's notifications."""
    return service.stats(user_id=user_id, start=start_date, end=end_date)


@router.post("/delivery-receipts/{log_id}", response_model=DeliveryLog)
def record_delivery_receipt(
    log_id: str,
    receipt: DeliveryReceipt,
    service: NotificationServiceDep,
):
    """Provider callback confirming delivery of an email or SMS."""
    return service.record_delivery_receipt(
        log_id,
        delivered_at=receipt.delivered_at,
        provider_message_id=receipt.provider_message_id,
    )


@router.put("/{notification_id}/read", response_model=Notification)
def mark_read(
    notification_id: str,
    user_id: CurrentUserId,
    service: NotificationServiceDep,
):
    return service.mark_read(notification_id, user_id)


@router.delete("/{notification_id}", status_code=204)
def delete_notification(
    notification_id: str,
    user_id: CurrentUserId,
    service: NotificationServiceDep,
):
    service.delete(notification_id, user_id)
