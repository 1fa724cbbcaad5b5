import uuid
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from curalink.core.db import get_session
from curalink.core.security import get_principal, require_roles, Principal
from curalink.modules.users.models import Role
from curalink.modules.notifications.schemas import (
    NotificationOut, NotificationListOut, UnreadCountOut, MarkReadRequest, MarkReadOut,
    MetadataUpdate, NotificationMutationOut, ReplyRequest, ReplyOut, NotificationCreate,
)
from curalink.modules.notifications.service import NotificationService

router = APIRouter()

def svc(s: AsyncSession = Depends(get_session)) -> NotificationService: return NotificationService(s)

@router.get("", response_model=NotificationListOut)
async def list_notifications(
    limit: int | None = Query(default=None, ge=1, le=200),
    principal: Principal = Depends(get_principal),
    service: NotificationService = Depends(svc),
):
    items, unread = await service.list_notifications(principal.user_id, limit)
    return NotificationListOut(notifications=items, unread_count=unread)

@router.get("/unread-count", response_model=UnreadCountOut)
async def unread_count(principal: Principal = Depends(get_principal), service: NotificationService = Depends(svc)):
    return UnreadCountOut(count=await service.unread_count(principal.user_id))

@router.patch("", response_model=MarkReadOut)
async def mark_read(payload: MarkReadRequest, principal: Principal = Depends(get_principal), service: NotificationService = Depends(svc)):
    if payload.mark_all_as_read:
        updated = await service.mark_all_read(principal.user_id)
        return MarkReadOut(updated=updated, message="All notifications marked as read")
    updated = await service.mark_read(principal.user_id, payload.notification_id)
    return MarkReadOut(updated=updated)

@router.patch("/{notification_id}/metadata", response_model=NotificationMutationOut)
async def update_metadata(
    notification_id: uuid.UUID,
    payload: MetadataUpdate,
    principal: Principal = Depends(get_principal),
    service: NotificationService = Depends(svc),
):
    obj = await service.update_metadata(principal.user_id, notification_id, payload.metadata)
    return NotificationMutationOut(notification=NotificationOut.model_validate(obj), message="Notification metadata updated successfully")

@router.post("/{notification_id}/reply", response_model=ReplyOut)
async def reply(
    notification_id: uuid.UUID,
    payload: ReplyRequest,
    principal: Principal = Depends(get_principal),
    service: NotificationService = Depends(svc),
):
    created = await service.reply(principal.user_id, notification_id, payload.reply_message)
    if created is None:
        return ReplyOut(replied=False, message="Notification marked as read (no reply sent - sender unknown)")
    return ReplyOut(replied=True, notification=NotificationOut.model_validate(created), message="Reply sent successfully")

@router.post("", response_model=NotificationMutationOut)
async def create_notification(
    payload: NotificationCreate,
    principal: Principal = Depends(require_roles(Role.ADMIN)),
    service: NotificationService = Depends(svc),
):
    obj = await service.create_for_user(
        principal.user_id, user_id=payload.user_id, type=payload.type,
        title=payload.title, message=payload.message, metadata=payload.metadata,
    )
    return NotificationMutationOut(notification=NotificationOut.model_validate(obj), message="Notification sent successfully")
