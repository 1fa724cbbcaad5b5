import re
import uuid
import logging
from typing import Sequence
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from curalink.core.config import settings
from curalink.core.errors import NotFound, PermissionDenied, ValidationFailed
from curalink.modules.notifications.models import Notification, NotificationType
from curalink.modules.notifications.repository import NotificationRepository
from curalink.modules.notifications.schemas import NotificationOut
from curalink.modules.users.repository import UserRepository
from curalink.modules.meetings.models import MeetingRequest
from curalink.modules.events.outbox import DomainEvent, OutboxService
from curalink.platform.provider_registry import registry

logger = logging.getLogger(__name__)

# metadata keys that have carried the originating identity over time
SENDER_METADATA_KEYS = ("senderId", "fromUserId", "requesterId", "followerId", "accepterId", "expertId")

# "Jane Smith wants to connect", "Dr. Lee has accepted your meeting request."
LEADING_NAME_RE = re.compile(
    r"^([^:\"]+?)\s+(?:sent|wants|replied|accepted|declined|started|requested|has|is)\b"
)

MAX_LIST_LIMIT = 200

def unread_cache_key(recipient_id: uuid.UUID) -> str:
    return f"notifications:unread:{recipient_id}"

def _as_uuid(value) -> uuid.UUID | None:
    if value is None:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None

class NotificationService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = NotificationRepository(session)
        self.users = UserRepository(session)
        self.outbox = OutboxService(session)

    # ---- creation (staged on the caller's transaction, never committed here) ----

    async def notify(self, recipient_id: uuid.UUID, *, type: str, title: str, message: str,
                     sender_id: uuid.UUID | None, metadata: dict | None = None,
                     reply_to_id: uuid.UUID | None = None) -> Notification:
        return await self.repo.create(
            recipient_id=recipient_id,
            sender_id=sender_id,
            reply_to_id=reply_to_id,
            type=type,
            title=title,
            message=message,
            read=False,
            meta=metadata or {},
        )

    async def broadcast_to_role(self, role: str, *, type: str, title: str, message: str,
                                sender_id: uuid.UUID | None, metadata: dict | None = None) -> list[Notification]:
        """One notification per identity holding ``role``."""
        recipients = await self.users.list_by_role(role)
        rows = [
            dict(recipient_id=u.id, sender_id=sender_id, type=type, title=title,
                 message=message, read=False, meta=dict(metadata or {}))
            for u in recipients
        ]
        if not rows:
            logger.warning(f"Broadcast to role={role} found no recipients: {title}")
            return []
        return await self.repo.create_many(rows)

    # ---- reads ----

    async def unread_count(self, recipient_id: uuid.UUID) -> int:
        cache = registry.cache()
        key = unread_cache_key(recipient_id)
        cached = await cache.get(key)
        if cached is not None:
            return int(cached)
        count = await self.repo.count_unread(recipient_id)
        await cache.set(key, count, settings.UNREAD_COUNT_TTL_SECONDS)
        return count

    async def list_notifications(self, recipient_id: uuid.UUID, limit: int | None = None) -> tuple[list[NotificationOut], int]:
        limit = max(1, min(limit or settings.NOTIFICATION_LIST_LIMIT, MAX_LIST_LIMIT))
        rows = await self.repo.list_for_recipient(recipient_id, limit)
        items = await self._with_meeting_status(rows)
        return items, await self.unread_count(recipient_id)

    async def _with_meeting_status(self, rows: Sequence[Notification]) -> list[NotificationOut]:
        items = [NotificationOut.model_validate(n) for n in rows]
        meeting_ids = {
            mid for mid in (
                _as_uuid((n.metadata or {}).get("meetingRequestId"))
                for n in items if n.type == NotificationType.MEETING_REQUEST
            ) if mid
        }
        if not meeting_ids:
            return items
        res = await self.session.execute(
            select(MeetingRequest.id, MeetingRequest.status).where(MeetingRequest.id.in_(meeting_ids))
        )
        statuses = {mid: status for mid, status in res.all()}
        for n in items:
            if n.type != NotificationType.MEETING_REQUEST:
                continue
            mid = _as_uuid((n.metadata or {}).get("meetingRequestId"))
            if mid in statuses:
                n.metadata = {**(n.metadata or {}), "status": statuses[mid]}
        return items

    async def _owned(self, recipient_id: uuid.UUID, notification_id: uuid.UUID) -> Notification:
        obj = await self.repo.get(notification_id)
        if not obj:
            raise NotFound("Notification not found")
        if obj.recipient_id != recipient_id:
            raise PermissionDenied("Forbidden")
        return obj

    # ---- mutations ----

    async def mark_read(self, recipient_id: uuid.UUID, notification_id: uuid.UUID) -> int:
        obj = await self.repo.get(notification_id)
        # a foreign id is reported exactly like an unknown one
        if not obj or obj.recipient_id != recipient_id:
            raise NotFound("Notification not found")
        changed = 0 if obj.read else 1
        await self.repo.mark_read(obj)
        await self.session.commit()
        await registry.cache().delete(unread_cache_key(recipient_id))
        return changed

    async def mark_all_read(self, recipient_id: uuid.UUID) -> int:
        updated = await self.repo.mark_all_read(recipient_id)
        await self.session.commit()
        await registry.cache().delete(unread_cache_key(recipient_id))
        return updated

    async def update_metadata(self, recipient_id: uuid.UUID, notification_id: uuid.UUID, metadata: dict) -> Notification:
        obj = await self._owned(recipient_id, notification_id)
        await self.repo.replace_metadata(obj, metadata)
        await self.session.commit()
        return obj

    async def create_for_user(self, admin_id: uuid.UUID, *, user_id: uuid.UUID, type: str, title: str, message: str, metadata: dict | None) -> Notification:
        await self.users.require(admin_id)
        recipient = await self.users.get(user_id)
        if not recipient:
            raise NotFound("User not found")
        obj = await self.notify(recipient.id, type=type, title=title, message=message, sender_id=admin_id, metadata=metadata)
        await self.session.commit()
        return obj

    # ---- reply ----

    async def resolve_reply_recipient(self, original: Notification) -> uuid.UUID | None:
        if original.sender_id:
            return original.sender_id
        meta = original.meta if isinstance(original.meta, dict) else {}
        for key in SENDER_METADATA_KEYS:
            candidate = _as_uuid(meta.get(key))
            if candidate:
                return candidate
        # rows written before sender_id existed: fall back to the name the message starts with
        match = LEADING_NAME_RE.match(original.message or "")
        if match:
            sender = await self.users.find_by_name(match.group(1).strip())
            if sender:
                return sender.id
        return None

    async def reply(self, caller_id: uuid.UUID, notification_id: uuid.UUID, reply_text: str) -> Notification | None:
        """Send ``reply_text`` to whoever produced the notification. Returns None when nobody could be resolved."""
        reply_text = (reply_text or "").strip()
        if not reply_text:
            raise ValidationFailed("Reply message is required")
        caller = await self.users.require(caller_id)
        original = await self._owned(caller.id, notification_id)

        recipient_id = await self.resolve_reply_recipient(original)
        if recipient_id is not None and recipient_id != caller.id and not await self.users.get(recipient_id):
            logger.info(f"Reply target {recipient_id} for notification {original.id} is not a registered user")
            recipient_id = None

        created = None
        if recipient_id is not None and recipient_id != caller.id:
            created = await self.notify(
                recipient_id,
                type=NotificationType.NEW_MESSAGE,
                title="New Reply",
                message=f'{caller.name} replied: "{reply_text}"',
                sender_id=caller.id,
                reply_to_id=original.id,
                metadata={"senderId": str(caller.id), "senderName": caller.name, "replyTo": str(original.id)},
            )
            await self.outbox.enqueue(DomainEvent.NOTIFICATION_REPLIED, "notification", created.id,
                                      {"replyTo": str(original.id), "recipientId": str(recipient_id)}, actor_id=caller.id)
        await self.repo.mark_read(original)
        await self.session.commit()
        await registry.cache().delete(unread_cache_key(caller.id))
        return created
