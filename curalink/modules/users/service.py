import uuid
from sqlalchemy.ext.asyncio import AsyncSession
from curalink.core.errors import NotFound, ValidationFailed
from curalink.modules.events.outbox import DomainEvent, OutboxService
from curalink.modules.notifications.models import Notification, NotificationType
from curalink.modules.notifications.service import NotificationService
from curalink.modules.users.models import User
from curalink.modules.users.repository import UserRepository

class UserService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = UserRepository(session)
        self.notifications = NotificationService(session)
        self.outbox = OutboxService(session)

    async def me(self, user_id: uuid.UUID) -> User:
        return await self.repo.require(user_id)

    async def nudge(self, sender_id: uuid.UUID, target_id: uuid.UUID, message: str | None = None) -> Notification:
        if sender_id == target_id:
            raise ValidationFailed("You cannot nudge yourself")
        sender = await self.repo.require(sender_id)
        target = await self.repo.get(target_id)
        if not target:
            raise NotFound("User not found")
        obj = await self.notifications.notify(
            target.id,
            type=NotificationType.NUDGE,
            title=f"{sender.name} sent you a nudge!",
            message=(message or "").strip() or f"{sender.name} is encouraging you to be more active on CuraLink",
            sender_id=sender.id,
            metadata={"senderId": str(sender.id), "senderName": sender.name},
        )
        await self.outbox.enqueue(DomainEvent.NUDGE_SENT, "user", target.id, {"notificationId": str(obj.id)}, actor_id=sender.id)
        await self.session.commit()
        return obj
