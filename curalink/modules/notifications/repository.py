import uuid
from typing import Sequence
from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession
from curalink.modules.notifications.models import Notification

class NotificationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> Notification:
        obj = Notification(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def create_many(self, rows: list[dict]) -> list[Notification]:
        objs = [Notification(**data) for data in rows]
        self.session.add_all(objs)
        await self.session.flush()
        return objs

    async def get(self, notification_id: uuid.UUID) -> Notification | None:
        res = await self.session.execute(select(Notification).where(Notification.id == notification_id))
        return res.scalar_one_or_none()

    async def list_for_recipient(self, recipient_id: uuid.UUID, limit: int = 50) -> Sequence[Notification]:
        q = (
            select(Notification)
            .where(Notification.recipient_id == recipient_id)
            .order_by(Notification.created_at.desc())
            .limit(limit)
        )
        res = await self.session.execute(q)
        return res.scalars().all()

    async def count_unread(self, recipient_id: uuid.UUID) -> int:
        q = select(func.count()).select_from(Notification).where(
            Notification.recipient_id == recipient_id,
            Notification.read.is_(False),
        )
        res = await self.session.execute(q)
        return int(res.scalar_one())

    async def mark_read(self, obj: Notification) -> Notification:
        obj.read = True
        await self.session.flush()
        return obj

    async def mark_all_read(self, recipient_id: uuid.UUID) -> int:
        q = (
            update(Notification)
            .where(Notification.recipient_id == recipient_id, Notification.read.is_(False))
            .values(read=True)
            .execution_options(synchronize_session="fetch")
        )
        res = await self.session.execute(q)
        return res.rowcount or 0

    async def replace_metadata(self, obj: Notification, metadata: dict) -> Notification:
        obj.meta = metadata
        await self.session.flush()
        return obj
