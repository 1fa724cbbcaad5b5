import uuid
from typing import Sequence
from sqlalchemy import select, update, or_
from sqlalchemy.ext.asyncio import AsyncSession
from curalink.modules.meetings.models import MeetingRequest

class MeetingRequestRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> MeetingRequest:
        obj = MeetingRequest(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, meeting_id: uuid.UUID) -> MeetingRequest | None:
        res = await self.session.execute(select(MeetingRequest).where(MeetingRequest.id == meeting_id))
        return res.scalar_one_or_none()

    async def list_for_user(self, user_id: uuid.UUID, limit: int = 50) -> Sequence[MeetingRequest]:
        q = (
            select(MeetingRequest)
            .where(or_(MeetingRequest.requester_id == user_id, MeetingRequest.expert_id == user_id))
            .order_by(MeetingRequest.created_at.desc())
            .limit(limit)
        )
        res = await self.session.execute(q)
        return res.scalars().all()

    async def transition(self, obj: MeetingRequest, from_status: str, to_status: str) -> bool:
        """Move ``obj`` to ``to_status`` only if the stored row is still ``from_status``. False when another writer got there first."""
        q = (
            update(MeetingRequest)
            .where(MeetingRequest.id == obj.id, MeetingRequest.status == from_status)
            .values(status=to_status)
            .execution_options(synchronize_session="fetch")
        )
        res = await self.session.execute(q)
        return res.rowcount == 1
