import uuid
from typing import Sequence
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from curalink.modules.follows.models import Follow, FollowRequest, FollowRequestStatus

class FollowRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, follower_id: uuid.UUID, following_id: uuid.UUID) -> Follow:
        obj = Follow(follower_id=follower_id, following_id=following_id)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, follower_id: uuid.UUID, following_id: uuid.UUID) -> Follow | None:
        q = select(Follow).where(Follow.follower_id == follower_id, Follow.following_id == following_id)
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def delete(self, follower_id: uuid.UUID, following_id: uuid.UUID) -> int:
        q = delete(Follow).where(Follow.follower_id == follower_id, Follow.following_id == following_id)
        res = await self.session.execute(q)
        return res.rowcount or 0

    async def following_ids(self, follower_id: uuid.UUID) -> Sequence[uuid.UUID]:
        res = await self.session.execute(select(Follow.following_id).where(Follow.follower_id == follower_id))
        return res.scalars().all()

class FollowRequestRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> FollowRequest:
        obj = FollowRequest(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def list_pending(self, limit: int = 100) -> Sequence[FollowRequest]:
        q = (
            select(FollowRequest)
            .where(FollowRequest.status == FollowRequestStatus.PENDING)
            .order_by(FollowRequest.created_at.desc())
            .limit(limit)
        )
        res = await self.session.execute(q)
        return res.scalars().all()
