import uuid
from typing import Sequence
from sqlalchemy import select, update, or_
from sqlalchemy.ext.asyncio import AsyncSession
from curalink.modules.connections.models import Connection, ConnectionStatus, canonical_pair

class ConnectionRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, requester_id: uuid.UUID, recipient_id: uuid.UUID) -> Connection:
        low, high = canonical_pair(requester_id, recipient_id)
        obj = Connection(requester_id=requester_id, recipient_id=recipient_id, pair_low=low, pair_high=high,
                         status=ConnectionStatus.PENDING)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, connection_id: uuid.UUID) -> Connection | None:
        res = await self.session.execute(select(Connection).where(Connection.id == connection_id))
        return res.scalar_one_or_none()

    async def find_between(self, a: uuid.UUID, b: uuid.UUID) -> Connection | None:
        low, high = canonical_pair(a, b)
        res = await self.session.execute(select(Connection).where(Connection.pair_low == low, Connection.pair_high == high))
        return res.scalar_one_or_none()

    async def list_pending_for(self, recipient_id: uuid.UUID) -> Sequence[Connection]:
        q = select(Connection).where(
            Connection.recipient_id == recipient_id,
            Connection.status == ConnectionStatus.PENDING,
        ).order_by(Connection.created_at.desc())
        res = await self.session.execute(q)
        return res.scalars().all()

    async def list_for_user(self, user_id: uuid.UUID) -> Sequence[Connection]:
        q = select(Connection).where(or_(Connection.requester_id == user_id, Connection.recipient_id == user_id))
        res = await self.session.execute(q)
        return res.scalars().all()

    async def transition(self, obj: Connection, from_status: str, to_status: str) -> bool:
        q = (
            update(Connection)
            .where(Connection.id == obj.id, Connection.status == from_status)
            .values(status=to_status)
            .execution_options(synchronize_session="fetch")
        )
        res = await self.session.execute(q)
        return res.rowcount == 1
