import uuid
from typing import Sequence
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from curalink.core.errors import NotFound
from curalink.modules.users.models import User, Role, ResearcherProfile

def _contains(text: str) -> str:
    # LIKE pattern matching ``text`` literally; pair with escape="\\"
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"

class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> User:
        obj = User(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, user_id: uuid.UUID) -> User | None:
        res = await self.session.execute(select(User).where(User.id == user_id))
        return res.scalar_one_or_none()

    async def find_by_name(self, fragment: str) -> User | None:
        """First user whose name contains ``fragment`` literally, case-insensitively."""
        q = select(User).where(User.name.ilike(_contains(fragment), escape="\\")).order_by(User.created_at.asc()).limit(1)
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def list_by_role(self, role: str) -> Sequence[User]:
        q = select(User).where(User.role == role).order_by(User.created_at.asc())
        res = await self.session.execute(q)
        return res.scalars().all()

    async def search_researchers(self, *, exclude_id: uuid.UUID, search: str | None = None, limit: int = 30) -> Sequence[User]:
        q = select(User).outerjoin(ResearcherProfile, ResearcherProfile.user_id == User.id).where(
            User.role == Role.RESEARCHER,
            User.id != exclude_id,
        )
        if search:
            like = _contains(search)
            q = q.where(or_(
                User.name.ilike(like, escape="\\"),
                User.email.ilike(like, escape="\\"),
                ResearcherProfile.institution.ilike(like, escape="\\"),
            ))
        q = q.order_by(User.created_at.desc()).limit(limit)
        res = await self.session.execute(q)
        return res.scalars().all()

    async def require(self, user_id: uuid.UUID) -> User:
        obj = await self.get(user_id)
        if not obj:
            raise NotFound("User not found")
        return obj
