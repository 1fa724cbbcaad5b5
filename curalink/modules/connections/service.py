import uuid
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from curalink.core.errors import ConflictExists, NotFound, PermissionDenied, ValidationFailed
from curalink.modules.connections.models import Connection, ConnectionStatus
from curalink.modules.connections.repository import ConnectionRepository
from curalink.modules.connections.schemas import PendingRequestOut, CollaboratorOut
from curalink.modules.events.outbox import DomainEvent, OutboxService
from curalink.modules.follows.repository import FollowRepository
from curalink.modules.notifications.models import NotificationType
from curalink.modules.notifications.service import NotificationService
from curalink.modules.users.models import Role
from curalink.modules.users.repository import UserRepository

class ConnectionService:
    """
    Pairwise researcher relationships.

    A pair has at most one row, whichever side asked first. Rows move
    pending -> accepted, only by the recipient. There is deliberately no
    reject/withdraw transition.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = ConnectionRepository(session)
        self.users = UserRepository(session)
        self.follows = FollowRepository(session)
        self.notifications = NotificationService(session)
        self.outbox = OutboxService(session)

    async def request(self, requester_id: uuid.UUID, target_id: uuid.UUID) -> Connection:
        if requester_id == target_id:
            raise ValidationFailed("You cannot connect with yourself")
        requester = await self.users.require(requester_id)
        target = await self.users.get(target_id)
        if not target:
            raise ValidationFailed("This researcher is not registered on the platform. You can only connect with registered researchers.")
        if target.role != Role.RESEARCHER:
            raise ValidationFailed("You can only connect with researchers")
        if await self.repo.find_between(requester.id, target.id):
            raise ConflictExists("Connection already exists")

        try:
            conn = await self.repo.create(requester.id, target.id)
        except IntegrityError:
            # lost a race with a concurrent request for the same pair
            await self.session.rollback()
            raise ConflictExists("Connection already exists")

        await self.notifications.notify(
            target.id,
            type=NotificationType.NEW_FOLLOWER,
            title="New Connection Request",
            message=f"{requester.name} wants to connect with you",
            sender_id=requester.id,
            metadata={"connectionId": str(conn.id), "requesterId": str(requester.id), "requesterName": requester.name},
        )
        await self.outbox.enqueue(DomainEvent.CONNECTION_REQUESTED, "connection", conn.id,
                                  {"recipientId": str(target.id)}, actor_id=requester.id)
        await self.session.commit()
        return conn

    async def respond(self, connection_id: uuid.UUID, caller_id: uuid.UUID, decision: str = "accept") -> Connection:
        if (decision or "").lower() != "accept":
            raise ValidationFailed('Invalid decision. Connection requests can only be accepted')
        conn = await self.repo.get(connection_id)
        if not conn:
            raise NotFound("Connection not found")
        if conn.recipient_id != caller_id:
            raise PermissionDenied("Unauthorized to accept this connection")
        if conn.status == ConnectionStatus.ACCEPTED:
            raise ConflictExists("Connection already accepted")

        accepter = await self.users.require(caller_id)
        if not await self.repo.transition(conn, ConnectionStatus.PENDING, ConnectionStatus.ACCEPTED):
            raise ConflictExists("Connection already accepted")
        await self.notifications.notify(
            conn.requester_id,
            type=NotificationType.NEW_FOLLOWER,
            title="Connection Accepted",
            message=f"{accepter.name} accepted your connection request",
            sender_id=accepter.id,
            metadata={"connectionId": str(conn.id), "accepterId": str(accepter.id), "accepterName": accepter.name},
        )
        await self.outbox.enqueue(DomainEvent.CONNECTION_ACCEPTED, "connection", conn.id,
                                  {"requesterId": str(conn.requester_id)}, actor_id=accepter.id)
        await self.session.commit()
        return conn

    async def list_pending(self, recipient_id: uuid.UUID) -> list[PendingRequestOut]:
        out = []
        for conn in await self.repo.list_pending_for(recipient_id):
            requester = await self.users.get(conn.requester_id)
            if not requester:
                continue
            profile = requester.researcher_profile
            out.append(PendingRequestOut(
                connection_id=conn.id,
                requester_id=requester.id,
                name=requester.name,
                email=requester.email,
                avatar=requester.avatar,
                institution=profile.institution if profile else None,
                specialties=(profile.specialties or []) if profile else [],
                request_date=conn.created_at,
            ))
        return out

    async def collaborators(self, user_id: uuid.UUID, *, search: str | None = None, limit: int = 30) -> list[CollaboratorOut]:
        researchers = await self.users.search_researchers(exclude_id=user_id, search=search, limit=limit)
        by_other = {}
        for conn in await self.repo.list_for_user(user_id):
            other = conn.recipient_id if conn.requester_id == user_id else conn.requester_id
            by_other[other] = conn
        following = set(await self.follows.following_ids(user_id))

        out = []
        for r in researchers:
            conn = by_other.get(r.id)
            profile = r.researcher_profile
            out.append(CollaboratorOut(
                id=r.id,
                name=r.name,
                email=r.email,
                avatar=r.avatar,
                institution=profile.institution if profile else None,
                specialties=(profile.specialties or []) if profile else [],
                research_interests=(profile.research_interests or []) if profile else [],
                available_for_meetings=r.available_for_meetings,
                connection_status=conn.status if conn else None,
                connection_id=conn.id if conn else None,
                is_sent_by_me=bool(conn and conn.requester_id == user_id),
                is_received_by_me=bool(conn and conn.recipient_id == user_id),
                is_following=r.id in following,
            ))
        return out
