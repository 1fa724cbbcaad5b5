import uuid
import logging
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from curalink.core.errors import ConflictExists, ValidationFailed
from curalink.modules.events.outbox import DomainEvent, OutboxService
from curalink.modules.follows.models import Follow, FollowRequest, FollowRequestStatus
from curalink.modules.follows.repository import FollowRepository, FollowRequestRepository
from curalink.modules.notifications.models import NotificationType
from curalink.modules.notifications.service import NotificationService
from curalink.modules.users.models import Role
from curalink.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

def _parse_user_id(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(value)
    except ValueError:
        return None

class FollowService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = FollowRepository(session)
        self.requests = FollowRequestRepository(session)
        self.users = UserRepository(session)
        self.notifications = NotificationService(session)
        self.outbox = OutboxService(session)

    async def follow(self, follower_id: uuid.UUID, target_id: str, target_name: str | None = None,
                     message: str | None = None) -> Follow | FollowRequest:
        """
        Follow ``target_id``.

        Registered targets get a Follow edge and a notification. Anyone else
        becomes a FollowRequest that every admin is told about; the unknown
        target itself is never contacted.
        """
        follower = await self.users.require(follower_id)
        target_uuid = _parse_user_id(target_id)
        if target_uuid == follower.id:
            raise ValidationFailed("You cannot follow yourself")
        target = await self.users.get(target_uuid) if target_uuid else None
        if target is None:
            return await self._request_external(follower, target_id, target_name, message)

        if await self.repo.get(follower.id, target.id):
            raise ConflictExists("Already following this user")
        try:
            edge = await self.repo.create(follower.id, target.id)
        except IntegrityError:
            await self.session.rollback()
            raise ConflictExists("Already following this user")

        await self.notifications.notify(
            target.id,
            type=NotificationType.NEW_FOLLOWER,
            title="New Follower",
            message=f"{follower.name} started following you",
            sender_id=follower.id,
            metadata={"followerId": str(follower.id), "followerName": follower.name},
        )
        await self.outbox.enqueue(DomainEvent.FOLLOW_CREATED, "follow", edge.id,
                                  {"followingId": str(target.id)}, actor_id=follower.id)
        await self.session.commit()
        return edge

    async def _request_external(self, follower, external_id: str, external_name: str | None, message: str | None) -> FollowRequest:
        if not (external_name and external_name.strip()):
            raise ValidationFailed("Target name is required to follow someone who is not registered")
        external_name = external_name.strip()
        req = await self.requests.create(
            requester_id=follower.id,
            external_id=external_id,
            external_name=external_name,
            message=message,
            status=FollowRequestStatus.PENDING,
        )
        await self.notifications.broadcast_to_role(
            Role.ADMIN,
            type=NotificationType.SYSTEM,
            title=f"Follow Request - {external_name}",
            message=f"{follower.name} wants to follow {external_name}, who is not on the platform yet. Please review.",
            sender_id=follower.id,
            metadata={
                "followRequestId": str(req.id),
                "requesterId": str(follower.id),
                "requesterName": follower.name,
                "requesterEmail": follower.email,
                "targetExternalId": external_id,
                "targetName": external_name,
                "message": message,
                "isExternal": True,
            },
        )
        await self.outbox.enqueue(DomainEvent.FOLLOW_REQUEST_CREATED, "follow_request", req.id,
                                  {"externalId": external_id, "externalName": external_name}, actor_id=follower.id)
        await self.session.commit()
        logger.info(f"Follow request {req.id} from {follower.id} queued for admin review")
        return req

    async def unfollow(self, follower_id: uuid.UUID, target_id: uuid.UUID) -> bool:
        removed = await self.repo.delete(follower_id, target_id)
        if removed:
            await self.outbox.enqueue(DomainEvent.FOLLOW_REMOVED, "user", target_id, {"followingId": str(target_id)}, actor_id=follower_id)
        await self.session.commit()
        return bool(removed)

    async def is_following(self, follower_id: uuid.UUID, target_id: uuid.UUID) -> bool:
        return await self.repo.get(follower_id, target_id) is not None

    async def pending_requests(self, limit: int = 100):
        return await self.requests.list_pending(limit)
