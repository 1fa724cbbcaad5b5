import uuid
import logging
from datetime import date
from sqlalchemy.ext.asyncio import AsyncSession

from curalink.core.errors import ConflictExists, NotFound, PermissionDenied, ValidationFailed
from curalink.modules.events.outbox import DomainEvent, OutboxService
from curalink.modules.meetings.models import MeetingRequest, MeetingStatus, VALID_NEXT
from curalink.modules.meetings.repository import MeetingRequestRepository
from curalink.modules.notifications.models import NotificationType
from curalink.modules.notifications.service import NotificationService
from curalink.modules.users.models import User, Role
from curalink.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

DECISIONS = {"accept": MeetingStatus.ACCEPTED, "reject": MeetingStatus.REJECTED}

# where a new request's notification went
ROUTED_EXPERT = "expert"
ROUTED_ADMINS_UNAVAILABLE = "admins_expert_unavailable"
ROUTED_ADMINS_EXTERNAL = "admins_external_expert"

def _parse_user_id(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(value)
    except ValueError:
        return None

def requester_context(requester: User) -> dict:
    ctx = {"requesterId": str(requester.id), "requesterName": requester.name, "requesterEmail": requester.email}
    profile = requester.patient_profile
    if profile:
        ctx.update({
            "patientCondition": (profile.conditions or ["Not specified"])[0],
            "patientAge": profile.age,
            "patientGender": profile.gender,
            "patientLocation": profile.location or "Not specified",
        })
    return ctx

class MeetingService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo = MeetingRequestRepository(session)
        self.users = UserRepository(session)
        self.notifications = NotificationService(session)
        self.outbox = OutboxService(session)

    async def request(self, requester_id: uuid.UUID, *, expert_id: str, expert_name: str | None,
                      message: str | None, preferred_date: date | None,
                      preferred_time: str | None = None) -> tuple[MeetingRequest, str]:
        if not (message and message.strip()) or not preferred_date:
            raise ValidationFailed("Message and preferred date are required")
        requester = await self.users.require(requester_id)

        expert_uuid = _parse_user_id(expert_id)
        expert = await self.users.get(expert_uuid) if expert_uuid else None
        if expert and expert.id == requester.id:
            raise ValidationFailed("You cannot request a meeting with yourself")
        display_name = expert.name if expert else (expert_name or expert_id)

        meeting = await self.repo.create(
            requester_id=requester.id,
            expert_id=expert.id if expert else None,
            external_expert_id=None if expert else expert_id,
            external_expert_name=None if expert else display_name,
            message=message.strip(),
            preferred_date=preferred_date,
            preferred_time=preferred_time or None,
            status=MeetingStatus.PENDING,
        )

        metadata = {
            "meetingRequestId": str(meeting.id),
            **requester_context(requester),
            "message": meeting.message,
            "preferredDate": preferred_date.isoformat(),
            "preferredTime": preferred_time,
        }

        # the request always reaches someone: the expert when reachable, otherwise every admin
        if expert and expert.available_for_meetings:
            routed = ROUTED_EXPERT
            await self.notifications.notify(
                expert.id,
                type=NotificationType.MEETING_REQUEST,
                title="New Meeting Request",
                message=f"{requester.name} requested a meeting with you",
                sender_id=requester.id,
                metadata=metadata,
            )
        else:
            is_external = expert is None
            routed = ROUTED_ADMINS_EXTERNAL if is_external else ROUTED_ADMINS_UNAVAILABLE
            if is_external:
                title = f"Meeting Request (External Expert) - {display_name}"
                body = f"{requester.name} requested a meeting with external expert {display_name}. Please coordinate this meeting."
            else:
                title = f"Meeting Request (Expert Unavailable) - {display_name}"
                body = f"{requester.name} requested a meeting with {display_name} who is currently unavailable. Please assist."
            await self.notifications.broadcast_to_role(
                Role.ADMIN,
                type=NotificationType.MEETING_REQUEST,
                title=title,
                message=body,
                sender_id=requester.id,
                metadata={
                    **metadata,
                    "targetExpertId": expert_id,
                    "targetExpertName": display_name,
                    "isExternal": is_external,
                    "expertUnavailable": not is_external,
                },
            )

        await self.outbox.enqueue(DomainEvent.MEETING_REQUESTED, "meeting_request", meeting.id,
                                  {"expertId": expert_id, "routedTo": routed}, actor_id=requester.id)
        await self.session.commit()
        logger.info(f"Meeting request {meeting.id} from {requester.id} routed to {routed}")
        return meeting, routed

    async def respond(self, meeting_id: uuid.UUID, caller_id: uuid.UUID, decision: str) -> MeetingRequest:
        new_status = DECISIONS.get((decision or "").lower())
        if new_status is None:
            raise ValidationFailed('Invalid action. Must be "accept" or "reject"')
        meeting = await self.repo.get(meeting_id)
        if not meeting:
            raise NotFound("Meeting request not found")
        if meeting.expert_id is None or meeting.expert_id != caller_id:
            raise PermissionDenied("You are not authorized to respond to this meeting request")
        if new_status not in VALID_NEXT[meeting.status]:
            raise ConflictExists(f"Meeting request already {meeting.status.lower()}")

        expert = await self.users.require(caller_id)
        # a concurrent response may have landed since the read above
        if not await self.repo.transition(meeting, MeetingStatus.PENDING, new_status):
            raise ConflictExists("Meeting request already answered")
        accepted = new_status == MeetingStatus.ACCEPTED
        await self.notifications.notify(
            meeting.requester_id,
            type=NotificationType.MEETING_ACCEPTED if accepted else NotificationType.MEETING_REJECTED,
            title="Meeting Request Accepted" if accepted else "Meeting Request Declined",
            message=f"{expert.name} has {'accepted' if accepted else 'declined'} your meeting request.",
            sender_id=expert.id,
            metadata={"meetingRequestId": str(meeting.id), "expertId": str(expert.id), "expertName": expert.name},
        )
        await self.outbox.enqueue(DomainEvent.MEETING_RESPONDED, "meeting_request", meeting.id,
                                  {"status": new_status}, actor_id=expert.id)
        await self.session.commit()
        return meeting

    async def list_for_user(self, user_id: uuid.UUID, limit: int = 50):
        return await self.repo.list_for_user(user_id, limit)
