import uuid
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from curalink.core.db import get_session
from curalink.core.security import get_principal, Principal
from curalink.modules.meetings.schemas import (
    MeetingRequestCreate, MeetingRespond, MeetingRequestOut, MeetingMutationOut, MeetingListOut,
)
from curalink.modules.meetings.service import MeetingService

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session)) -> MeetingService:
    return MeetingService(session)

@router.post("", response_model=MeetingMutationOut)
async def request_meeting(
    payload: MeetingRequestCreate,
    principal: Principal = Depends(get_principal),
    service: MeetingService = Depends(svc),
):
    meeting, routed = await service.request(
        principal.user_id,
        expert_id=payload.expert_id,
        expert_name=payload.expert_name,
        message=payload.message,
        preferred_date=payload.preferred_date,
        preferred_time=payload.preferred_time,
    )
    return MeetingMutationOut(meeting_request=MeetingRequestOut.model_validate(meeting), routed_to=routed,
                              message="Meeting request sent successfully")

@router.post("/{meeting_id}/respond", response_model=MeetingMutationOut)
async def respond_to_meeting(
    meeting_id: uuid.UUID,
    payload: MeetingRespond,
    principal: Principal = Depends(get_principal),
    service: MeetingService = Depends(svc),
):
    meeting = await service.respond(meeting_id, principal.user_id, payload.decision)
    return MeetingMutationOut(meeting_request=MeetingRequestOut.model_validate(meeting),
                              message=f"Meeting request {meeting.status.lower()}")

@router.get("", response_model=MeetingListOut)
async def list_meetings(
    limit: int = Query(default=50, ge=1, le=200),
    principal: Principal = Depends(get_principal),
    service: MeetingService = Depends(svc),
):
    rows = await service.list_for_user(principal.user_id, limit)
    return MeetingListOut(meeting_requests=[MeetingRequestOut.model_validate(r) for r in rows])
