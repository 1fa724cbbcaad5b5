import uuid
from datetime import date, datetime
from pydantic import Field, AliasChoices
from curalink.core.schemas import ApiModel

class MeetingRequestCreate(ApiModel):
    # ids of unregistered experts are opaque strings from external directories
    expert_id: str = Field(..., min_length=1, max_length=128, validation_alias=AliasChoices("expert_id", "expertId", "researcherId"))
    expert_name: str | None = Field(default=None, max_length=200, validation_alias=AliasChoices("expert_name", "expertName", "researcherName"))
    message: str | None = None
    preferred_date: date | None = None
    preferred_time: str | None = Field(default=None, max_length=32)

class MeetingRespond(ApiModel):
    decision: str = Field(..., validation_alias=AliasChoices("decision", "action"))

class MeetingRequestOut(ApiModel):
    id: uuid.UUID
    requester_id: uuid.UUID
    expert_id: uuid.UUID | None
    external_expert_id: str | None
    external_expert_name: str | None
    message: str
    preferred_date: date
    preferred_time: str | None
    status: str
    created_at: datetime

class MeetingMutationOut(ApiModel):
    success: bool = True
    meeting_request: MeetingRequestOut
    routed_to: str | None = None
    message: str | None = None

class MeetingListOut(ApiModel):
    meeting_requests: list[MeetingRequestOut]
