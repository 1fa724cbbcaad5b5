import uuid
from datetime import datetime
from pydantic import Field, AliasChoices
from curalink.core.schemas import ApiModel

class ConnectionCreate(ApiModel):
    target_id: uuid.UUID = Field(..., validation_alias=AliasChoices("target_id", "targetId", "collaboratorId"))

class ConnectionRespond(ApiModel):
    decision: str = "accept"

class ConnectionOut(ApiModel):
    id: uuid.UUID
    requester_id: uuid.UUID
    recipient_id: uuid.UUID
    status: str
    created_at: datetime

class ConnectionMutationOut(ApiModel):
    success: bool = True
    connection: ConnectionOut

class PendingRequestOut(ApiModel):
    connection_id: uuid.UUID
    requester_id: uuid.UUID
    name: str
    email: str
    avatar: str | None = None
    institution: str | None = None
    specialties: list[str] = []
    request_date: datetime

class PendingListOut(ApiModel):
    requests: list[PendingRequestOut]

class CollaboratorOut(ApiModel):
    id: uuid.UUID
    name: str
    email: str
    avatar: str | None = None
    institution: str | None = None
    specialties: list[str] = []
    research_interests: list[str] = []
    available_for_meetings: bool = False
    connection_status: str | None = None
    connection_id: uuid.UUID | None = None
    is_sent_by_me: bool = False
    is_received_by_me: bool = False
    is_following: bool = False

class CollaboratorListOut(ApiModel):
    collaborators: list[CollaboratorOut]
