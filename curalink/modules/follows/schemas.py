import uuid
from datetime import datetime
from pydantic import Field, AliasChoices
from curalink.core.schemas import ApiModel

class FollowCreate(ApiModel):
    # registered user id, or an opaque id from an external directory
    target_id: str = Field(..., min_length=1, max_length=128, validation_alias=AliasChoices("target_id", "targetId", "researcherId"))
    target_name: str | None = Field(default=None, max_length=200, validation_alias=AliasChoices("target_name", "targetName", "researcherName"))
    message: str | None = Field(default=None, max_length=2000)

class FollowOut(ApiModel):
    id: uuid.UUID
    follower_id: uuid.UUID
    following_id: uuid.UUID
    created_at: datetime

class FollowRequestOut(ApiModel):
    id: uuid.UUID
    requester_id: uuid.UUID
    external_id: str
    external_name: str
    message: str | None
    status: str
    created_at: datetime

class FollowResultOut(ApiModel):
    success: bool = True
    follow: FollowOut | None = None
    follow_request: FollowRequestOut | None = None
    message: str

class UnfollowOut(ApiModel):
    success: bool = True
    removed: bool

class FollowStatusOut(ApiModel):
    is_following: bool

class FollowRequestListOut(ApiModel):
    follow_requests: list[FollowRequestOut]
