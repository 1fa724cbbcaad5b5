import uuid
from datetime import datetime
from pydantic import Field, AliasChoices, model_validator
from curalink.core.schemas import ApiModel
from curalink.modules.notifications.models import NotificationType

_TYPE_PATTERN = "^(" + "|".join(NotificationType.ALL) + ")$"

class NotificationOut(ApiModel):
    id: uuid.UUID
    recipient_id: uuid.UUID = Field(serialization_alias="userId", validation_alias=AliasChoices("recipient_id", "recipientId", "userId"))
    sender_id: uuid.UUID | None = None
    reply_to_id: uuid.UUID | None = None
    type: str
    title: str
    message: str
    read: bool
    metadata: dict | None = Field(default=None, validation_alias=AliasChoices("meta", "metadata"), serialization_alias="metadata")
    created_at: datetime

class NotificationListOut(ApiModel):
    notifications: list[NotificationOut]
    unread_count: int

class UnreadCountOut(ApiModel):
    count: int

class MarkReadRequest(ApiModel):
    notification_id: uuid.UUID | None = None
    mark_all_as_read: bool = False

    @model_validator(mode="after")
    def _needs_target(self):
        if not self.mark_all_as_read and self.notification_id is None:
            raise ValueError("Notification ID is required")
        return self

class MarkReadOut(ApiModel):
    success: bool = True
    updated: int
    message: str | None = None

class MetadataUpdate(ApiModel):
    metadata: dict

class NotificationMutationOut(ApiModel):
    success: bool = True
    notification: NotificationOut | None = None
    message: str | None = None

class ReplyRequest(ApiModel):
    reply_message: str = Field(..., min_length=1, max_length=2000, validation_alias=AliasChoices("reply_message", "replyMessage", "reply"))

class ReplyOut(ApiModel):
    success: bool = True
    replied: bool
    notification: NotificationOut | None = None
    message: str

class NotificationCreate(ApiModel):
    user_id: uuid.UUID
    type: str = Field(..., pattern=_TYPE_PATTERN)
    title: str = Field(..., min_length=1, max_length=300)
    message: str = Field(..., min_length=1)
    metadata: dict | None = None
