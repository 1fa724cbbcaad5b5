import uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, JSON, Boolean, ForeignKey, Index
from curalink.core.base import Base, TimestampedMixin

class NotificationType:
    NEW_FOLLOWER = "NEW_FOLLOWER"
    NUDGE = "NUDGE"
    MEETING_REQUEST = "MEETING_REQUEST"
    MEETING_ACCEPTED = "MEETING_ACCEPTED"
    MEETING_REJECTED = "MEETING_REJECTED"
    FORUM_REPLY = "FORUM_REPLY"
    NEW_MESSAGE = "NEW_MESSAGE"
    SYSTEM = "SYSTEM"
    ALL = (NEW_FOLLOWER, NUDGE, MEETING_REQUEST, MEETING_ACCEPTED, MEETING_REJECTED, FORUM_REPLY, NEW_MESSAGE, SYSTEM)

class Notification(Base, TimestampedMixin):
    __table_args__ = (Index("ix_notification_recipient_created", "recipient_id", "created_at"),)

    recipient_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"))
    # identity whose action produced this row; replies are routed back to it
    sender_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    reply_to_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("notification.id"), nullable=True)
    type: Mapped[str] = mapped_column(String(32))
    title: Mapped[str] = mapped_column(String(300))
    message: Mapped[str] = mapped_column(Text)
    read: Mapped[bool] = mapped_column(Boolean, default=False)
    meta: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
