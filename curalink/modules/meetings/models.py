import uuid
from datetime import date
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Date, ForeignKey
from curalink.core.base import Base, TimestampedMixin

class MeetingStatus:
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"

# PENDING is the only state with outgoing edges; both are taken by the expert
VALID_NEXT = {
    MeetingStatus.PENDING: {MeetingStatus.ACCEPTED, MeetingStatus.REJECTED},
    MeetingStatus.ACCEPTED: set(),
    MeetingStatus.REJECTED: set(),
}

class MeetingRequest(Base, TimestampedMixin):
    __tablename__ = "meeting_request"

    requester_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), index=True)
    # NULL when the expert is not a registered identity
    expert_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    external_expert_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    external_expert_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    message: Mapped[str] = mapped_column(Text)
    preferred_date: Mapped[date] = mapped_column(Date)
    preferred_time: Mapped[str | None] = mapped_column(String(32), nullable=True)
    status: Mapped[str] = mapped_column(String(16), default=MeetingStatus.PENDING)
