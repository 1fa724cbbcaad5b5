import uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, ForeignKey, UniqueConstraint
from curalink.core.base import Base, TimestampedMixin

class Follow(Base, TimestampedMixin):
    __table_args__ = (UniqueConstraint("follower_id", "following_id", name="uq_follow_edge"),)

    follower_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), index=True)
    following_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), index=True)

class FollowRequestStatus:
    PENDING = "PENDING"

class FollowRequest(Base, TimestampedMixin):
    """Follow attempt at someone who is not a registered identity; queued for admin review."""
    __tablename__ = "follow_request"

    requester_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), index=True)
    external_id: Mapped[str] = mapped_column(String(128))
    external_name: Mapped[str] = mapped_column(String(200))
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default=FollowRequestStatus.PENDING)
