import uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, ForeignKey, UniqueConstraint
from curalink.core.base import Base, TimestampedMixin

class ConnectionStatus:
    PENDING = "pending"
    ACCEPTED = "accepted"

def canonical_pair(a: uuid.UUID, b: uuid.UUID) -> tuple[uuid.UUID, uuid.UUID]:
    """Order-independent key for the pair {a, b}."""
    return (a, b) if str(a) <= str(b) else (b, a)

class Connection(Base, TimestampedMixin):
    __table_args__ = (UniqueConstraint("pair_low", "pair_high", name="uq_connection_pair"),)

    requester_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), index=True)
    recipient_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), index=True)
    pair_low: Mapped[uuid.UUID] = mapped_column()
    pair_high: Mapped[uuid.UUID] = mapped_column()
    status: Mapped[str] = mapped_column(String(16), default=ConnectionStatus.PENDING)  # pending | accepted
