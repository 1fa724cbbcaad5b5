"""
Transactional outbox.

Services stage an ``EventOutbox`` row on the same session as the change it
describes, so the event exists exactly when the change was committed. The
relay publishes committed rows to the configured event bus; publishing is
at-least-once and rows that keep failing are parked as ``dead``.
"""
import uuid
import asyncio
import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import TIMESTAMP, String, Integer, Text, JSON, Index, select
from sqlalchemy.ext.asyncio import AsyncSession

from curalink.core.base import Base, TimestampedMixin, utcnow
from curalink.core.config import settings
from curalink.core.db import SessionLocal
from curalink.platform.ports.event_bus import EventBusPort
from curalink.platform.provider_registry import registry

log = logging.getLogger(__name__)

TOPIC = "curalink.events"

class DomainEvent:
    CONNECTION_REQUESTED = "connection.requested"
    CONNECTION_ACCEPTED = "connection.accepted"
    FOLLOW_CREATED = "follow.created"
    FOLLOW_REMOVED = "follow.removed"
    FOLLOW_REQUEST_CREATED = "follow_request.created"
    MEETING_REQUESTED = "meeting.requested"
    MEETING_RESPONDED = "meeting.responded"
    NOTIFICATION_REPLIED = "notification.replied"
    NUDGE_SENT = "nudge.sent"

class OutboxStatus:
    PENDING = "pending"
    PROCESSING = "processing"
    SENT = "sent"
    DEAD = "dead"

class EventOutbox(Base, TimestampedMixin):
    __tablename__ = "event_outbox"
    __table_args__ = (Index("ix_event_outbox_due", "status", "next_attempt_at"),)

    event_type: Mapped[str] = mapped_column(String(64))
    subject_type: Mapped[str] = mapped_column(String(32))
    subject_id: Mapped[str] = mapped_column(String(64))
    actor_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    payload: Mapped[dict] = mapped_column(JSON)
    occurred_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utcnow)

    status: Mapped[str] = mapped_column(String(16), default=OutboxStatus.PENDING)
    attempts: Mapped[int] = mapped_column(Integer, default=0)
    next_attempt_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utcnow)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    def envelope(self) -> dict:
        return {
            "event_type": self.event_type,
            "subject": {"type": self.subject_type, "id": self.subject_id},
            "actor_id": str(self.actor_id) if self.actor_id else None,
            "payload": self.payload,
            "occurred_at": self.occurred_at.isoformat(),
            "outbox_id": str(self.id),
        }

def retry_delay(attempts: int) -> timedelta:
    # 2, 4, 8, 16, 32, then 60s
    return timedelta(seconds=min(60, 2 ** attempts))

class OutboxRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, event: EventOutbox) -> EventOutbox:
        self.session.add(event)
        await self.session.flush()
        return event

    async def claim_due(self, limit: int) -> list[EventOutbox]:
        # rows locked by another relay are skipped (no-op on SQLite)
        q = (
            select(EventOutbox)
            .where(EventOutbox.status == OutboxStatus.PENDING, EventOutbox.next_attempt_at <= utcnow())
            .order_by(EventOutbox.created_at.asc())
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        rows = list((await self.session.execute(q)).scalars().all())
        for ev in rows:
            ev.status = OutboxStatus.PROCESSING
        await self.session.flush()
        return rows

class OutboxService:
    def __init__(self, session: AsyncSession):
        self.repo = OutboxRepository(session)

    async def enqueue(self, event_type: str, subject_type: str, subject_id, payload: dict,
                      actor_id: uuid.UUID | None = None) -> EventOutbox:
        """Stage an event on the caller's transaction; it is published only if that transaction commits."""
        return await self.repo.add(EventOutbox(
            event_type=event_type,
            subject_type=subject_type,
            subject_id=str(subject_id),
            actor_id=actor_id,
            payload=payload,
            status=OutboxStatus.PENDING,
            attempts=0,
        ))

def _record_failure(ev: EventOutbox, error: str) -> None:
    ev.attempts = (ev.attempts or 0) + 1
    ev.last_error = error[:2000]
    if ev.attempts >= settings.OUTBOX_MAX_ATTEMPTS:
        ev.status = OutboxStatus.DEAD
        log.error(f"Giving up on {ev.event_type} {ev.id} after {ev.attempts} attempts: {ev.last_error}")
    else:
        ev.status = OutboxStatus.PENDING
        ev.next_attempt_at = datetime.now(timezone.utc) + retry_delay(ev.attempts)

async def relay_once(session: AsyncSession, bus: EventBusPort | None = None, limit: int = 50) -> int:
    """Publish one batch of due events and commit their new states. Returns how many were claimed."""
    bus = bus or registry.event_bus()
    batch = await OutboxRepository(session).claim_due(limit)
    for ev in batch:
        try:
            await bus.publish(topic=TOPIC, key=ev.subject_id, value=ev.envelope())
        except Exception as ex:
            log.warning(f"Publishing {ev.event_type} {ev.id} failed", exc_info=True)
            _record_failure(ev, str(ex) or ex.__class__.__name__)
        else:
            ev.status = OutboxStatus.SENT
            ev.last_error = None
    await session.commit()
    return len(batch)

async def run_outbox_relay(poll_interval_seconds: float = 1.0):
    bus = registry.event_bus()
    log.info(f"Outbox relay started (bus={bus.__class__.__name__})")
    try:
        while True:
            async with SessionLocal() as session:
                try:
                    claimed = await relay_once(session, bus)
                except Exception:
                    log.exception("Outbox relay iteration failed")
                    await session.rollback()
                    claimed = 0
            # drain backlogs without sleeping between full batches
            await asyncio.sleep(0 if claimed else poll_interval_seconds)
    except asyncio.CancelledError:
        log.info("Outbox relay stopped")
        raise
