import uuid
import pytest
from sqlalchemy import update

from curalink.core.errors import ConflictExists
from curalink.modules.connections.repository import ConnectionRepository
from curalink.modules.connections.service import ConnectionService
from curalink.modules.connections.models import Connection
from curalink.modules.events.outbox import OutboxService
from curalink.modules.meetings.models import MeetingRequest
from curalink.modules.meetings.repository import MeetingRequestRepository
from curalink.modules.meetings.service import MeetingService
from curalink.modules.notifications.service import NotificationService

MEETING = {"message": "Could we discuss the trial?", "preferredDate": "2026-11-03"}


async def _connection_id(client_for, requester, recipient) -> uuid.UUID:
    resp = await (await client_for(requester)).post("/connections", json={"targetId": str(recipient.id)})
    return uuid.UUID(resp.json()["connection"]["id"])


async def _meeting_id(client_for, patient, expert) -> uuid.UUID:
    resp = await (await client_for(patient)).post("/meetings", json={"expertId": str(expert.id), **MEETING})
    return uuid.UUID(resp.json()["meetingRequest"]["id"])


@pytest.mark.asyncio
async def test_failed_notification_rolls_back_connection_accept(monkeypatch, client_for, session_factory,
                                                                researcher, other_researcher, outbox_events):
    conn_id = await _connection_id(client_for, researcher, other_researcher)

    async def unavailable(self, *args, **kwargs):
        raise RuntimeError("notification store unavailable")
    monkeypatch.setattr(NotificationService, "notify", unavailable)

    async with session_factory() as s:
        with pytest.raises(RuntimeError):
            await ConnectionService(s).respond(conn_id, other_researcher.id, "accept")

    async with session_factory() as s:
        assert (await ConnectionRepository(s).get(conn_id)).status == "pending"
    assert await outbox_events("connection.accepted") == []


@pytest.mark.asyncio
async def test_failed_event_enqueue_rolls_back_meeting_response(monkeypatch, client_for, session_factory,
                                                               patient, researcher, notifications_for, outbox_events):
    meeting_id = await _meeting_id(client_for, patient, researcher)

    async def unavailable(self, *args, **kwargs):
        raise RuntimeError("outbox unavailable")
    monkeypatch.setattr(OutboxService, "enqueue", unavailable)

    async with session_factory() as s:
        with pytest.raises(RuntimeError):
            await MeetingService(s).respond(meeting_id, researcher.id, "accept")

    async with session_factory() as s:
        assert (await MeetingRequestRepository(s).get(meeting_id)).status == "PENDING"
    assert await notifications_for(patient.id) == []
    assert await outbox_events("meeting.responded") == []


@pytest.mark.asyncio
async def test_meeting_response_that_loses_a_race_conflicts(client_for, session_factory, patient, researcher, notifications_for):
    meeting_id = await _meeting_id(client_for, patient, researcher)

    async with session_factory() as s:
        service = MeetingService(s)
        stale = await service.repo.get(meeting_id)
        assert stale.status == "PENDING"
        # a concurrent accept lands after this session read the row
        await s.execute(
            update(MeetingRequest).where(MeetingRequest.id == meeting_id).values(status="ACCEPTED")
            .execution_options(synchronize_session=False)
        )
        with pytest.raises(ConflictExists):
            await service.respond(meeting_id, researcher.id, "reject")
        await s.commit()

    async with session_factory() as s:
        assert (await MeetingRequestRepository(s).get(meeting_id)).status == "ACCEPTED"
    assert await notifications_for(patient.id) == []


@pytest.mark.asyncio
async def test_connection_accept_that_loses_a_race_conflicts(client_for, session_factory, researcher, other_researcher, notifications_for):
    conn_id = await _connection_id(client_for, researcher, other_researcher)

    async with session_factory() as s:
        service = ConnectionService(s)
        assert (await service.repo.get(conn_id)).status == "pending"
        await s.execute(
            update(Connection).where(Connection.id == conn_id).values(status="accepted")
            .execution_options(synchronize_session=False)
        )
        with pytest.raises(ConflictExists):
            await service.respond(conn_id, other_researcher.id, "accept")
        await s.commit()

    assert await notifications_for(researcher.id) == []
