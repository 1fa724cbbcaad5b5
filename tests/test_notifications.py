import uuid
import pytest

from curalink.modules.notifications.models import Notification, NotificationType
from curalink.modules.notifications.service import NotificationService


async def _seed(session_factory, recipient, *, sender=None, message="System maintenance tonight",
                metadata=None, type=NotificationType.SYSTEM, title="Notice") -> Notification:
    async with session_factory() as s:
        obj = Notification(recipient_id=recipient.id, sender_id=sender.id if sender else None, type=type,
                           title=title, message=message, read=False, meta=metadata or {})
        s.add(obj)
        await s.commit()
        return obj


@pytest.mark.asyncio
async def test_list_is_newest_first_with_unread_count(client_for, session_factory, patient):
    for i in range(3):
        await _seed(session_factory, patient, title=f"n{i}")
    client = await client_for(patient)
    body = (await client.get("/notifications")).json()
    assert [n["title"] for n in body["notifications"]] == ["n2", "n1", "n0"]
    assert body["unreadCount"] == 3
    assert body["notifications"][0]["userId"] == str(patient.id)

    limited = (await client.get("/notifications", params={"limit": 2})).json()
    assert [n["title"] for n in limited["notifications"]] == ["n2", "n1"]


@pytest.mark.asyncio
async def test_limit_bounds_are_validated(client_for, patient):
    client = await client_for(patient)
    assert (await client.get("/notifications", params={"limit": 0})).status_code == 400
    assert (await client.get("/notifications", params={"limit": 500})).status_code == 400


@pytest.mark.asyncio
async def test_list_only_shows_own_notifications(client_for, session_factory, patient, researcher):
    await _seed(session_factory, researcher)
    body = (await (await client_for(patient)).get("/notifications")).json()
    assert body == {"notifications": [], "unreadCount": 0}


@pytest.mark.asyncio
async def test_mark_single_read(client_for, session_factory, patient):
    note = await _seed(session_factory, patient)
    client = await client_for(patient)

    first = await client.patch("/notifications", json={"notificationId": str(note.id)})
    assert first.status_code == 200
    assert first.json()["updated"] == 1
    second = await client.patch("/notifications", json={"notificationId": str(note.id)})
    assert second.json()["updated"] == 0
    assert (await client.get("/notifications/unread-count")).json() == {"count": 0}


@pytest.mark.asyncio
async def test_mark_read_of_foreign_notification_looks_missing(client_for, session_factory, patient, researcher, notifications_for):
    note = await _seed(session_factory, researcher)
    client = await client_for(patient)
    resp = await client.patch("/notifications", json={"notificationId": str(note.id)})
    assert resp.status_code == 404
    assert resp.json() == {"error": "Notification not found"}
    [still] = await notifications_for(researcher.id)
    assert still.read is False


@pytest.mark.asyncio
async def test_mark_read_requires_a_target(client_for, patient):
    resp = await (await client_for(patient)).patch("/notifications", json={})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Notification ID is required"}


@pytest.mark.asyncio
async def test_mark_all_read_touches_only_caller(client_for, session_factory, patient, researcher, notifications_for):
    for _ in range(2):
        await _seed(session_factory, patient)
    await _seed(session_factory, researcher)
    resp = await (await client_for(patient)).patch("/notifications", json={"markAllAsRead": True})
    assert resp.json()["updated"] == 2
    assert all(n.read for n in await notifications_for(patient.id))
    assert not any(n.read for n in await notifications_for(researcher.id))


@pytest.mark.asyncio
async def test_metadata_update_is_owner_only(client_for, session_factory, patient, researcher):
    note = await _seed(session_factory, patient, metadata={"meetingRequestId": "x"})
    owner = await client_for(patient)
    resp = await owner.patch(f"/notifications/{note.id}/metadata", json={"metadata": {"handled": True}})
    assert resp.status_code == 200
    assert resp.json()["notification"]["metadata"] == {"handled": True}

    stranger = await client_for(researcher)
    assert (await stranger.patch(f"/notifications/{note.id}/metadata", json={"metadata": {}})).status_code == 403
    assert (await owner.patch(f"/notifications/{uuid.uuid4()}/metadata", json={"metadata": {}})).status_code == 404


@pytest.mark.asyncio
async def test_reply_goes_to_recorded_sender(client_for, session_factory, patient, researcher, notifications_for):
    original = await _seed(session_factory, patient, sender=researcher, message="Dr. Ada Lee sent you a nudge!")
    resp = await (await client_for(patient)).post(f"/notifications/{original.id}/reply", json={"replyMessage": "Thanks!"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["replied"] is True

    [reply] = await notifications_for(researcher.id)
    assert reply.type == NotificationType.NEW_MESSAGE
    assert reply.title == "New Reply"
    assert reply.message == 'Pat Patient replied: "Thanks!"'
    assert reply.sender_id == patient.id
    assert reply.reply_to_id == original.id

    [orig] = await notifications_for(patient.id)
    assert orig.read is True


@pytest.mark.asyncio
async def test_reply_falls_back_to_metadata_identity(client_for, session_factory, patient, researcher, notifications_for):
    original = await _seed(session_factory, patient, metadata={"followerId": str(researcher.id)},
                           message="Someone started following you")
    resp = await (await client_for(patient)).post(f"/notifications/{original.id}/reply", json={"reply": "Hello"})
    assert resp.json()["replied"] is True
    assert len(await notifications_for(researcher.id)) == 1


@pytest.mark.asyncio
async def test_reply_falls_back_to_leading_name(client_for, session_factory, patient, researcher, notifications_for):
    original = await _seed(session_factory, patient, message="Dr. Ada Lee wants to connect with you")
    resp = await (await client_for(patient)).post(f"/notifications/{original.id}/reply", json={"replyMessage": "Sure"})
    assert resp.json()["replied"] is True
    [reply] = await notifications_for(researcher.id)
    assert reply.reply_to_id == original.id


@pytest.mark.asyncio
async def test_reply_with_unknown_origin_only_marks_read(client_for, session_factory, patient, notifications_for):
    original = await _seed(session_factory, patient, message="Platform update available",
                           metadata={"senderId": str(uuid.uuid4())})
    resp = await (await client_for(patient)).post(f"/notifications/{original.id}/reply", json={"replyMessage": "ok"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["replied"] is False
    assert body["notification"] is None
    [orig] = await notifications_for(patient.id)
    assert orig.read is True


@pytest.mark.asyncio
async def test_reply_to_self_sent_notification_sends_nothing(client_for, session_factory, patient, notifications_for):
    original = await _seed(session_factory, patient, sender=patient)
    resp = await (await client_for(patient)).post(f"/notifications/{original.id}/reply", json={"replyMessage": "note to self"})
    assert resp.json()["replied"] is False
    assert len(await notifications_for(patient.id)) == 1


@pytest.mark.asyncio
async def test_reply_validation_and_ownership(client_for, session_factory, patient, researcher):
    original = await _seed(session_factory, patient, sender=researcher)
    owner = await client_for(patient)
    assert (await owner.post(f"/notifications/{original.id}/reply", json={"replyMessage": ""})).status_code == 400
    assert (await owner.post(f"/notifications/{original.id}/reply", json={})).status_code == 400
    stranger = await client_for(researcher)
    assert (await stranger.post(f"/notifications/{original.id}/reply", json={"replyMessage": "hi"})).status_code == 403


@pytest.mark.asyncio
async def test_admin_creates_notification_for_user(client_for, patient, admins, notifications_for):
    client = await client_for(admins[0])
    resp = await client.post("/notifications", json={
        "userId": str(patient.id), "type": "SYSTEM", "title": "Welcome", "message": "Glad you're here",
        "metadata": {"campaign": "onboarding"},
    })
    assert resp.status_code == 200
    [note] = await notifications_for(patient.id)
    assert note.sender_id == admins[0].id
    assert note.meta == {"campaign": "onboarding"}

    unknown = await client.post("/notifications", json={
        "userId": str(uuid.uuid4()), "type": "SYSTEM", "title": "x", "message": "y",
    })
    assert unknown.status_code == 404
    bad_type = await client.post("/notifications", json={
        "userId": str(patient.id), "type": "SPAM", "title": "x", "message": "y",
    })
    assert bad_type.status_code == 400


@pytest.mark.asyncio
async def test_nudge_notifies_target(client_for, patient, researcher, notifications_for, outbox_events):
    client = await client_for(researcher)
    resp = await client.post(f"/users/{patient.id}/nudge", json={})
    assert resp.json() == {"success": True, "message": "Nudge sent successfully"}
    [note] = await notifications_for(patient.id)
    assert note.type == NotificationType.NUDGE
    assert note.title == "Dr. Ada Lee sent you a nudge!"
    assert note.sender_id == researcher.id
    assert len(await outbox_events("nudge.sent")) == 1

    assert (await client.post(f"/users/{researcher.id}/nudge", json={})).status_code == 400
    assert (await client.post(f"/users/{uuid.uuid4()}/nudge", json={})).status_code == 404


@pytest.mark.asyncio
async def test_broadcast_without_recipients_creates_nothing(session, patient):
    service = NotificationService(session)
    rows = await service.broadcast_to_role("ADMIN", type=NotificationType.SYSTEM, title="t", message="m", sender_id=patient.id)
    assert rows == []


@pytest.mark.asyncio
async def test_leading_name_is_matched_literally(client_for, session_factory, make_user, patient, notifications_for):
    # an earlier-registered user that a "%" or "_" wildcard would match
    bystander = await make_user("Dr. Ada Lee", "RESEARCHER")
    original = await _seed(session_factory, patient, message="Dr._% wants to connect with you")
    resp = await (await client_for(patient)).post(f"/notifications/{original.id}/reply", json={"replyMessage": "Who?"})
    assert resp.json()["replied"] is False
    assert await notifications_for(bystander.id) == []
