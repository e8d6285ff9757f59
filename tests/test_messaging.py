from unittest.mock import patch

import pytest

from app.domain.messaging.service import IMAGE_PREVIEW, ChatSession, MessagingService
from app.domain.messaging.schemas import is_unread
from app.models import Chat, Message
from app.realtime import feed
from app.shared.errors import PermissionDeniedError, UploadError, ValidationError
from app.storage import ImageFile

UPLOAD = "app.domain.messaging.service.upload_image"


@pytest.fixture
def service(db):
    return MessagingService(db)


def test_create_or_get_chat_is_stable(service, client_user, artist):
    first = service.create_or_get_chat(client_user, artist.id)
    again = service.create_or_get_chat(client_user, artist.id)
    reverse = service.create_or_get_chat(artist, client_user.id)

    assert first.id == again.id == reverse.id
    assert sorted(first.participants) == sorted([client_user.id, artist.id])
    assert first.participant_names[str(artist.id)] == "Ada Artist"


def test_cannot_chat_with_self(service, client_user):
    with pytest.raises(ValidationError):
        service.create_or_get_chat(client_user, client_user.id)


def test_send_updates_summary_and_unread(service, client_user, artist):
    chat = service.create_or_get_chat(client_user, artist.id)

    service.send_message(chat.id, client_user, "Hi! Do you have time in May?")

    assert chat.last_message == "Hi! Do you have time in May?"
    assert chat.last_message_from == client_user.id
    assert chat.read_by == [client_user.id]
    assert is_unread(chat, artist.id)
    assert not is_unread(chat, client_user.id)

    chats, unread = service.list_chats(artist)
    assert [c.id for c in chats] == [chat.id]
    assert unread == 1


def test_mark_read_is_idempotent(service, client_user, artist):
    chat = service.create_or_get_chat(client_user, artist.id)
    service.send_message(chat.id, client_user, "hello")

    service.mark_read(chat.id, artist)
    service.mark_read(chat.id, artist)

    assert sorted(chat.read_by) == sorted([client_user.id, artist.id])
    assert service.list_chats(artist)[1] == 0


def test_image_message_preview(service, client_user, artist):
    chat = service.create_or_get_chat(client_user, artist.id)
    image = ImageFile(b"img", "image/jpeg", "sketch.jpg")
    with patch(UPLOAD, return_value="https://media.clickink.app/chat/a.jpg"):
        message = service.send_message(chat.id, artist, "", image)

    assert message.image_url == "https://media.clickink.app/chat/a.jpg"
    assert chat.last_message == IMAGE_PREVIEW


def test_upload_failure_sends_nothing(service, db, client_user, artist):
    chat = service.create_or_get_chat(client_user, artist.id)
    image = ImageFile(b"img", "image/jpeg", "sketch.jpg")
    with patch(UPLOAD, side_effect=UploadError("Image size must be less than 5MB")):
        with pytest.raises(UploadError):
            service.send_message(chat.id, artist, "look", image)

    assert db.query(Message).count() == 0
    assert chat.last_message == ""


def test_empty_message_rejected(service, client_user, artist):
    chat = service.create_or_get_chat(client_user, artist.id)
    with pytest.raises(ValidationError):
        service.send_message(chat.id, client_user, "   ")


def test_messages_in_send_order_and_private(service, client_user, artist, make_user):
    chat = service.create_or_get_chat(client_user, artist.id)
    for text in ("one", "two", "three"):
        service.send_message(chat.id, client_user, text)

    assert [m.content for m in service.list_messages(chat.id, artist)] == ["one", "two", "three"]
    with pytest.raises(PermissionDeniedError):
        service.list_messages(chat.id, make_user("client"))


def test_delete_chat_removes_messages(service, db, client_user, artist):
    chat = service.create_or_get_chat(client_user, artist.id)
    service.send_message(chat.id, client_user, "bye")

    service.delete_chat(chat.id, artist)

    assert db.query(Chat).count() == 0
    assert db.query(Message).count() == 0


def test_chat_session_streams_and_switches(service, client_user, artist, make_user):
    other_artist = make_user("artist", "Bo Artist")
    chat = service.create_or_get_chat(client_user, artist.id)
    second = service.create_or_get_chat(client_user, other_artist.id)

    chat_snapshots = []
    message_snapshots = []
    session = ChatSession(
        client_user.id,
        on_chats=chat_snapshots.append,
        on_messages=lambda chat_id, snapshot: message_snapshots.append((chat_id, snapshot)),
    )
    try:
        assert len(chat_snapshots[-1]) == 2

        session.open_chat(chat.id)
        assert message_snapshots[-1] == (chat.id, [])

        service.send_message(chat.id, artist, "Welcome!")
        assert [m["content"] for m in session.messages] == ["Welcome!"]
        assert session.unread_count == 1

        session.open_chat(second.id)
        assert feed.subscriber_count("messages") == 1
        assert session.current_chat_id == second.id
        assert session.messages == []

        # Messages in the previous chat no longer reach this session
        delivered = len(message_snapshots)
        service.send_message(chat.id, artist, "Still there?")
        assert all(chat_id == second.id for chat_id, _ in message_snapshots[delivered:])

        session.close_chat()
        assert session.current_chat_id is None
        assert feed.subscriber_count("messages") == 0
    finally:
        session.close()

    assert feed.subscriber_count() == 0


def test_chat_session_refuses_foreign_chat(service, client_user, artist, make_user):
    outsider = make_user("client")
    chat = service.create_or_get_chat(client_user, artist.id)

    with ChatSession(outsider.id, on_chats=lambda s: None, on_messages=lambda c, s: None) as session:
        with pytest.raises(PermissionDeniedError):
            session.open_chat(chat.id)
        assert session.current_chat_id is None
    assert feed.subscriber_count() == 0


# ----------------------------------------------------------------------------
# HTTP / WebSocket
# ----------------------------------------------------------------------------


def test_http_chat_flow(api, login, client_user, artist):
    login(client_user)
    chat = api.post("/chats", json={"userId": artist.id}).json()
    assert api.post("/chats", json={"userId": artist.id}).json()["id"] == chat["id"]

    response = api.post(f"/chats/{chat['id']}/messages", data={"text": "Hello"})
    assert response.status_code == 201

    login(artist)
    listing = api.get("/chats").json()
    assert listing["unreadCount"] == 1
    assert listing["chats"][0]["lastMessage"] == "Hello"

    api.post(f"/chats/{chat['id']}/read")
    assert api.get("/chats").json()["unreadCount"] == 0

    assert api.delete(f"/chats/{chat['id']}").status_code == 204
    assert api.get("/chats").json()["chats"] == []


def test_websocket_inbox(api, login, service, client_user, artist):
    chat = service.create_or_get_chat(client_user, artist.id)
    login(client_user)

    with api.websocket_connect("/ws/messages") as ws:
        first = ws.receive_json()
        assert first["type"] == "chats"
        assert [c["id"] for c in first["data"]] == [chat.id]

        ws.send_json({"action": "open", "chatId": chat.id})
        frame = ws.receive_json()
        assert frame == {"type": "messages", "chatId": chat.id, "data": []}

        ws.send_json({"action": "open", "chatId": "abc"})
        assert ws.receive_json()["type"] == "error"
