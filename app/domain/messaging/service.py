"""Messaging service - Two-party chats, messages and live chat sessions"""

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ...models import Chat, Message, User
from ...realtime import ChangeFeed, Subscription, feed
from ...shared.errors import NotFoundError, PermissionDeniedError, ValidationError
from ...shared.persistence import commit
from ...storage import ImageFile, upload_image
from .repository import ChatRepository
from .schemas import ChatResponse, MessageResponse, is_unread

logger = logging.getLogger(__name__)

IMAGE_PREVIEW = "📷 Image"


def display_name(user: User) -> str:
    return user.full_name or user.studio_name or user.email


def require_participant(chat: Optional[Chat], user_id: int) -> Chat:
    if not chat:
        raise NotFoundError("Chat not found")
    if user_id not in chat.participants:
        raise PermissionDeniedError("You are not a participant in this chat")
    return chat


class MessagingService:
    """Service layer for chats and messages"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ChatRepository()

    def create_or_get_chat(self, user: User, other_user_id: int) -> Chat:
        """
        Return the chat between the two users, creating it when none exists.

        Two simultaneous first contacts can still produce two chats; readers
        always pick the oldest one.
        """
        if other_user_id == user.id:
            raise ValidationError("You cannot start a chat with yourself")

        chat = self.repo.find_chat_between(self.db, user.id, other_user_id)
        if chat:
            return chat

        other = self.repo.get_user(self.db, other_user_id)
        if not other:
            raise NotFoundError("User not found")

        now = datetime.utcnow()
        chat = Chat(
            participant_one_id=user.id,
            participant_two_id=other.id,
            participant_names={str(user.id): display_name(user), str(other.id): display_name(other)},
            last_message="",
            last_message_at=now,
            last_message_from=None,
            read_by=[],
            created_at=now,
        )
        self.db.add(chat)
        commit(self.db, "create chat", chat)
        logger.info(f"💬 Chat {chat.id} created between users {user.id} and {other.id}")
        return chat

    def list_chats(self, user: User) -> tuple[list[Chat], int]:
        chats = self.repo.list_chats_for_user(self.db, user.id)
        return chats, sum(1 for chat in chats if is_unread(chat, user.id))

    def get_chat(self, chat_id: int, user: User) -> Chat:
        return require_participant(self.repo.get_chat(self.db, chat_id), user.id)

    def list_messages(self, chat_id: int, user: User) -> list[Message]:
        self.get_chat(chat_id, user)
        return self.repo.list_messages(self.db, chat_id)

    def send_message(
        self, chat_id: int, sender: User, text: Optional[str], image: Optional[ImageFile] = None
    ) -> Message:
        """
        Append a message, then update the chat's last-message summary.

        The image is uploaded before anything is written; a failed upload
        leaves the chat untouched. The message and the summary are two
        separate commits.
        """
        text = (text or "").strip()
        if not text and image is None:
            raise ValidationError("Message must contain text or an image")
        chat = self.get_chat(chat_id, sender)

        image_url = None
        if image is not None:
            image_url = upload_image(image, "chat", uploaded_by=str(sender.id))

        now = datetime.utcnow()
        message = Message(
            chat_id=chat.id,
            content=text,
            image_url=image_url,
            sender_id=sender.id,
            sender_name=display_name(sender),
            created_at=now,
        )
        self.db.add(message)
        commit(self.db, "send message", message)

        chat.last_message = IMAGE_PREVIEW if image_url else text
        chat.last_message_at = now
        chat.last_message_from = sender.id
        chat.read_by = [sender.id]
        commit(self.db, f"update chat {chat.id}", chat)
        logger.info(f"✉️ Message {message.id} sent in chat {chat.id} by user {sender.id}")
        return message

    def mark_read(self, chat_id: int, user: User) -> Chat:
        chat = self.get_chat(chat_id, user)
        read_by = list(chat.read_by or [])
        if user.id in read_by:
            return chat
        chat.read_by = read_by + [user.id]
        commit(self.db, f"mark chat {chat.id} read", chat)
        return chat

    def delete_chat(self, chat_id: int, user: User) -> None:
        """Delete the chat and every message in it"""
        chat = self.get_chat(chat_id, user)
        self.db.delete(chat)
        commit(self.db, f"delete chat {chat_id}")
        logger.info(f"🗑️ Chat {chat_id} deleted by user {user.id}")


class ChatSession:
    """
    Live view of one user's inbox.

    Holds a subscription to the chat list for its whole lifetime and at most
    one message subscription for the chat currently open. Opening another
    chat releases the previous message subscription first.
    """

    def __init__(
        self,
        user_id: int,
        on_chats: Callable[[list], None],
        on_messages: Callable[[Optional[int], list], None],
        change_feed: ChangeFeed = feed,
    ):
        self.user_id = user_id
        self.feed = change_feed
        self._on_chats = on_chats
        self._on_messages = on_messages
        self.chats: list = []
        self.messages: list = []
        self.current_chat_id: Optional[int] = None
        self._messages_subscription: Optional[Subscription] = None
        self._chats_subscription: Optional[Subscription] = self.feed.subscribe(
            "chats", self._query_chats, self._deliver_chats
        )

    def _query_chats(self, db: Session) -> list:
        return [
            ChatResponse.from_model(chat, self.user_id).model_dump(mode="json")
            for chat in ChatRepository.list_chats_for_user(db, self.user_id)
        ]

    def _deliver_chats(self, snapshot: list) -> None:
        self.chats = snapshot
        self._on_chats(snapshot)

    @property
    def unread_count(self) -> int:
        return sum(1 for chat in self.chats if chat["unread"])

    def open_chat(self, chat_id: int) -> None:
        self.close_chat()

        db = self.feed.session_factory()
        try:
            require_participant(ChatRepository.get_chat(db, chat_id), self.user_id)
        finally:
            db.close()

        def query(db: Session) -> list:
            return [
                MessageResponse.from_model(m).model_dump(mode="json")
                for m in ChatRepository.list_messages(db, chat_id)
            ]

        def deliver(snapshot: list) -> None:
            if self.current_chat_id != chat_id:
                return
            self.messages = snapshot
            self._on_messages(chat_id, snapshot)

        self.current_chat_id = chat_id
        try:
            self._messages_subscription = self.feed.subscribe("messages", query, deliver)
        except Exception:
            self.current_chat_id = None
            raise

    def close_chat(self) -> None:
        if self._messages_subscription is not None:
            self._messages_subscription.close()
            self._messages_subscription = None
        if self.current_chat_id is not None:
            self.current_chat_id = None
            self.messages = []
            self._on_messages(None, [])

    def close(self) -> None:
        self.close_chat()
        if self._chats_subscription is not None:
            self._chats_subscription.close()
            self._chats_subscription = None

    def __enter__(self) -> "ChatSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
