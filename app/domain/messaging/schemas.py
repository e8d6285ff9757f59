"""Messaging domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ...models import Chat, Message


class ChatCreate(BaseModel):
    userId: int


class ChatResponse(BaseModel):
    id: int
    participants: list[int]
    participantNames: dict[str, str]
    lastMessage: str
    lastMessageAt: Optional[datetime] = None
    lastMessageFrom: Optional[int] = None
    readBy: list[int]
    unread: bool = False

    @classmethod
    def from_model(cls, chat: Chat, viewer_id: Optional[int] = None) -> "ChatResponse":
        return cls(
            id=chat.id,
            participants=chat.participants,
            participantNames={str(k): v or "" for k, v in (chat.participant_names or {}).items()},
            lastMessage=chat.last_message or "",
            lastMessageAt=chat.last_message_at,
            lastMessageFrom=chat.last_message_from,
            readBy=list(chat.read_by or []),
            unread=is_unread(chat, viewer_id) if viewer_id is not None else False,
        )


class ChatListResponse(BaseModel):
    chats: list[ChatResponse]
    unreadCount: int


class MessageResponse(BaseModel):
    id: int
    chatId: int
    content: str
    imageUrl: Optional[str] = None
    senderId: int
    senderName: Optional[str] = None
    createdAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, message: Message) -> "MessageResponse":
        return cls(
            id=message.id,
            chatId=message.chat_id,
            content=message.content or "",
            imageUrl=message.image_url,
            senderId=message.sender_id,
            senderName=message.sender_name,
            createdAt=message.created_at,
        )


def is_unread(chat: Chat, user_id: int) -> bool:
    """A chat is unread when someone else sent the last message and the user has not read it"""
    if chat.last_message_from is None or chat.last_message_from == user_id:
        return False
    return user_id not in (chat.read_by or [])
