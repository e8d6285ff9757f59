"""Messaging router - Chat endpoints and the live inbox socket"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session

from ...auth import get_current_user, get_websocket_user
from ...database import get_db
from ...models import User
from ...realtime import SnapshotStream
from ...shared.errors import MarketplaceError
from ...storage import read_upload
from .schemas import ChatCreate, ChatListResponse, ChatResponse, MessageResponse
from .service import ChatSession, MessagingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chats", tags=["Messaging"])
ws_router = APIRouter(tags=["Realtime"])


def get_messaging_service(db: Session = Depends(get_db)) -> MessagingService:
    """Dependency injection for MessagingService"""
    return MessagingService(db)


@router.get("", response_model=ChatListResponse)
async def list_chats(
    current_user: User = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    chats, unread_count = service.list_chats(current_user)
    return ChatListResponse(
        chats=[ChatResponse.from_model(c, current_user.id) for c in chats],
        unreadCount=unread_count,
    )


@router.post("", response_model=ChatResponse)
async def create_or_get_chat(
    data: ChatCreate,
    current_user: User = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    """Open the conversation with another user, creating it on first contact"""
    chat = service.create_or_get_chat(current_user, data.userId)
    return ChatResponse.from_model(chat, current_user.id)


@router.get("/{chat_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    chat_id: int,
    current_user: User = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    return [MessageResponse.from_model(m) for m in service.list_messages(chat_id, current_user)]


@router.post("/{chat_id}/messages", response_model=MessageResponse, status_code=201)
async def send_message(
    chat_id: int,
    text: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    message = service.send_message(chat_id, current_user, text, await read_upload(image))
    return MessageResponse.from_model(message)


@router.post("/{chat_id}/read", response_model=ChatResponse)
async def mark_chat_read(
    chat_id: int,
    current_user: User = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    return ChatResponse.from_model(service.mark_read(chat_id, current_user), current_user.id)


@router.delete("/{chat_id}", status_code=204)
async def delete_chat(
    chat_id: int,
    current_user: User = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    service.delete_chat(chat_id, current_user)


@ws_router.websocket("/ws/messages")
async def messages_socket(websocket: WebSocket, user: User = Depends(get_websocket_user)):
    """
    Live inbox.

    Sends {"type": "chats", "data": [...]} on every chat list change and
    {"type": "messages", "chatId": n, "data": [...]} for the open chat.
    Client frames: {"action": "open", "chatId": n} and {"action": "close"}.
    """
    await websocket.accept()
    stream = SnapshotStream(websocket)
    session = ChatSession(
        user.id,
        on_chats=stream.callback("chats"),
        on_messages=lambda chat_id, snapshot: stream.push("messages", snapshot, chatId=chat_id),
    )

    async def handle(frame: dict) -> None:
        action = frame.get("action")
        try:
            if action == "open":
                session.open_chat(int(frame.get("chatId")))
            elif action == "close":
                session.close_chat()
            else:
                stream.push("error", [], detail=f"Unknown action: {action}")
        except (TypeError, ValueError):
            stream.push("error", [], detail="chatId must be an integer")
        except MarketplaceError as e:
            stream.push("error", [], detail=e.message)

    try:
        await stream.run(handle)
    except WebSocketDisconnect:
        logger.debug(f"Inbox socket closed for user {user.id}")
    finally:
        session.close()
