"""Messaging repository - Database operations for chats and messages"""

from typing import Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ...models import Chat, Message, User


class ChatRepository:
    """Repository for chat and message database operations"""

    @staticmethod
    def get_chat(db: Session, chat_id: int) -> Optional[Chat]:
        return db.query(Chat).filter(Chat.id == chat_id).first()

    @staticmethod
    def find_chat_between(db: Session, user_id: int, other_id: int) -> Optional[Chat]:
        return (
            db.query(Chat)
            .filter(
                or_(
                    and_(Chat.participant_one_id == user_id, Chat.participant_two_id == other_id),
                    and_(Chat.participant_one_id == other_id, Chat.participant_two_id == user_id),
                )
            )
            .order_by(Chat.id)
            .first()
        )

    @staticmethod
    def list_chats_for_user(db: Session, user_id: int) -> list[Chat]:
        return (
            db.query(Chat)
            .filter(or_(Chat.participant_one_id == user_id, Chat.participant_two_id == user_id))
            .order_by(Chat.last_message_at.desc(), Chat.id.desc())
            .all()
        )

    @staticmethod
    def list_messages(db: Session, chat_id: int) -> list[Message]:
        return (
            db.query(Message)
            .filter(Message.chat_id == chat_id)
            .order_by(Message.created_at.asc(), Message.id.asc())
            .all()
        )

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()
