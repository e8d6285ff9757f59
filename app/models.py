from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    firebase_uid = Column(String(255), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    role = Column(String(20), nullable=True)  # client, artist - null until selected after signup
    profile_image_url = Column(String(500), nullable=True)
    # Artist profile
    studio_name = Column(String(255), nullable=True)
    city = Column(String(255), nullable=True)
    address = Column(String(500), nullable=True)
    bio = Column(Text, nullable=True)
    styles = Column(JSON, default=list)  # e.g. ["blackwork", "japanese"]
    # Client side of the follow edge: ids of artists this user follows
    followed_artists = Column(JSON, default=list)
    # Rating aggregate, maintained in the same transaction as each review write
    rating_total = Column(Integer, default=0, nullable=False)
    rating_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    posts = relationship("Post", back_populates="artist", cascade="all, delete-orphan")

    @property
    def average_rating(self) -> float:
        if not self.rating_count:
            return 0.0
        return self.rating_total / self.rating_count


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    artist_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    time = Column(String(5), nullable=False)  # HH:MM slot
    description = Column(String(2000), nullable=False)
    body_area = Column(String(50), nullable=False)
    image_url = Column(String(1000), nullable=True)
    # Status workflow: pending → price_proposed → confirmed/cancelled
    # pending → rejected; pending/price_proposed/confirmed → cancelled_by_client
    status = Column(String(50), default="pending", nullable=False)
    price = Column(Float, nullable=True)  # Set once the artist proposes a price
    viewed = Column(Boolean, default=False, nullable=False)
    hidden_by = Column(JSON, default=list)  # User ids who hid this record from their own list
    # Contact snapshot captured at booking time
    contact_name = Column(String(255), nullable=False)
    contact_phone = Column(String(50), nullable=False)
    contact_email = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("User", foreign_keys=[client_id])
    artist = relationship("User", foreign_keys=[artist_id])


class Chat(Base):
    __tablename__ = "chats"

    id = Column(Integer, primary_key=True, index=True)
    participant_one_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    participant_two_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    participant_names = Column(JSON, default=dict)  # {"<user id>": "<display name>"}
    last_message = Column(String(2000), default="")
    last_message_at = Column(DateTime, default=datetime.utcnow)
    last_message_from = Column(Integer, nullable=True)
    read_by = Column(JSON, default=list)  # User ids who have seen the latest message
    created_at = Column(DateTime, default=datetime.utcnow)

    messages = relationship(
        "Message",
        back_populates="chat",
        cascade="all, delete-orphan",
        order_by="Message.created_at",
    )

    @property
    def participants(self) -> list[int]:
        return [self.participant_one_id, self.participant_two_id]


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    chat_id = Column(Integer, ForeignKey("chats.id"), nullable=False, index=True)
    content = Column(Text, default="")
    image_url = Column(String(1000), nullable=True)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    sender_name = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    chat = relationship("Chat", back_populates="messages")


class Post(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True)
    artist_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # Denormalized artist details shown in the feed
    artist_name = Column(String(255), nullable=True)
    studio_name = Column(String(255), nullable=True)
    city = Column(String(255), nullable=True)
    image_url = Column(String(1000), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    likes = Column(JSON, default=list)  # User ids, no duplicates
    comments = Column(JSON, default=list)  # [{"userId", "userName", "text", "timestamp"}]
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    artist = relationship("User", back_populates="posts")


class ArtistReview(Base):
    """One client's rating of one artist"""

    __tablename__ = "artist_reviews"
    __table_args__ = (UniqueConstraint("artist_id", "client_id", name="uq_review_artist_client"),)

    id = Column(Integer, primary_key=True, index=True)
    artist_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    rating = Column(Integer, nullable=False)  # 1-5
    comment = Column(String(2000), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True)
