"""Appointment domain schemas - Pydantic models for validation"""

from datetime import date as date_type
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ...models import Appointment, User


class ProfileSummary(BaseModel):
    """Counterpart details shown next to an appointment"""

    id: int
    fullName: Optional[str] = None
    studioName: Optional[str] = None
    city: Optional[str] = None
    profileImageUrl: Optional[str] = None

    @classmethod
    def from_user(cls, user: Optional[User]) -> Optional["ProfileSummary"]:
        if user is None:
            return None
        return cls(
            id=user.id,
            fullName=user.full_name,
            studioName=user.studio_name,
            city=user.city,
            profileImageUrl=user.profile_image_url,
        )


class AppointmentResponse(BaseModel):
    """Schema for appointment response"""

    id: int
    clientId: int
    artistId: int
    date: date_type
    time: str
    description: str
    bodyArea: str
    imageUrl: Optional[str] = None
    status: str
    price: Optional[float] = None
    viewed: bool
    contactName: str
    contactPhone: str
    contactEmail: str
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
    client: Optional[ProfileSummary] = None
    artist: Optional[ProfileSummary] = None

    @classmethod
    def from_model(cls, appointment: Appointment) -> "AppointmentResponse":
        return cls(
            id=appointment.id,
            clientId=appointment.client_id,
            artistId=appointment.artist_id,
            date=appointment.date,
            time=appointment.time,
            description=appointment.description,
            bodyArea=appointment.body_area,
            imageUrl=appointment.image_url,
            status=appointment.status,
            price=appointment.price,
            viewed=appointment.viewed,
            contactName=appointment.contact_name,
            contactPhone=appointment.contact_phone,
            contactEmail=appointment.contact_email,
            createdAt=appointment.created_at,
            updatedAt=appointment.updated_at,
            client=ProfileSummary.from_user(appointment.client),
            artist=ProfileSummary.from_user(appointment.artist),
        )


class AppointmentListResponse(BaseModel):
    appointments: list[AppointmentResponse]
    unreadCount: int


class PriceProposal(BaseModel):
    price: float = Field(gt=0)


class PriceResponse(BaseModel):
    accepted: bool


class MarkViewedResponse(BaseModel):
    updated: int
