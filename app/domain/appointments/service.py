"""Appointment service - Booking requests and the price negotiation workflow"""

import logging
from datetime import date, datetime
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import Appointment, User
from ...realtime import Subscription, feed
from ...shared.errors import (
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    StoreError,
    ValidationError,
)
from ...shared.persistence import commit
from ...shared.validators import (
    validate_body_area,
    validate_email,
    validate_future_datetime,
    validate_phone,
    validate_role,
    validate_time_slot,
)
from ...storage import ImageFile, upload_image
from .repository import AppointmentRepository
from .schemas import AppointmentResponse
from .status import FINAL_STATUSES, AppointmentStatus, validate_transition

logger = logging.getLogger(__name__)

# Statuses that trigger a notification email to the client
NOTIFY_STATUSES = (AppointmentStatus.CONFIRMED.value, AppointmentStatus.REJECTED.value)


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise ValidationError("Please select a valid date") from e


def visible_to(appointment: Appointment, user_id: int) -> bool:
    return user_id not in (appointment.hidden_by or [])


class AppointmentService:
    """Service layer for appointment business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_appointments(self, user: User, role: Optional[str] = None) -> tuple[list[Appointment], int]:
        """
        Appointments on the user's side of the booking, newest first.

        Records the user has hidden are left out. Returns the list and the
        number of entries still marked unviewed.
        """
        role = validate_role(role or user.role or "")
        appointments = [
            a for a in self.repo.list_for_user(self.db, user.id, role) if visible_to(a, user.id)
        ]
        unread_count = sum(1 for a in appointments if not a.viewed)
        return appointments, unread_count

    def get_appointment(self, appointment_id: int, user: User) -> Appointment:
        appointment = self.repo.get_by_id(self.db, appointment_id)
        if not appointment:
            raise NotFoundError("Appointment not found")
        if user.id not in (appointment.client_id, appointment.artist_id):
            raise PermissionDeniedError("You are not part of this appointment")
        return appointment

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    def create_appointment(
        self,
        client: User,
        artist_id: int,
        day: str,
        slot: str,
        description: str,
        body_area: str,
        contact_name: str,
        contact_phone: str,
        contact_email: str,
        image: Optional[ImageFile] = None,
        now: Optional[datetime] = None,
    ) -> Appointment:
        """
        Validate a booking request, upload its reference image and store it as pending.

        Every check runs before the upload, and nothing is written when the
        upload fails.
        """
        description = (description or "").strip()
        contact_name = (contact_name or "").strip()
        if not (description and contact_name and day and slot and body_area):
            raise ValidationError("Please fill in all required fields")

        contact_email = validate_email(contact_email)
        contact_phone = validate_phone(contact_phone)
        slot = validate_time_slot(slot)
        body_area = validate_body_area(body_area)
        appointment_date = _parse_date(day)
        validate_future_datetime(appointment_date, slot, now=now)

        if client.id == artist_id:
            raise ValidationError("You cannot book an appointment with yourself")
        artist = self.repo.get_artist(self.db, artist_id)
        if not artist:
            raise NotFoundError("Artist not found")

        image_url = None
        if image is not None:
            image_url = upload_image(image, "appointments", uploaded_by=str(client.id))

        appointment = Appointment(
            client_id=client.id,
            artist_id=artist_id,
            date=appointment_date,
            time=slot,
            description=description,
            body_area=body_area,
            image_url=image_url,
            status=AppointmentStatus.PENDING.value,
            viewed=False,
            hidden_by=[],
            contact_name=contact_name,
            contact_phone=contact_phone,
            contact_email=contact_email,
        )
        self.db.add(appointment)
        commit(self.db, "create appointment", appointment)
        logger.info(f"📅 Appointment {appointment.id} requested by client {client.id} with artist {artist_id}")
        return appointment

    # ------------------------------------------------------------------
    # Status workflow
    # ------------------------------------------------------------------

    def _transition(self, appointment: Appointment, new_status: AppointmentStatus, **changes) -> Appointment:
        previous = appointment.status
        validate_transition(previous, new_status)
        appointment.status = new_status.value
        appointment.viewed = False
        for key, value in changes.items():
            setattr(appointment, key, value)
        commit(self.db, f"update appointment {appointment.id}", appointment)
        logger.info(f"🔄 Appointment {appointment.id}: {previous} → {new_status.value}")
        return appointment

    def _as_artist(self, appointment_id: int, user: User) -> Appointment:
        appointment = self.get_appointment(appointment_id, user)
        if appointment.artist_id != user.id:
            raise PermissionDeniedError("Only the artist can perform this action")
        return appointment

    def _as_client(self, appointment_id: int, user: User) -> Appointment:
        appointment = self.get_appointment(appointment_id, user)
        if appointment.client_id != user.id:
            raise PermissionDeniedError("Only the client can perform this action")
        return appointment

    def propose_price(self, appointment_id: int, artist: User, price: float) -> Appointment:
        if price is None or price <= 0:
            raise ValidationError("Please enter a valid price")
        appointment = self._as_artist(appointment_id, artist)
        return self._transition(appointment, AppointmentStatus.PRICE_PROPOSED, price=float(price))

    def respond_to_price(self, appointment_id: int, client: User, accepted: bool) -> Appointment:
        appointment = self._as_client(appointment_id, client)
        target = AppointmentStatus.CONFIRMED if accepted else AppointmentStatus.CANCELLED
        return self._transition(appointment, target)

    def reject(self, appointment_id: int, artist: User) -> Appointment:
        appointment = self._as_artist(appointment_id, artist)
        return self._transition(appointment, AppointmentStatus.REJECTED)

    def cancel(self, appointment_id: int, client: User) -> Appointment:
        appointment = self._as_client(appointment_id, client)
        return self._transition(appointment, AppointmentStatus.CANCELLED_BY_CLIENT)

    # ------------------------------------------------------------------
    # Per-user list state
    # ------------------------------------------------------------------

    def hide(self, appointment_id: int, user: User) -> Appointment:
        """Remove a finished appointment from this user's list only. Hiding twice is a no-op."""
        appointment = self.get_appointment(appointment_id, user)
        if AppointmentStatus(appointment.status) not in FINAL_STATUSES:
            raise InvalidTransitionError(appointment.status, "hidden")
        hidden_by = list(appointment.hidden_by or [])
        if user.id in hidden_by:
            return appointment
        appointment.hidden_by = hidden_by + [user.id]
        commit(self.db, f"hide appointment {appointment.id}", appointment)
        logger.info(f"🙈 User {user.id} hid appointment {appointment.id}")
        return appointment

    def mark_all_viewed(self, user: User, role: Optional[str] = None) -> int:
        """
        Mark every unviewed appointment in the user's list as viewed.

        Each record is committed on its own; a failed write is logged and the
        remaining records are still processed.
        """
        appointments, _ = self.list_appointments(user, role)
        updated = 0
        for appointment in appointments:
            if appointment.viewed:
                continue
            appointment.viewed = True
            try:
                commit(self.db, f"mark appointment {appointment.id} viewed")
                updated += 1
            except StoreError:
                continue
        logger.info(f"👀 Marked {updated} appointments viewed for user {user.id}")
        return updated

    # ------------------------------------------------------------------
    # Notifications and live updates
    # ------------------------------------------------------------------

    @staticmethod
    def notification_payload(appointment: Appointment) -> Optional[dict]:
        """Arguments for the status email, or None when the status sends no email"""
        if appointment.status not in NOTIFY_STATUSES:
            return None
        artist = appointment.artist
        return {
            "status": appointment.status,
            "to": appointment.contact_email,
            "client_name": appointment.contact_name,
            "artist_name": (artist.full_name if artist else None) or "your artist",
            "date": appointment.date.strftime("%B %d, %Y"),
            "time": appointment.time,
            "description": appointment.description,
        }


def subscribe_appointments(user_id: int, role: str, callback: Callable[[list], None]) -> Subscription:
    """Live list of the user's visible appointments, as JSON-ready dicts"""

    def query(db: Session) -> list:
        try:
            appointments = AppointmentRepository.list_for_user(db, user_id, role)
        except SQLAlchemyError as e:
            raise StoreError("Failed to load appointments") from e
        return [
            AppointmentResponse.from_model(a).model_dump(mode="json")
            for a in appointments
            if visible_to(a, user_id)
        ]

    return feed.subscribe("appointments", query, callback)
