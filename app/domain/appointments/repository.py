"""Appointment repository - Database operations for appointments"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, User


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_by_id(db: Session, appointment_id: int) -> Optional[Appointment]:
        return (
            db.query(Appointment)
            .options(joinedload(Appointment.client), joinedload(Appointment.artist))
            .filter(Appointment.id == appointment_id)
            .first()
        )

    @staticmethod
    def list_for_user(db: Session, user_id: int, role: str) -> list[Appointment]:
        """All appointments where the user holds the given side, newest first (hidden included)"""
        column = Appointment.artist_id if role == "artist" else Appointment.client_id
        return (
            db.query(Appointment)
            .options(joinedload(Appointment.client), joinedload(Appointment.artist))
            .filter(column == user_id)
            .order_by(Appointment.created_at.desc(), Appointment.id.desc())
            .all()
        )

    @staticmethod
    def get_artist(db: Session, artist_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == artist_id, User.role == "artist").first()
