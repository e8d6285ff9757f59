"""Shared validation utilities"""

import re
from datetime import date, datetime, time
from typing import Optional

from .errors import ValidationError

# Bookable hourly slots offered on the booking form
TIME_SLOTS = ["10:00", "11:00", "12:00", "13:00", "14:00", "15:00", "16:00", "17:00"]

BODY_AREAS = [
    "Arm",
    "Forearm",
    "Upper Arm",
    "Shoulder",
    "Back",
    "Chest",
    "Stomach",
    "Leg",
    "Thigh",
    "Calf",
    "Ankle",
    "Foot",
    "Hand",
    "Wrist",
    "Neck",
    "Hip",
    "Ribs",
    "Other",
]

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+?[\d\s\-()]{10,}$")

USER_ROLES = ("client", "artist")


def is_valid_email(email: Optional[str]) -> bool:
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def is_valid_phone(phone: Optional[str]) -> bool:
    return bool(phone) and PHONE_PATTERN.match(phone) is not None


def validate_email(email: Optional[str]) -> str:
    """
    Validate email format.

    Returns:
        Stripped email address

    Raises:
        ValidationError: If email format is invalid
    """
    email = (email or "").strip()
    if not is_valid_email(email):
        raise ValidationError("Please enter a valid email address")
    return email


def validate_phone(phone: Optional[str]) -> str:
    """
    Validate a contact phone number.

    Accepts an optional leading + followed by at least ten digits, spaces,
    dashes or parentheses.
    """
    phone = (phone or "").strip()
    if not is_valid_phone(phone):
        raise ValidationError("Please enter a valid phone number")
    return phone


def validate_time_slot(slot: str) -> str:
    if slot not in TIME_SLOTS:
        raise ValidationError(f"Invalid time slot. Choose one of: {', '.join(TIME_SLOTS)}")
    return slot


def validate_body_area(area: str) -> str:
    if area not in BODY_AREAS:
        raise ValidationError("Please select a valid body area")
    return area


def validate_future_datetime(day: date, slot: str, now: Optional[datetime] = None) -> datetime:
    """
    Ensure the requested date and slot lie strictly after ``now``.

    Returns:
        The combined appointment datetime
    """
    hours, minutes = (int(part) for part in slot.split(":"))
    scheduled = datetime.combine(day, time(hours, minutes))
    if scheduled <= (now or datetime.now()):
        raise ValidationError("Please select a future date and time")
    return scheduled


def validate_role(role: str) -> str:
    if role not in USER_ROLES:
        raise ValidationError("Role must be either 'client' or 'artist'")
    return role
