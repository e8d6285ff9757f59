"""
Appointment status machine

    pending ──► price_proposed ──► confirmed
       │              │
       │              └──► cancelled
       └──► rejected

pending, price_proposed and confirmed can also move to cancelled_by_client.
rejected, cancelled and cancelled_by_client are final.
"""

from enum import Enum

from ...shared.errors import InvalidTransitionError


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    PRICE_PROPOSED = "price_proposed"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    CANCELLED_BY_CLIENT = "cancelled_by_client"


TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset(
        {
            AppointmentStatus.PRICE_PROPOSED,
            AppointmentStatus.REJECTED,
            AppointmentStatus.CANCELLED_BY_CLIENT,
        }
    ),
    AppointmentStatus.PRICE_PROPOSED: frozenset(
        {
            AppointmentStatus.CONFIRMED,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.CANCELLED_BY_CLIENT,
        }
    ),
    AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.CANCELLED_BY_CLIENT}),
    AppointmentStatus.REJECTED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.CANCELLED_BY_CLIENT: frozenset(),
}

# Statuses that will never change again
FINAL_STATUSES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)


def can_transition(current: str, new: str) -> bool:
    try:
        return AppointmentStatus(new) in TRANSITIONS[AppointmentStatus(current)]
    except (KeyError, ValueError):
        return False


def validate_transition(current: str, new: AppointmentStatus) -> AppointmentStatus:
    """Return ``new`` if the move is legal, otherwise raise InvalidTransitionError"""
    if not can_transition(current, new):
        raise InvalidTransitionError(current, new.value)
    return new
