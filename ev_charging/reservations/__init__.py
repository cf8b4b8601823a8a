"""
Reservations Module

Owner-facing reservations and their paired operator-facing bookings. It
covers:

- Creation with overlap checks and operator assignment
- Updates and cancellation under the advance-notice rules
- Admin cancellation and hard deletion
- Reservation history and session views for owners

Reservation and booking always move together; the status of the booking is
derived from the reservation through ``map_reservation_status``.
"""

from .schemas import (
    ReservationStatus, BookingStatus, ReservationCreate, ReservationUpdate,
    ReservationResponse, BookingSession, ReservationHistory, map_reservation_status
)
from .validation import windows_overlap, has_conflict

__all__ = [
    "ReservationStatus",
    "BookingStatus",
    "ReservationCreate",
    "ReservationUpdate",
    "ReservationResponse",
    "BookingSession",
    "ReservationHistory",
    "map_reservation_status",
    "windows_overlap",
    "has_conflict"
]
