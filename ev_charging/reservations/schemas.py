from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from enum import Enum

class ReservationStatus(str, Enum):
    """Owner-facing reservation lifecycle"""
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    ACTIVE = "Active"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

class BookingStatus(str, Enum):
    """Operator-facing booking lifecycle"""
    PENDING = "Pending"
    APPROVED = "Approved"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    NO_SHOW = "NoShow"

TERMINAL_RESERVATION_STATUSES = (ReservationStatus.COMPLETED.value, ReservationStatus.CANCELLED.value)
# Bookings in these states release their operator and station instant
RELEASED_BOOKING_STATUSES = (BookingStatus.COMPLETED.value, BookingStatus.CANCELLED.value)

_STATUS_MAP = {
    ReservationStatus.CONFIRMED: BookingStatus.APPROVED,
    ReservationStatus.ACTIVE: BookingStatus.IN_PROGRESS,
    ReservationStatus.COMPLETED: BookingStatus.COMPLETED,
    ReservationStatus.CANCELLED: BookingStatus.CANCELLED,
}

def map_reservation_status(status) -> BookingStatus:
    """Booking status mirrored from a reservation status; unknown values map to Pending"""
    try:
        status = ReservationStatus(status)
    except ValueError:
        return BookingStatus.PENDING
    return _STATUS_MAP.get(status, BookingStatus.PENDING)

# Requests
class ReservationCreate(BaseModel):
    """Reservation request; exactly one owner reference is required"""
    user_id: Optional[str] = None
    owner_nic: Optional[str] = None
    charging_station_id: str
    start_time: datetime
    end_time: datetime
    notes: Optional[str] = Field(None, max_length=500)

class ReservationUpdate(BaseModel):
    """Partial update; only fields that are set are applied"""
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    status: Optional[ReservationStatus] = None
    notes: Optional[str] = Field(None, max_length=500)

# Responses
class ReservationResponse(BaseModel):
    id: str
    user_id: str
    charging_station_id: str
    start_time: datetime
    end_time: datetime
    status: ReservationStatus
    qr_code: Optional[str] = None
    operator_id: Optional[str] = None
    operator_user_id: Optional[str] = None
    booking_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True

class BookingSession(BaseModel):
    """Owner-facing view of a booking"""
    booking_id: str
    reservation_id: Optional[str] = None
    station_id: str
    operator_id: Optional[str] = None
    status: BookingStatus
    start_time: datetime
    end_time: datetime
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    energy_consumed_kwh: Optional[float] = None
    session_duration_minutes: Optional[int] = None
    session_notes: Optional[str] = None

class ReservationHistory(BaseModel):
    nic: str
    reservations: List[ReservationResponse]
    total: int
