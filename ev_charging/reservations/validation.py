from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ev_charging.models import Reservation
from ev_charging.reservations.schemas import TERMINAL_RESERVATION_STATUSES

def windows_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """True when window a starts inside b, ends inside b, or contains b"""
    starts_inside = b_start <= a_start < b_end
    ends_inside = b_start < a_end <= b_end
    contains = a_start <= b_start and a_end >= b_end
    return starts_inside or ends_inside or contains

def has_conflict(
    db: Session,
    station_id: str,
    candidate_start: datetime,
    candidate_end: datetime,
    exclude_reservation_id: Optional[str] = None
) -> bool:
    """Check a window against the station's live reservations"""
    query = db.query(Reservation).filter(
        Reservation.charging_station_id == station_id,
        Reservation.status.notin_(TERMINAL_RESERVATION_STATUSES),
        Reservation.start_time < candidate_end,
        Reservation.end_time > candidate_start
    )
    if exclude_reservation_id:
        query = query.filter(Reservation.id != exclude_reservation_id)

    for existing in query.all():
        if windows_overlap(candidate_start, candidate_end, existing.start_time, existing.end_time):
            return True
    return False
