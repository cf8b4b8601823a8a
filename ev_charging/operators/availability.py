"""
Operator working-hours policy and slot matching.

Operators take bookings from 09:00 to 18:00 local time with a lunch break
from 12:00 to 13:00. Both bounds are half-open: a booking at 09:00 or 13:00
is accepted, one at 12:00 or 18:00 is not.

An operator is free at an instant when none of their bookings at exactly
that instant is still live (not cancelled, not completed).
"""

import logging
from datetime import datetime, time, tzinfo
from typing import Optional

from sqlalchemy.orm import Session

from ev_charging.clock import to_local
from ev_charging.models import Operator, Booking
from ev_charging.reservations.schemas import RELEASED_BOOKING_STATUSES

logger = logging.getLogger(__name__)

WORK_START = time(9, 0)
WORK_END = time(18, 0)
LUNCH_START = time(12, 0)
LUNCH_END = time(13, 0)

def describe_working_hours() -> str:
    return (
        f"{WORK_START:%H:%M}-{WORK_END:%H:%M} excluding lunch "
        f"{LUNCH_START:%H:%M}-{LUNCH_END:%H:%M}"
    )

def is_within_working_hours(local_time: time) -> bool:
    if local_time < WORK_START or local_time >= WORK_END:
        return False
    if LUNCH_START <= local_time < LUNCH_END:
        return False
    return True

def operator_is_busy(
    db: Session,
    operator_id: str,
    instant: datetime,
    exclude_booking_id: Optional[str] = None
) -> bool:
    query = db.query(Booking).filter(
        Booking.operator_id == operator_id,
        Booking.reservation_datetime == instant,
        Booking.status.notin_(RELEASED_BOOKING_STATUSES)
    )
    if exclude_booking_id:
        query = query.filter(Booking.id != exclude_booking_id)
    return query.count() > 0

def find_available_operator(
    db: Session,
    station_id: str,
    instant: datetime,
    tz: Optional[tzinfo] = None
) -> Optional[Operator]:
    """First free active operator at the station, in creation order"""
    local = to_local(instant, tz)
    if not is_within_working_hours(local.time()):
        logger.warning(
            "Requested %s at station %s is outside operator hours (%s)",
            local.strftime("%Y-%m-%d %H:%M"), station_id, describe_working_hours()
        )
        return None

    operators = db.query(Operator).filter(
        Operator.station_id == station_id,
        Operator.is_active == True
    ).order_by(Operator.created_at, Operator.id).all()

    logger.info("Checking %d active operators at station %s for %s", len(operators), station_id, instant)

    for operator in operators:
        if not operator_is_busy(db, operator.id, instant):
            return operator

    return None
