from datetime import date, datetime, time, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from ev_charging.clock import Clock, SystemClock, get_local_timezone, local_to_utc
from ev_charging.exceptions import NotFound
from ev_charging.models import Station, StationSchedule, Booking
from ev_charging.reservations.schemas import BookingStatus
from ev_charging.stations.schemas import TimeSlot

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

# Bookable hours in local time, lunch hour excluded
SLOT_BLOCKS = ((9, 12), (13, 18))
SLOT_LENGTH = timedelta(hours=1)

class StationService:
    @staticmethod
    def get_station(db: Session, station_id: str, active_only: bool = True) -> Station:
        """Get station by ID; inactive stations count as missing unless active_only is False"""
        station = db.query(Station).filter(Station.id == station_id).first()
        if station is None or (active_only and not station.is_active):
            raise NotFound(f"Charging station {station_id} not found")
        return station

    @staticmethod
    def get_schedule_entry(db: Session, station_id: str, day: date) -> Optional[StationSchedule]:
        return db.query(StationSchedule).filter(
            StationSchedule.station_id == station_id,
            StationSchedule.day_of_week == WEEKDAYS[day.weekday()]
        ).first()

    @staticmethod
    def get_station_slots(
        db: Session,
        station_id: str,
        day: date,
        clock: Optional[Clock] = None
    ) -> List[TimeSlot]:
        """Project hourly slot availability for a station on a local calendar date"""
        station = StationService.get_station(db, station_id)

        entry = StationService.get_schedule_entry(db, station.id, day)
        if entry is None or not entry.is_open:
            return []

        tz = get_local_timezone()
        now = (clock or SystemClock()).now()
        slots = []

        for block_start, block_end in SLOT_BLOCKS:
            for hour in range(block_start, block_end):
                local_start = datetime.combine(day, time(hour, 0))
                start = local_to_utc(local_start, tz)
                end = local_to_utc(local_start + SLOT_LENGTH, tz)

                booked = db.query(Booking).filter(
                    Booking.station_id == station.id,
                    Booking.reservation_datetime == start,
                    Booking.status != BookingStatus.CANCELLED.value
                ).count()
                available = station.total_slots - booked

                slots.append(TimeSlot(
                    start_time=start,
                    end_time=end,
                    available_slots=available,
                    is_available=available > 0 and start > now
                ))

        return slots
