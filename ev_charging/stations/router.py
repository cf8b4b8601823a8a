from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ev_charging.clock import Clock, get_clock
from ev_charging.database import get_db
from ev_charging.exceptions import ChargingError, to_http_exception
from ev_charging.stations.schemas import StationInfo, StationSlots
from ev_charging.stations.service import StationService

router = APIRouter()

@router.get("/{station_id}", response_model=StationInfo)
def get_station(station_id: str, db: Session = Depends(get_db)):
    """Get an active station by ID"""
    try:
        return StationService.get_station(db, station_id)
    except ChargingError as e:
        raise to_http_exception(e)

@router.get("/{station_id}/slots", response_model=StationSlots)
def get_station_slots(
    station_id: str,
    day: date = Query(..., alias="date", description="Local calendar date (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """Get hourly slot availability for a station"""
    try:
        slots = StationService.get_station_slots(db, station_id, day, clock=clock)
    except ChargingError as e:
        raise to_http_exception(e)

    return StationSlots(station_id=station_id, date=day, slots=slots)
