from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime, date

class StationInfo(BaseModel):
    id: str
    name: str
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    type: Optional[str] = None
    total_slots: int
    available_slots: int
    is_active: bool

    class Config:
        from_attributes = True

class TimeSlot(BaseModel):
    """One bookable hour; times are UTC"""
    start_time: datetime
    end_time: datetime
    available_slots: int
    is_available: bool

class StationSlots(BaseModel):
    station_id: str
    date: date
    slots: List[TimeSlot]
