from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class ScanPayload(BaseModel):
    """Booking snapshot embedded in a scan token"""
    booking_id: str
    user_id: str
    station_id: str
    station_name: str
    station_address: Optional[str] = None
    owner_name: str
    owner_nic: str
    owner_phone: Optional[str] = None
    reservation_datetime: datetime
    status: str
    booking_created_at: Optional[datetime] = None
    generated_at: datetime

class ScanTokenResponse(BaseModel):
    token: str
    payload: ScanPayload

class ScanRequest(BaseModel):
    token: str = Field(..., min_length=1)

class ScanResult(BaseModel):
    is_valid: bool
    message: str
    booking_id: str
    status: str
    payload: ScanPayload
