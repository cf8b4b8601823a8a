from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime

class OperatorCreate(BaseModel):
    user_id: str
    station_id: str
    phone: Optional[str] = None

class OperatorUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    station_id: Optional[str] = None

class OperatorResponse(BaseModel):
    id: str
    user_id: str
    station_id: str
    name: str
    email: str
    phone: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class AvailableOperatorResult(BaseModel):
    station_id: str
    instant: datetime
    available: bool
    operator: Optional[OperatorResponse] = None

class CompleteSessionRequest(BaseModel):
    energy_consumed_kwh: float = Field(..., ge=0, le=1000, description="Energy delivered in kWh")
    session_notes: Optional[str] = Field(None, max_length=500)
