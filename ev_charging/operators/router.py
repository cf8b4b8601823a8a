from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ev_charging.auth.dependencies import require_roles, require_admin
from ev_charging.auth.schemas import CurrentUser, Role
from ev_charging.clock import Clock, get_clock
from ev_charging.database import get_db
from ev_charging.exceptions import ChargingError, to_http_exception
from ev_charging.operators.schemas import (
    OperatorCreate, OperatorUpdate, OperatorResponse, AvailableOperatorResult, CompleteSessionRequest
)
from ev_charging.operators.service import OperatorService
from ev_charging.reservations.schemas import BookingStatus, BookingSession
from ev_charging.reservations.service import ReservationService

router = APIRouter()

require_staff = require_roles(Role.ADMIN, Role.BACKOFFICE, Role.STATION_OPERATOR)

# Operator Management Endpoints
@router.post("/", response_model=OperatorResponse, status_code=status.HTTP_201_CREATED)
def create_operator(
    request: OperatorCreate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: CurrentUser = Depends(require_admin)
):
    """Create an operator profile for a staff account"""
    try:
        return OperatorService(db, clock=clock).create_operator(request)
    except ChargingError as e:
        raise to_http_exception(e)

@router.get("/", response_model=List[OperatorResponse])
def list_operators(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin)
):
    return OperatorService(db).list_operators()

@router.get("/station/{station_id}", response_model=List[OperatorResponse])
def list_operators_by_station(
    station_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_staff)
):
    return OperatorService(db).list_operators_by_station(station_id)

@router.get("/available", response_model=AvailableOperatorResult)
def find_available_operator(
    station_id: str = Query(..., description="Station ID"),
    instant: datetime = Query(..., description="Session start; naive values are UTC"),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_staff)
):
    """Find the operator that would be assigned to a booking at this instant"""
    operator = OperatorService(db).find_available_operator(station_id, instant)
    return AvailableOperatorResult(
        station_id=station_id,
        instant=instant,
        available=operator is not None,
        operator=OperatorResponse.model_validate(operator) if operator else None
    )

# Session Endpoints
@router.get("/me/sessions", response_model=List[BookingSession])
def get_my_assigned_sessions(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(Role.STATION_OPERATOR))
):
    """Bookings assigned to the calling operator, newest first"""
    return OperatorService(db).get_assigned_sessions(current_user.user_id, status_filter)

@router.get("/users/{user_id}/sessions", response_model=List[BookingSession])
def get_assigned_sessions(
    user_id: str,
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin)
):
    return OperatorService(db).get_assigned_sessions(user_id, status_filter)

@router.post("/sessions/{booking_id}/complete", response_model=BookingSession)
def complete_session(
    booking_id: str,
    request: CompleteSessionRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: CurrentUser = Depends(require_staff)
):
    """Record energy delivered and close the charging session"""
    service = OperatorService(db, clock=clock)
    try:
        booking = service.complete_session(
            booking_id,
            request.energy_consumed_kwh,
            request.session_notes,
            caller_user_id=current_user.user_id,
            caller_is_admin=current_user.is_admin
        )
    except ChargingError as e:
        raise to_http_exception(e)

    return ReservationService.to_session(booking)

@router.get("/{operator_id}", response_model=OperatorResponse)
def get_operator(
    operator_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_staff)
):
    try:
        return OperatorService(db).get_operator(operator_id)
    except ChargingError as e:
        raise to_http_exception(e)

@router.put("/{operator_id}", response_model=OperatorResponse)
def update_operator(
    operator_id: str,
    request: OperatorUpdate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: CurrentUser = Depends(require_admin)
):
    """Update an operator profile; display fields are synced to the account"""
    try:
        return OperatorService(db, clock=clock).update_operator(operator_id, request)
    except ChargingError as e:
        raise to_http_exception(e)

@router.post("/{operator_id}/deactivate", response_model=OperatorResponse)
def deactivate_operator(
    operator_id: str,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: CurrentUser = Depends(require_admin)
):
    """Deactivate an operator with no upcoming bookings"""
    try:
        return OperatorService(db, clock=clock).deactivate_operator(operator_id)
    except ChargingError as e:
        raise to_http_exception(e)
