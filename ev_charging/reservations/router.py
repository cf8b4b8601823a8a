from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List

from ev_charging.auth.dependencies import get_current_user, require_admin
from ev_charging.auth.schemas import CurrentUser, Role
from ev_charging.clock import Clock, get_clock
from ev_charging.database import get_db
from ev_charging.exceptions import ChargingError, to_http_exception
from ev_charging.models import Reservation
from ev_charging.reservations.schemas import (
    ReservationCreate, ReservationUpdate, ReservationResponse, ReservationHistory, BookingSession
)
from ev_charging.reservations.service import ReservationService

router = APIRouter()

def _forbidden(detail: str = "Not enough permissions") -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)

def _ensure_can_view(reservation: Reservation, current_user: CurrentUser):
    if current_user.is_admin:
        return
    if current_user.role == Role.EV_OWNER and reservation.user_id == current_user.user_id:
        return
    if current_user.role == Role.STATION_OPERATOR and reservation.operator_user_id == current_user.user_id:
        return
    raise _forbidden("You do not have access to this reservation")

def _ensure_owner_or_admin(reservation: Reservation, current_user: CurrentUser):
    if current_user.is_admin:
        return
    if current_user.role == Role.EV_OWNER and reservation.user_id == current_user.user_id:
        return
    raise _forbidden("Only the owner or an administrator can change this reservation")

def _ensure_self_or_admin(user_id: str, current_user: CurrentUser):
    if not current_user.is_admin and current_user.user_id != user_id:
        raise _forbidden("You can only view your own bookings")

# Reservation lifecycle
@router.post("/", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
def create_reservation(
    request: ReservationCreate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Create a reservation; owners book for themselves, admins may book by owner NIC"""
    if current_user.role == Role.EV_OWNER:
        if request.user_id and request.user_id != current_user.user_id:
            raise _forbidden("Owners can only book for themselves")
        request = request.model_copy(update={"user_id": current_user.user_id})
    elif not current_user.is_admin:
        raise _forbidden()

    try:
        return ReservationService(db, clock=clock).create_reservation(request)
    except ChargingError as e:
        raise to_http_exception(e)

@router.get("/", response_model=List[ReservationResponse])
def list_reservations(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin)
):
    """List all reservations, newest first"""
    return ReservationService(db).list_reservations()

@router.get("/history/{nic}", response_model=ReservationHistory)
def get_reservation_history(
    nic: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Reservation history for an owner NIC"""
    if not current_user.is_admin and (current_user.nic or "").lower() != nic.lower():
        raise _forbidden("You can only view your own history")

    try:
        reservations = ReservationService(db).get_reservation_history(nic)
    except ChargingError as e:
        raise to_http_exception(e)

    return ReservationHistory(
        nic=nic,
        reservations=[ReservationResponse.model_validate(r) for r in reservations],
        total=len(reservations)
    )

@router.get("/users/{user_id}/completed", response_model=List[BookingSession])
def get_user_completed_bookings(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Completed charging sessions of an owner"""
    _ensure_self_or_admin(user_id, current_user)
    return ReservationService(db).get_user_completed_bookings(user_id)

@router.get("/users/{user_id}/pending", response_model=List[BookingSession])
def get_user_pending_bookings(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Confirmed sessions of an owner that are waiting for check-in"""
    _ensure_self_or_admin(user_id, current_user)
    return ReservationService(db).get_user_pending_bookings(user_id)

@router.get("/{reservation_id}", response_model=ReservationResponse)
def get_reservation(
    reservation_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Get a reservation by its ID or by its booking ID"""
    try:
        reservation = ReservationService(db).get_reservation(reservation_id)
    except ChargingError as e:
        raise to_http_exception(e)

    _ensure_can_view(reservation, current_user)
    return reservation

@router.put("/{reservation_id}", response_model=ReservationResponse)
def update_reservation(
    reservation_id: str,
    request: ReservationUpdate,
    admin_override: bool = Query(False, description="Bypass the advance-notice rules (admins only)"),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Update reservation times, status or notes"""
    if admin_override and not current_user.is_admin:
        raise _forbidden("Only administrators can override modification rules")

    service = ReservationService(db, clock=clock)
    try:
        _ensure_owner_or_admin(service.get_reservation(reservation_id), current_user)
        return service.update_reservation(reservation_id, request, admin_override=admin_override)
    except ChargingError as e:
        raise to_http_exception(e)

@router.post("/{reservation_id}/cancel", response_model=ReservationResponse)
def cancel_reservation(
    reservation_id: str,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Cancel a reservation at least 12 hours before it starts"""
    service = ReservationService(db, clock=clock)
    try:
        _ensure_owner_or_admin(service.get_reservation(reservation_id), current_user)
        return service.cancel_reservation(reservation_id)
    except ChargingError as e:
        raise to_http_exception(e)

@router.post("/{reservation_id}/admin-cancel", response_model=ReservationResponse)
def admin_cancel_reservation(
    reservation_id: str,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: CurrentUser = Depends(require_admin)
):
    """Cancel a reservation regardless of the advance-notice window"""
    try:
        return ReservationService(db, clock=clock).admin_cancel_reservation(reservation_id)
    except ChargingError as e:
        raise to_http_exception(e)

@router.delete("/{reservation_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_reservation(
    reservation_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin)
):
    """Permanently delete a reservation and its booking"""
    try:
        ReservationService(db).delete_reservation(reservation_id)
    except ChargingError as e:
        raise to_http_exception(e)
