from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ev_charging.auth.dependencies import get_current_user, require_roles
from ev_charging.auth.schemas import CurrentUser, Role
from ev_charging.clock import Clock, get_clock
from ev_charging.database import get_db
from ev_charging.exceptions import ChargingError, to_http_exception
from ev_charging.models import Booking
from ev_charging.reservations.schemas import BookingSession
from ev_charging.reservations.service import ReservationService
from ev_charging.scans.schemas import ScanTokenResponse, ScanRequest, ScanResult
from ev_charging.scans.service import ScanService

router = APIRouter()

require_staff = require_roles(Role.ADMIN, Role.BACKOFFICE, Role.STATION_OPERATOR)

def _ensure_booking_access(booking: Booking, current_user: CurrentUser):
    if current_user.role == Role.EV_OWNER and booking.user_id != current_user.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this booking"
        )

@router.post("/bookings/{booking_id}/token", response_model=ScanTokenResponse)
def issue_scan_token(
    booking_id: str,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Generate the scan token an owner shows at the station"""
    service = ScanService(db, clock=clock)
    try:
        _ensure_booking_access(service.get_booking(booking_id), current_user)
        return service.issue_scan_token(booking_id)
    except ChargingError as e:
        raise to_http_exception(e)

@router.get("/bookings/{booking_id}/qr.png")
def get_scan_token_image(
    booking_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """QR image of the booking's current scan token"""
    service = ScanService(db)
    try:
        _ensure_booking_access(service.get_booking(booking_id), current_user)
        image = service.render_scan_token_png(service.get_booking_token(booking_id))
    except ChargingError as e:
        raise to_http_exception(e)

    return Response(content=image, media_type="image/png")

@router.post("/scan", response_model=ScanResult)
def scan_token(
    request: ScanRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_staff)
):
    """Validate a scanned token against the live booking"""
    try:
        return ScanService(db).scan(request.token)
    except ChargingError as e:
        raise to_http_exception(e)

@router.post("/check-in", response_model=BookingSession)
def check_in(
    request: ScanRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: CurrentUser = Depends(require_staff)
):
    """Start the charging session for a scanned booking"""
    try:
        booking = ScanService(db, clock=clock).check_in(request.token)
    except ChargingError as e:
        raise to_http_exception(e)

    return ReservationService.to_session(booking)
