import logging
from io import BytesIO
from typing import Optional

import qrcode
from qrcode import constants
from PIL import Image
from sqlalchemy.orm import Session

from ev_charging.accounts.service import AccountDirectory
from ev_charging.clock import Clock, SystemClock
from ev_charging.exceptions import ValidationFailure, NotFound, Conflict
from ev_charging.models import Booking
from ev_charging.reservations.schemas import BookingStatus
from ev_charging.reservations.service import ReservationService
from ev_charging.scans.schemas import ScanPayload, ScanTokenResponse, ScanResult
from ev_charging.scans.token import build_scan_payload, encode_scan_token, decode_scan_token
from ev_charging.stations.service import StationService

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    BookingStatus.PENDING.value: "Booking is awaiting confirmation",
    BookingStatus.APPROVED.value: "Booking is confirmed and ready for check-in",
    BookingStatus.IN_PROGRESS.value: "Charging session is already active",
    BookingStatus.CANCELLED.value: "Booking has been cancelled",
    BookingStatus.COMPLETED.value: "Booking has already been completed",
}
INVALID_STATUSES = (BookingStatus.CANCELLED.value, BookingStatus.COMPLETED.value)

class ScanService:
    """Scan token issuance and verification"""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or SystemClock()
        self.accounts = AccountDirectory(db)

    def issue_scan_token(self, booking_id: str) -> ScanTokenResponse:
        """Generate a fresh token for a booking and store it on the booking"""
        booking = self.get_booking(booking_id)
        station = StationService.get_station(self.db, booking.station_id, active_only=False)
        owner = self.accounts.get_owner_by_id(booking.user_id)
        if owner is None:
            raise NotFound(f"EV owner {booking.user_id} not found")

        now = self.clock.now()
        payload = build_scan_payload(booking, station, owner, now)
        token = encode_scan_token(payload, now)

        booking.qr_code = token
        booking.updated_at = now
        if booking.reservation is not None:
            booking.reservation.qr_code = token
        self.db.commit()

        logger.info("Issued scan token for booking %s", booking.id)
        return ScanTokenResponse(token=token, payload=payload)

    def scan(self, token: str) -> ScanResult:
        """Resolve a token to its booking and report whether it can be used"""
        payload, booking = self._resolve(token)

        is_valid = booking.status not in INVALID_STATUSES
        message = STATUS_MESSAGES.get(booking.status, "Scan token is valid")

        return ScanResult(
            is_valid=is_valid,
            message=message,
            booking_id=booking.id,
            status=booking.status,
            payload=payload
        )

    def check_in(self, token: str) -> Booking:
        """Start the charging session for the booking behind a token"""
        _, booking = self._resolve(token)

        if booking.status != BookingStatus.APPROVED.value:
            logger.warning("Check-in refused for booking %s in status %s", booking.id, booking.status)
            raise Conflict("Booking is not ready for check-in")

        return ReservationService(self.db, clock=self.clock).begin_session(booking)

    def get_booking_token(self, booking_id: str) -> str:
        booking = self.get_booking(booking_id)
        if not booking.qr_code:
            raise NotFound(f"No scan token has been issued for booking {booking_id}")
        return booking.qr_code

    def render_scan_token_png(self, token: str, size: int = 300, border: int = 4) -> bytes:
        """Render a token as a PNG QR code"""
        decode_scan_token(token)

        qr = qrcode.QRCode(
            version=1,
            error_correction=constants.ERROR_CORRECT_M,
            box_size=10,
            border=border,
        )
        qr.add_data(token)
        qr.make(fit=True)

        qr_image = qr.make_image(fill_color="black", back_color="white")
        qr_image = qr_image.resize((size, size), Image.LANCZOS)

        buffer = BytesIO()
        qr_image.save(buffer, format="PNG")
        return buffer.getvalue()

    def _resolve(self, token: str):
        payload: ScanPayload = decode_scan_token(token)
        booking = self.get_booking(payload.booking_id)

        if booking.qr_code != token:
            raise ValidationFailure("Scan token does not match current booking record")

        return payload, booking

    def get_booking(self, booking_id: str) -> Booking:
        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        if booking is None:
            raise NotFound(f"Booking {booking_id} not found")
        return booking
