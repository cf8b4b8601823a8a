import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ev_charging.accounts.service import AccountDirectory
from ev_charging.clock import Clock, SystemClock, to_local, to_utc_naive
from ev_charging.config import settings
from ev_charging.exceptions import ValidationFailure, NotFound, Conflict, ConsistencyFailure
from ev_charging.locks import station_locks, station_key
from ev_charging.models import Reservation, Booking, EVOwner
from ev_charging.operators.availability import (
    find_available_operator, operator_is_busy, describe_working_hours
)
from ev_charging.reservations.schemas import (
    ReservationCreate, ReservationUpdate, ReservationStatus, BookingStatus, BookingSession,
    TERMINAL_RESERVATION_STATUSES, map_reservation_status
)
from ev_charging.reservations.validation import has_conflict
from ev_charging.scans.token import build_scan_payload, encode_scan_token
from ev_charging.stations.service import StationService

logger = logging.getLogger(__name__)

MAX_SESSION_ENERGY_KWH = 1000
MAX_SESSION_NOTES_LENGTH = 500

class ReservationService:
    """Reservation/booking lifecycle: the only writer of status on either record"""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or SystemClock()
        self.accounts = AccountDirectory(db)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_reservation(self, request: ReservationCreate) -> Reservation:
        """Validate, assign an operator and persist the reservation with its booking"""
        owner = self._resolve_owner(request.user_id, request.owner_nic)

        start = to_utc_naive(request.start_time)
        end = to_utc_naive(request.end_time)
        now = self.clock.now()

        if end <= start:
            raise ValidationFailure("End time must be after start time")
        if start < now:
            raise ValidationFailure("Reservation start time cannot be in the past")
        self._check_advance_limit(start, now)

        station = StationService.get_station(self.db, request.charging_station_id)

        with station_locks.hold(station_key(station.id)):
            if has_conflict(self.db, station.id, start, end):
                logger.warning("Rejected overlapping reservation at station %s for %s", station.id, start)
                raise Conflict("The requested time slot overlaps an existing reservation at this station")

            operator = find_available_operator(self.db, station.id, start)
            if operator is None:
                local = to_local(start)
                raise Conflict(
                    f"No available operator at {local:%Y-%m-%d %H:%M} local time. "
                    f"Operators work {describe_working_hours()}"
                )

            now = self.clock.now()
            booking = Booking(
                user_id=owner.id,
                station_id=station.id,
                reservation_datetime=start,
                status=BookingStatus.APPROVED.value,
                operator_id=operator.id,
                created_at=now,
                updated_at=now
            )

            try:
                self.db.add(booking)
                self.db.flush()

                reservation = Reservation(
                    user_id=owner.id,
                    charging_station_id=station.id,
                    start_time=start,
                    end_time=end,
                    status=ReservationStatus.CONFIRMED.value,
                    operator_id=operator.id,
                    operator_user_id=operator.user_id,
                    booking_id=booking.id,
                    created_at=now,
                    updated_at=now,
                    notes=request.notes
                )
                self.db.add(reservation)
                self.db.flush()

                self._verify_linkage(reservation)
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                logger.warning("Store rejected duplicate slot at station %s for %s", station.id, start)
                raise Conflict("The requested time slot was taken by another reservation")
            except ConsistencyFailure:
                self.db.rollback()
                raise

        self.db.refresh(reservation)
        logger.info(
            "Created reservation %s (booking %s) for owner %s at station %s, operator %s",
            reservation.id, booking.id, owner.id, station.id, operator.id
        )
        return reservation

    # ------------------------------------------------------------------
    # Modification
    # ------------------------------------------------------------------

    def update_reservation(
        self,
        reservation_id: str,
        patch: ReservationUpdate,
        admin_override: bool = False
    ) -> Reservation:
        """Apply a partial update and mirror it onto the paired booking"""
        reservation = self.get_reservation(reservation_id)
        now = self.clock.now()

        if not admin_override:
            self._ensure_modifiable(reservation, now, "modified")

        changes = patch.model_dump(exclude_unset=True)
        booking = self._paired_booking(reservation)

        with station_locks.hold(station_key(reservation.charging_station_id)):
            new_start = reservation.start_time
            new_end = reservation.end_time
            if changes.get("start_time") is not None:
                new_start = to_utc_naive(changes["start_time"])
            if changes.get("end_time") is not None:
                new_end = to_utc_naive(changes["end_time"])

            new_status = changes.get("status")
            if new_status is not None:
                new_status = ReservationStatus(new_status).value

            window_moved = new_start != reservation.start_time or new_end != reservation.end_time
            revived = (
                reservation.status in TERMINAL_RESERVATION_STATUSES
                and new_status is not None
                and new_status not in TERMINAL_RESERVATION_STATUSES
            )

            if window_moved:
                if new_end <= new_start:
                    raise ValidationFailure("End time must be after start time")
                self._check_advance_limit(new_start, now)

            if window_moved or revived:
                if has_conflict(
                    self.db, reservation.charging_station_id, new_start, new_end,
                    exclude_reservation_id=reservation.id
                ):
                    raise Conflict("The requested time slot overlaps an existing reservation at this station")

                if reservation.operator_id and operator_is_busy(
                    self.db, reservation.operator_id, new_start,
                    exclude_booking_id=booking.id if booking else None
                ):
                    raise Conflict("The assigned operator already has a booking at the new start time")

            reservation.start_time = new_start
            reservation.end_time = new_end

            if "notes" in changes:
                reservation.notes = changes["notes"]
            if new_status is not None:
                reservation.status = new_status
            reservation.updated_at = now

            if booking is not None:
                booking.reservation_datetime = reservation.start_time
                if new_status is not None:
                    booking.status = map_reservation_status(reservation.status).value
                booking.updated_at = now

            # token snapshot must see the mirrored booking
            if new_status == ReservationStatus.CONFIRMED.value and (not reservation.qr_code or window_moved):
                self._attach_scan_token(reservation, booking, now)

            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                raise Conflict("The requested time slot was taken by another reservation")

        self.db.refresh(reservation)
        logger.info("Updated reservation %s: %s", reservation.id, sorted(changes))
        return reservation

    def cancel_reservation(self, reservation_id: str, admin_override: bool = False) -> Reservation:
        """Cancel a reservation and its booking"""
        reservation = self.get_reservation(reservation_id)
        now = self.clock.now()

        if reservation.status in TERMINAL_RESERVATION_STATUSES:
            raise Conflict(f"Reservation is already {reservation.status}")
        if not admin_override:
            self._ensure_modifiable(reservation, now, "cancelled")

        reservation.status = ReservationStatus.CANCELLED.value
        reservation.updated_at = now

        booking = self._paired_booking(reservation)
        if booking is not None:
            booking.status = BookingStatus.CANCELLED.value
            booking.updated_at = now

        self.db.commit()
        self.db.refresh(reservation)

        logger.info("Cancelled reservation %s (admin override: %s)", reservation.id, admin_override)
        return reservation

    def admin_cancel_reservation(self, reservation_id: str) -> Reservation:
        return self.cancel_reservation(reservation_id, admin_override=True)

    def delete_reservation(self, reservation_id: str) -> None:
        """Hard delete of the reservation and its booking"""
        reservation = self.get_reservation(reservation_id)
        booking = self._paired_booking(reservation)

        if booking is not None:
            self.db.delete(booking)
        self.db.delete(reservation)
        self.db.commit()

        logger.info("Deleted reservation %s", reservation_id)

    # ------------------------------------------------------------------
    # Session transitions
    # ------------------------------------------------------------------

    def begin_session(self, booking: Booking) -> Booking:
        """Check-in: booking InProgress, reservation Active"""
        now = self.clock.now()

        booking.status = BookingStatus.IN_PROGRESS.value
        booking.check_in_time = now
        booking.updated_at = now

        reservation = booking.reservation
        if reservation is not None:
            reservation.status = ReservationStatus.ACTIVE.value
            reservation.updated_at = now

        self.db.commit()
        self.db.refresh(booking)

        logger.info("Checked in booking %s at %s", booking.id, now)
        return booking

    def finish_session(
        self,
        booking: Booking,
        energy_consumed_kwh: float,
        session_notes: Optional[str] = None
    ) -> Booking:
        """Close a session and record its energy and duration"""
        if energy_consumed_kwh < 0 or energy_consumed_kwh > MAX_SESSION_ENERGY_KWH:
            raise ValidationFailure(f"Energy consumed must be between 0 and {MAX_SESSION_ENERGY_KWH} kWh")
        if session_notes is not None and len(session_notes) > MAX_SESSION_NOTES_LENGTH:
            raise ValidationFailure(f"Session notes cannot exceed {MAX_SESSION_NOTES_LENGTH} characters")

        now = self.clock.now()

        booking.check_out_time = now
        booking.energy_consumed_kwh = energy_consumed_kwh
        booking.session_notes = session_notes
        if booking.check_in_time is not None:
            elapsed = (now - booking.check_in_time).total_seconds()
            booking.session_duration_minutes = max(0, int(elapsed // 60))
        booking.status = BookingStatus.COMPLETED.value
        booking.updated_at = now

        reservation = booking.reservation
        if reservation is not None:
            reservation.status = ReservationStatus.COMPLETED.value
            reservation.updated_at = now

        self.db.commit()
        self.db.refresh(booking)

        logger.info(
            "Completed booking %s: %.2f kWh over %s minutes",
            booking.id, energy_consumed_kwh, booking.session_duration_minutes
        )
        return booking

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_reservation(self, reservation_id: str) -> Reservation:
        """Get a reservation by its own ID or by its paired booking ID"""
        reservation = self._visible().filter(
            or_(Reservation.id == reservation_id, Reservation.booking_id == reservation_id)
        ).first()
        if reservation is None:
            raise NotFound(f"Reservation {reservation_id} not found")
        return reservation

    def list_reservations(self) -> List[Reservation]:
        return self._visible().order_by(Reservation.created_at.desc()).all()

    def get_reservation_history(self, nic: str) -> List[Reservation]:
        owner = self.accounts.get_owner_by_nic(nic)
        if owner is None:
            raise NotFound(f"No EV owner registered with NIC {nic}")

        return self._visible().filter(
            Reservation.user_id == owner.id
        ).order_by(Reservation.created_at.desc()).all()

    def get_user_completed_bookings(self, user_id: str) -> List[BookingSession]:
        return self._sessions_with_status(user_id, BookingStatus.COMPLETED)

    def get_user_pending_bookings(self, user_id: str) -> List[BookingSession]:
        """Upcoming bookings that are confirmed and waiting for check-in"""
        return self._sessions_with_status(user_id, BookingStatus.APPROVED)

    @staticmethod
    def to_session(booking: Booking) -> BookingSession:
        if booking.check_out_time is not None:
            end_time = booking.check_out_time
        else:
            end_time = booking.reservation_datetime + timedelta(hours=settings.SESSION_DEFAULT_DURATION_HOURS)

        return BookingSession(
            booking_id=booking.id,
            reservation_id=booking.reservation.id if booking.reservation else None,
            station_id=booking.station_id,
            operator_id=booking.operator_id,
            status=booking.status,
            start_time=booking.reservation_datetime,
            end_time=end_time,
            check_in_time=booking.check_in_time,
            check_out_time=booking.check_out_time,
            energy_consumed_kwh=booking.energy_consumed_kwh,
            session_duration_minutes=booking.session_duration_minutes,
            session_notes=booking.session_notes
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _visible(self):
        # Half-linked rows are never returned
        return self.db.query(Reservation).filter(
            Reservation.operator_id.isnot(None),
            Reservation.booking_id.isnot(None)
        )

    def _sessions_with_status(self, user_id: str, status: BookingStatus) -> List[BookingSession]:
        bookings = self.db.query(Booking).filter(
            Booking.user_id == user_id,
            Booking.status == status.value
        ).order_by(Booking.reservation_datetime.desc()).all()
        return [self.to_session(booking) for booking in bookings]

    def _paired_booking(self, reservation: Reservation) -> Optional[Booking]:
        if not reservation.booking_id:
            return None
        return self.db.query(Booking).filter(Booking.id == reservation.booking_id).first()

    def _resolve_owner(self, user_id: Optional[str], owner_nic: Optional[str]) -> EVOwner:
        if not user_id and not owner_nic:
            raise ValidationFailure("Either an owner user id or an owner NIC is required")

        by_id = by_nic = None
        if user_id:
            by_id = self.accounts.get_owner_by_id(user_id)
            if by_id is None:
                raise NotFound(f"EV owner {user_id} not found")
        if owner_nic:
            by_nic = self.accounts.get_owner_by_nic(owner_nic)
            if by_nic is None:
                raise NotFound(f"No EV owner registered with NIC {owner_nic}")

        if by_id is not None and by_nic is not None and by_id.id != by_nic.id:
            raise ValidationFailure("Owner user id and NIC refer to different owners")

        owner = by_id or by_nic
        if not owner.is_active:
            raise ValidationFailure("EV owner account is deactivated")
        return owner

    def _check_advance_limit(self, start: datetime, now: datetime) -> None:
        limit = settings.MAX_ADVANCE_BOOKING_DAYS
        if start > now + timedelta(days=limit):
            raise ValidationFailure(f"Reservations can only be made up to {limit} days in advance")

    def _ensure_modifiable(self, reservation: Reservation, now: datetime, action: str) -> None:
        if reservation.status in TERMINAL_RESERVATION_STATUSES:
            raise Conflict(f"A {reservation.status.lower()} reservation cannot be {action}")

        cutoff = settings.MODIFICATION_CUTOFF_HOURS
        if now >= reservation.start_time - timedelta(hours=cutoff):
            logger.warning("Reservation %s is inside the %dh cutoff", reservation.id, cutoff)
            raise Conflict(f"Reservations can only be {action} at least {cutoff} hours before the start time")

    def _verify_linkage(self, reservation: Reservation) -> None:
        if not reservation.operator_id or not reservation.booking_id:
            logger.error(
                "Reservation %s written without operator (%s) or booking (%s)",
                reservation.id, reservation.operator_id, reservation.booking_id
            )
            raise ConsistencyFailure("Reservation was saved without an assigned operator or booking")

    def _attach_scan_token(self, reservation: Reservation, booking: Optional[Booking], now: datetime) -> None:
        if booking is None:
            return
        station = StationService.get_station(self.db, reservation.charging_station_id, active_only=False)
        owner = self.accounts.get_owner_by_id(reservation.user_id)
        if owner is None:
            raise NotFound(f"EV owner {reservation.user_id} not found")

        booking.status = map_reservation_status(reservation.status).value
        payload = build_scan_payload(booking, station, owner, now)
        token = encode_scan_token(payload, now)

        reservation.qr_code = token
        booking.qr_code = token
        logger.info("Issued scan token for reservation %s", reservation.id)
