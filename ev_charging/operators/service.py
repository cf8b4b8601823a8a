import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ev_charging.accounts.service import AccountDirectory
from ev_charging.auth.schemas import Role
from ev_charging.clock import Clock, SystemClock, to_utc_naive
from ev_charging.exceptions import NotFound, Conflict, Forbidden
from ev_charging.models import Operator, Booking
from ev_charging.operators import availability
from ev_charging.operators.schemas import OperatorCreate, OperatorUpdate
from ev_charging.reservations.schemas import BookingStatus, BookingSession, RELEASED_BOOKING_STATUSES
from ev_charging.reservations.service import ReservationService
from ev_charging.stations.service import StationService

logger = logging.getLogger(__name__)

class OperatorService:
    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or SystemClock()
        self.accounts = AccountDirectory(db)

    # Profile management
    def create_operator(self, request: OperatorCreate) -> Operator:
        """Create the operator profile for an existing staff account"""
        user = self.accounts.get_user_by_id(request.user_id)
        if user is None:
            raise NotFound(f"User {request.user_id} not found")

        station = StationService.get_station(self.db, request.station_id, active_only=False)

        if self.get_operator_by_user(user.id) is not None:
            raise Conflict("An operator profile already exists for this user")

        now = self.clock.now()
        phone = request.phone if request.phone is not None else user.phone
        operator = Operator(
            user_id=user.id,
            station_id=station.id,
            name=user.name,
            email=user.email,
            phone=phone,
            is_active=True,
            created_at=now,
            updated_at=now
        )

        user.role = Role.STATION_OPERATOR.value
        user.station_id = station.id
        user.phone = phone

        try:
            self.db.add(operator)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise Conflict("An operator profile already exists for this user")

        self.db.refresh(operator)
        logger.info("Created operator %s for user %s at station %s", operator.id, user.id, station.id)
        return operator

    def update_operator(self, operator_id: str, request: OperatorUpdate) -> Operator:
        operator = self.get_operator(operator_id)
        changes = request.model_dump(exclude_unset=True, exclude_none=True)

        if "station_id" in changes:
            station = StationService.get_station(self.db, changes["station_id"], active_only=False)
            operator.station_id = station.id

        user = self.accounts.get_user_by_id(operator.user_id)
        for field in ("name", "email", "phone"):
            if field in changes:
                setattr(operator, field, changes[field])
                # Keep the account in step with the profile
                if user is not None:
                    setattr(user, field, changes[field])
        if user is not None and "station_id" in changes:
            user.station_id = operator.station_id

        operator.updated_at = self.clock.now()

        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise Conflict("Email is already used by another account")

        self.db.refresh(operator)
        logger.info("Updated operator %s: %s", operator.id, sorted(changes))
        return operator

    def deactivate_operator(self, operator_id: str) -> Operator:
        operator = self.get_operator(operator_id)
        if not operator.is_active:
            raise Conflict("Operator is already inactive")

        now = self.clock.now()
        upcoming = self.db.query(Booking).filter(
            Booking.operator_id == operator.id,
            Booking.reservation_datetime > now,
            Booking.status.notin_(RELEASED_BOOKING_STATUSES)
        ).count()
        if upcoming:
            raise Conflict(f"Operator has {upcoming} upcoming bookings and cannot be deactivated")

        operator.is_active = False
        operator.updated_at = now
        self.db.commit()
        self.db.refresh(operator)

        logger.info("Deactivated operator %s", operator.id)
        return operator

    def get_operator(self, operator_id: str) -> Operator:
        operator = self.db.query(Operator).filter(Operator.id == operator_id).first()
        if operator is None:
            raise NotFound(f"Operator {operator_id} not found")
        return operator

    def get_operator_by_user(self, user_id: str) -> Optional[Operator]:
        return self.db.query(Operator).filter(Operator.user_id == user_id).first()

    def list_operators(self) -> List[Operator]:
        return self.db.query(Operator).order_by(Operator.created_at, Operator.id).all()

    def list_operators_by_station(self, station_id: str) -> List[Operator]:
        return self.db.query(Operator).filter(
            Operator.station_id == station_id
        ).order_by(Operator.created_at, Operator.id).all()

    # Assignment
    def find_available_operator(self, station_id: str, instant: datetime) -> Optional[Operator]:
        """First free active operator at the station for the instant, or None"""
        return availability.find_available_operator(self.db, station_id, to_utc_naive(instant))

    def get_assigned_sessions(
        self,
        operator_user_id: str,
        status: Optional[BookingStatus] = None
    ) -> List[BookingSession]:
        operator = self.get_operator_by_user(operator_user_id)
        if operator is None or not operator.is_active:
            return []

        query = self.db.query(Booking).filter(Booking.operator_id == operator.id)
        if status is not None:
            query = query.filter(Booking.status == BookingStatus(status).value)

        bookings = query.order_by(Booking.reservation_datetime.desc()).all()
        return [ReservationService.to_session(booking) for booking in bookings]

    # Session completion
    def complete_session(
        self,
        booking_id: str,
        energy_consumed_kwh: float,
        session_notes: Optional[str],
        caller_user_id: str,
        caller_is_admin: bool = False
    ) -> Booking:
        """Close an in-progress session; only the assigned operator or an admin may do this"""
        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        if booking is None:
            raise NotFound(f"Booking {booking_id} not found")

        if booking.status != BookingStatus.IN_PROGRESS.value:
            raise Conflict("Charging session is not in progress")

        if not caller_is_admin:
            operator = self.get_operator_by_user(caller_user_id)
            if operator is None or not operator.is_active or operator.id != booking.operator_id:
                logger.warning("User %s tried to complete booking %s", caller_user_id, booking.id)
                raise Forbidden("Only the assigned operator can complete this session")

        return ReservationService(self.db, clock=self.clock).finish_session(
            booking, energy_consumed_kwh, session_notes
        )
