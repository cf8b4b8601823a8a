import uuid

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, ForeignKey, Float, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ev_charging.database import Base

# Rows in these states no longer hold a station window or an operator slot
ACTIVE_ROW_CLAUSE = "status NOT IN ('Cancelled', 'Completed')"

def generate_id() -> str:
    return str(uuid.uuid4())

# ================================
# Accounts
# ================================
class User(Base):
    """Back-office account: Admin, Backoffice or StationOperator"""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    nic = Column(String(20), index=True)
    role = Column(String(50), nullable=False, default="StationOperator", index=True)
    is_active = Column(Boolean, default=True)
    phone = Column(String(30), default="")
    station_id = Column(String(36), ForeignKey("stations.id"))
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    operator_profile = relationship("Operator", back_populates="user", uselist=False)

class EVOwner(Base):
    __tablename__ = "ev_owners"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    nic = Column(String(20), unique=True, nullable=False, index=True)
    is_active = Column(Boolean, default=True, index=True)
    phone = Column(String(30), default="")
    vehicle_type = Column(String(50), default="")
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    reservations = relationship("Reservation", back_populates="owner")
    bookings = relationship("Booking", back_populates="owner")

# ================================
# Stations & Schedules
# ================================
class Station(Base):
    __tablename__ = "stations"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False, index=True)
    address = Column(String(500), default="")
    latitude = Column(Float)
    longitude = Column(Float)
    type = Column(String(10), default="AC")
    total_slots = Column(Integer, nullable=False, default=1)
    available_slots = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    schedule = relationship("StationSchedule", back_populates="station", cascade="all, delete-orphan")
    operators = relationship("Operator", back_populates="station")

class StationSchedule(Base):
    __tablename__ = "station_schedules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    station_id = Column(String(36), ForeignKey("stations.id"), nullable=False, index=True)
    day_of_week = Column(String(10), nullable=False)
    is_open = Column(Boolean, default=True)
    open_time = Column(String(5), default="08:00")
    close_time = Column(String(5), default="20:00")

    # Relationships
    station = relationship("Station", back_populates="schedule")

# ================================
# Operators
# ================================
class Operator(Base):
    """Station-scoped assignable worker, one per account"""
    __tablename__ = "operators"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id"), unique=True, nullable=False)
    station_id = Column(String(36), ForeignKey("stations.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(30), default="")
    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="operator_profile")
    station = relationship("Station", back_populates="operators")

# ================================
# Reservations & Bookings
# ================================
class Reservation(Base):
    """Owner-facing booking intent, paired one-to-one with a Booking"""
    __tablename__ = "reservations"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("ev_owners.id"), nullable=False, index=True)
    charging_station_id = Column(String(36), ForeignKey("stations.id"), nullable=False, index=True)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    status = Column(String(20), nullable=False, default="Pending", index=True)
    qr_code = Column(Text)
    operator_id = Column(String(36), ForeignKey("operators.id"))
    operator_user_id = Column(String(36))
    booking_id = Column(String(36), ForeignKey("bookings.id"), index=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime)
    notes = Column(Text)

    # Relationships
    owner = relationship("EVOwner", back_populates="reservations")
    booking = relationship("Booking", back_populates="reservation")

    __table_args__ = (
        Index(
            "uq_reservations_station_start_active",
            "charging_station_id", "start_time",
            unique=True,
            sqlite_where=text(ACTIVE_ROW_CLAUSE),
            postgresql_where=text(ACTIVE_ROW_CLAUSE)
        ),
    )

class Booking(Base):
    """Operator-facing, day-of-session record"""
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("ev_owners.id"), nullable=False, index=True)
    station_id = Column(String(36), ForeignKey("stations.id"), nullable=False, index=True)
    reservation_datetime = Column(DateTime, nullable=False, index=True)
    status = Column(String(20), nullable=False, default="Pending", index=True)
    operator_id = Column(String(36), ForeignKey("operators.id"), index=True)
    check_in_time = Column(DateTime)
    check_out_time = Column(DateTime)
    energy_consumed_kwh = Column(Float)
    session_duration_minutes = Column(Integer)
    session_notes = Column(Text)
    qr_code = Column(Text)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    owner = relationship("EVOwner", back_populates="bookings")
    reservation = relationship("Reservation", back_populates="booking", uselist=False)

    __table_args__ = (
        Index(
            "uq_bookings_operator_slot_active",
            "operator_id", "reservation_datetime",
            unique=True,
            sqlite_where=text(ACTIVE_ROW_CLAUSE),
            postgresql_where=text(ACTIVE_ROW_CLAUSE)
        ),
    )
