#!/usr/bin/env python3

from datetime import datetime, timedelta, timezone

from ev_charging.database import Base, SessionLocal, engine
from ev_charging.models import (
    User, EVOwner, Station, StationSchedule, Operator, Reservation, Booking
)

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

def create_seed_data():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        print("🚀 Creating seed data for EV Charging Reservation System...")

        # Clear existing data (in reverse dependency order)
        print("Clearing existing data...")
        db.query(Reservation).delete()
        db.query(Booking).delete()
        db.query(Operator).delete()
        db.query(StationSchedule).delete()
        db.query(User).delete()
        db.query(EVOwner).delete()
        db.query(Station).delete()

        # 1. Create Stations
        print("Creating charging stations...")
        stations = [
            Station(name="Colombo Fort Charging Hub", address="Olcott Mawatha, Colombo 01",
                    latitude=6.9344, longitude=79.8428, type="DC", total_slots=4, available_slots=4),
            Station(name="Kandy City Centre", address="Dalada Veediya, Kandy",
                    latitude=7.2936, longitude=80.6413, type="AC", total_slots=3, available_slots=3),
            Station(name="Galle Face Green", address="Galle Road, Colombo 03",
                    latitude=6.9271, longitude=79.8450, type="AC", total_slots=2, available_slots=2),
            Station(name="Negombo Beach Road", address="Lewis Place, Negombo",
                    latitude=7.2144, longitude=79.8378, type="DC", total_slots=2, available_slots=2,
                    is_active=False),
        ]
        db.add_all(stations)
        db.flush()

        # 2. Create Weekly Schedules (Sundays closed except at the hub)
        print("Creating station schedules...")
        schedules = []
        for index, station in enumerate(stations):
            for day in WEEKDAYS:
                schedules.append(StationSchedule(
                    station_id=station.id,
                    day_of_week=day,
                    is_open=day != "Sunday" or index == 0,
                    open_time="08:00",
                    close_time="20:00"
                ))
        db.add_all(schedules)

        # 3. Create Staff Accounts
        print("Creating staff accounts...")
        staff = [
            User(name="System Admin", email="admin@evcharge.lk", nic="198012345678", role="Admin"),
            User(name="Back Office", email="backoffice@evcharge.lk", nic="198512345678", role="Backoffice"),
            User(name="Nimal Perera", email="nimal@evcharge.lk", nic="199001234567", role="StationOperator",
                 phone="0771234567"),
            User(name="Kamala Silva", email="kamala@evcharge.lk", nic="199101234567", role="StationOperator",
                 phone="0772345678"),
            User(name="Sunil Fernando", email="sunil@evcharge.lk", nic="199201234567", role="StationOperator",
                 phone="0773456789"),
        ]
        db.add_all(staff)
        db.flush()

        # 4. Create Operator Profiles
        print("Creating operator profiles...")
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        assignments = [(staff[2], stations[0]), (staff[3], stations[0]), (staff[4], stations[1])]
        operators = []
        for offset, (user, station) in enumerate(assignments):
            user.station_id = station.id
            operators.append(Operator(
                user_id=user.id,
                station_id=station.id,
                name=user.name,
                email=user.email,
                phone=user.phone,
                created_at=now + timedelta(seconds=offset),
                updated_at=now + timedelta(seconds=offset)
            ))
        db.add_all(operators)

        # 5. Create EV Owners
        print("Creating EV owners...")
        owners = [
            EVOwner(name="Ashan Jayasuriya", email="ashan@example.com", nic="200012345678",
                    phone="0711111111", vehicle_type="Nissan Leaf"),
            EVOwner(name="Dilini Wickramasinghe", email="dilini@example.com", nic="199876543V",
                    phone="0712222222", vehicle_type="BYD Atto 3"),
            EVOwner(name="Ruwan Bandara", email="ruwan@example.com", nic="199512398765",
                    phone="0713333333", vehicle_type="MG ZS EV", is_active=False),
        ]
        db.add_all(owners)

        # Commit all changes
        db.commit()
        print("✅ Successfully created seed data for EV Charging Reservation System!")
        print(f"Created:")
        print(f"  - {len(stations)} stations")
        print(f"  - {len(schedules)} schedule entries")
        print(f"  - {len(staff)} staff accounts")
        print(f"  - {len(operators)} operator profiles")
        print(f"  - {len(owners)} EV owners")

    except Exception as e:
        print(f"❌ Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == "__main__":
    create_seed_data()
