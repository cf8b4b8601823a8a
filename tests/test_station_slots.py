import unittest
from datetime import date, datetime, timedelta

from ev_charging.exceptions import NotFound
from ev_charging.models import StationSchedule
from ev_charging.reservations.schemas import ReservationCreate
from ev_charging.reservations.service import ReservationService
from ev_charging.stations.service import StationService
from tests.base import DatabaseTestCase, WEEKDAYS, local_instant

TUESDAY = date(2026, 3, 3)
SUNDAY = date(2026, 3, 8)


class TestStationSlots(DatabaseTestCase):

    def setUp(self):
        super().setUp()
        self.station = self.add_station(total_slots=3, open_days=WEEKDAYS[:6])
        self.owner = self.add_owner()
        self.add_operator(self.station)

    def slots(self, day=TUESDAY):
        return StationService.get_station_slots(self.db, self.station.id, day, clock=self.clock)

    def test_fixed_hourly_slots_skip_lunch(self):
        slots = self.slots()

        self.assertEqual(len(slots), 8)
        # 09:00 Colombo is 03:30 UTC
        self.assertEqual(slots[0].start_time, datetime(2026, 3, 3, 3, 30))
        self.assertEqual(slots[0].end_time, datetime(2026, 3, 3, 4, 30))
        self.assertEqual(slots[3].start_time, local_instant(days=1, hour=13))
        self.assertEqual(slots[-1].start_time, local_instant(days=1, hour=17))
        self.assertTrue(all(slot.available_slots == 3 and slot.is_available for slot in slots))

    def test_bookings_reduce_capacity(self):
        start = local_instant(days=1, hour=10)
        reservations = ReservationService(self.db, clock=self.clock)
        reservation = reservations.create_reservation(ReservationCreate(
            user_id=self.owner.id, charging_station_id=self.station.id,
            start_time=start, end_time=start + timedelta(hours=1)
        ))

        self.assertEqual(self.slots()[1].available_slots, 2)

        reservations.cancel_reservation(reservation.id)
        self.assertEqual(self.slots()[1].available_slots, 3)

    def test_past_slots_are_unavailable(self):
        self.clock.set(local_instant(days=0, hour=10, minute=30))
        slots = self.slots(day=date(2026, 3, 2))

        self.assertFalse(slots[0].is_available)
        self.assertFalse(slots[1].is_available)
        self.assertTrue(slots[2].is_available)

    def test_closed_day_has_no_slots(self):
        self.assertEqual(self.slots(day=SUNDAY), [])

    def test_missing_schedule_has_no_slots(self):
        self.db.query(StationSchedule).filter(StationSchedule.station_id == self.station.id).delete()
        self.db.commit()
        self.assertEqual(self.slots(), [])

    def test_inactive_station_is_not_found(self):
        self.station.is_active = False
        self.db.commit()
        with self.assertRaises(NotFound):
            self.slots()

    def test_unknown_station_is_not_found(self):
        with self.assertRaises(NotFound):
            StationService.get_station_slots(self.db, "missing", TUESDAY, clock=self.clock)


if __name__ == "__main__":
    unittest.main()
