import unittest
from datetime import time

from ev_charging.models import Booking
from ev_charging.operators.availability import is_within_working_hours, find_available_operator
from tests.base import DatabaseTestCase, local_instant


class TestWorkingHours(unittest.TestCase):

    def test_working_hours_bounds(self):
        self.assertTrue(is_within_working_hours(time(9, 0)))
        self.assertTrue(is_within_working_hours(time(11, 59)))
        self.assertTrue(is_within_working_hours(time(13, 0)))
        self.assertTrue(is_within_working_hours(time(17, 59)))

    def test_outside_working_hours(self):
        self.assertFalse(is_within_working_hours(time(8, 59)))
        self.assertFalse(is_within_working_hours(time(18, 0)))
        self.assertFalse(is_within_working_hours(time(22, 0)))

    def test_lunch_break(self):
        self.assertFalse(is_within_working_hours(time(12, 0)))
        self.assertFalse(is_within_working_hours(time(12, 30)))


class TestFindAvailableOperator(DatabaseTestCase):

    def setUp(self):
        super().setUp()
        self.station = self.add_station()
        self.owner = self.add_owner()
        self.operator_a = self.add_operator(self.station, name="Operator A", order=0)
        self.operator_b = self.add_operator(self.station, name="Operator B", order=1)

    def book(self, operator, instant, status="Approved"):
        booking = Booking(
            user_id=self.owner.id,
            station_id=self.station.id,
            reservation_datetime=instant,
            status=status,
            operator_id=operator.id
        )
        self.db.add(booking)
        self.db.commit()
        return booking

    def test_first_operator_in_creation_order_is_chosen(self):
        operator = find_available_operator(self.db, self.station.id, local_instant(hour=9))
        self.assertEqual(operator.id, self.operator_a.id)

    def test_busy_operator_is_skipped(self):
        instant = local_instant(hour=9)
        self.book(self.operator_a, instant)

        operator = find_available_operator(self.db, self.station.id, instant)
        self.assertEqual(operator.id, self.operator_b.id)

    def test_all_operators_busy_means_no_capacity(self):
        instant = local_instant(hour=9)
        self.book(self.operator_a, instant)
        self.book(self.operator_b, instant)

        self.assertIsNone(find_available_operator(self.db, self.station.id, instant))

    def test_finished_bookings_release_the_operator(self):
        instant = local_instant(hour=9)
        self.book(self.operator_a, instant, status="Completed")
        self.book(self.operator_b, instant, status="Cancelled")

        operator = find_available_operator(self.db, self.station.id, instant)
        self.assertEqual(operator.id, self.operator_a.id)

    def test_booking_at_a_different_instant_does_not_block(self):
        self.book(self.operator_a, local_instant(hour=10))

        operator = find_available_operator(self.db, self.station.id, local_instant(hour=9))
        self.assertEqual(operator.id, self.operator_a.id)

    def test_inactive_operator_is_never_chosen(self):
        self.operator_a.is_active = False
        self.db.commit()

        operator = find_available_operator(self.db, self.station.id, local_instant(hour=9))
        self.assertEqual(operator.id, self.operator_b.id)

    def test_operators_of_other_stations_are_ignored(self):
        other = self.add_station(name="Kandy City Centre")
        self.assertIsNone(find_available_operator(self.db, other.id, local_instant(hour=9)))

    def test_lunch_and_after_hours_return_none(self):
        self.assertIsNone(find_available_operator(self.db, self.station.id, local_instant(hour=12)))
        self.assertIsNone(find_available_operator(self.db, self.station.id, local_instant(hour=12, minute=45)))
        self.assertIsNone(find_available_operator(self.db, self.station.id, local_instant(hour=18)))
        self.assertIsNone(find_available_operator(self.db, self.station.id, local_instant(hour=8, minute=30)))

    def test_afternoon_after_lunch_is_accepted(self):
        operator = find_available_operator(self.db, self.station.id, local_instant(hour=13))
        self.assertEqual(operator.id, self.operator_a.id)


if __name__ == "__main__":
    unittest.main()
