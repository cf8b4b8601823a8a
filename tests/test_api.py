import unittest
from datetime import timedelta

from fastapi.testclient import TestClient

from ev_charging.auth.utils import create_access_token
from ev_charging.clock import get_clock
from ev_charging.database import get_db
from ev_charging.main import app
from tests.base import DatabaseTestCase, local_instant

API = "/api/v1"


class ApiTestCase(DatabaseTestCase):

    def setUp(self):
        super().setUp()

        def override_get_db():
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_clock] = lambda: self.clock
        self.client = TestClient(app)

        station = self.add_station(total_slots=3)
        owner = self.add_owner()
        other_owner = self.add_owner(name="Dilini", nic="199876543V")
        operator_a = self.add_operator(station, name="Operator A", order=0)
        operator_b = self.add_operator(station, name="Operator B", order=1)
        admin = self.add_staff(name="System Admin", role="Admin")

        self.station_id = station.id
        self.owner_id = owner.id
        self.operator_a_id = operator_a.id
        self.operator_a_user_id = operator_a.user_id

        self.owner_headers = self.headers(owner.id, "EVOwner", nic=owner.nic)
        self.other_owner_headers = self.headers(other_owner.id, "EVOwner", nic=other_owner.nic)
        self.operator_a_headers = self.headers(operator_a.user_id, "StationOperator")
        self.operator_b_headers = self.headers(operator_b.user_id, "StationOperator")
        self.admin_headers = self.headers(admin.id, "Admin")

    def tearDown(self):
        app.dependency_overrides.clear()
        super().tearDown()

    def headers(self, subject, role, nic=None):
        token = create_access_token({"sub": subject, "role": role, "nic": nic})
        return {"Authorization": f"Bearer {token}"}

    def reservation_body(self, days=1, hour=9, **kwargs):
        start = local_instant(days=days, hour=hour)
        body = {
            "charging_station_id": self.station_id,
            "start_time": start.isoformat(),
            "end_time": (start + timedelta(hours=1)).isoformat(),
        }
        body.update(kwargs)
        return body

    def create_reservation(self, headers=None, **kwargs):
        response = self.client.post(
            f"{API}/reservations/", json=self.reservation_body(**kwargs), headers=headers or self.owner_headers
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()


class TestReservationEndpoints(ApiTestCase):

    def test_requires_authentication(self):
        response = self.client.post(f"{API}/reservations/", json=self.reservation_body())
        self.assertEqual(response.status_code, 401)

    def test_owner_creates_reservation(self):
        reservation = self.create_reservation()
        self.assertEqual(reservation["status"], "Confirmed")
        self.assertEqual(reservation["user_id"], self.owner_id)
        self.assertEqual(reservation["operator_id"], self.operator_a_id)
        self.assertIsNotNone(reservation["booking_id"])

    def test_owner_cannot_book_for_someone_else(self):
        response = self.client.post(
            f"{API}/reservations/",
            json=self.reservation_body(user_id="someone-else"),
            headers=self.owner_headers
        )
        self.assertEqual(response.status_code, 403)

    def test_operators_cannot_create_reservations(self):
        response = self.client.post(
            f"{API}/reservations/", json=self.reservation_body(), headers=self.operator_a_headers
        )
        self.assertEqual(response.status_code, 403)

    def test_admin_books_by_owner_nic(self):
        reservation = self.create_reservation(headers=self.admin_headers, owner_nic="200012345678")
        self.assertEqual(reservation["user_id"], self.owner_id)

    def test_business_rejections(self):
        self.create_reservation()

        overlap = self.client.post(f"{API}/reservations/", json=self.reservation_body(), headers=self.owner_headers)
        self.assertEqual(overlap.status_code, 409)

        lunch = self.client.post(f"{API}/reservations/", json=self.reservation_body(hour=12), headers=self.owner_headers)
        self.assertEqual(lunch.status_code, 409)

        too_far = self.client.post(f"{API}/reservations/", json=self.reservation_body(days=8, hour=10), headers=self.owner_headers)
        self.assertEqual(too_far.status_code, 400)

    def test_reservation_visibility(self):
        reservation = self.create_reservation()
        url = f"{API}/reservations/{reservation['id']}"

        self.assertEqual(self.client.get(url, headers=self.owner_headers).status_code, 200)
        self.assertEqual(self.client.get(url, headers=self.operator_a_headers).status_code, 200)
        self.assertEqual(self.client.get(url, headers=self.admin_headers).status_code, 200)
        self.assertEqual(self.client.get(url, headers=self.other_owner_headers).status_code, 403)
        self.assertEqual(self.client.get(url, headers=self.operator_b_headers).status_code, 403)
        self.assertEqual(self.client.get(f"{API}/reservations/missing", headers=self.admin_headers).status_code, 404)

    def test_update_and_cancel_rules(self):
        reservation = self.create_reservation(days=1, hour=15)
        url = f"{API}/reservations/{reservation['id']}"

        updated = self.client.put(url, json={"notes": "Type 2 cable"}, headers=self.owner_headers)
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.json()["notes"], "Type 2 cable")

        override = self.client.put(f"{url}?admin_override=true", json={"notes": "x"}, headers=self.owner_headers)
        self.assertEqual(override.status_code, 403)

        self.clock.set(local_instant(days=1, hour=15) - timedelta(hours=11))
        late_cancel = self.client.post(f"{url}/cancel", headers=self.owner_headers)
        self.assertEqual(late_cancel.status_code, 409)

        forbidden = self.client.post(f"{url}/admin-cancel", headers=self.owner_headers)
        self.assertEqual(forbidden.status_code, 403)

        admin_cancel = self.client.post(f"{url}/admin-cancel", headers=self.admin_headers)
        self.assertEqual(admin_cancel.status_code, 200)
        self.assertEqual(admin_cancel.json()["status"], "Cancelled")

    def test_delete_is_admin_only(self):
        reservation = self.create_reservation()
        url = f"{API}/reservations/{reservation['id']}"

        self.assertEqual(self.client.delete(url, headers=self.owner_headers).status_code, 403)
        self.assertEqual(self.client.delete(url, headers=self.admin_headers).status_code, 204)
        self.assertEqual(self.client.get(url, headers=self.admin_headers).status_code, 404)

    def test_history_and_listing(self):
        self.create_reservation()

        own = self.client.get(f"{API}/reservations/history/200012345678", headers=self.owner_headers)
        self.assertEqual(own.status_code, 200)
        self.assertEqual(own.json()["total"], 1)

        other = self.client.get(f"{API}/reservations/history/200012345678", headers=self.other_owner_headers)
        self.assertEqual(other.status_code, 403)

        unknown = self.client.get(f"{API}/reservations/history/000000000V", headers=self.admin_headers)
        self.assertEqual(unknown.status_code, 404)

        listing = self.client.get(f"{API}/reservations/", headers=self.admin_headers)
        self.assertEqual(len(listing.json()), 1)
        self.assertEqual(self.client.get(f"{API}/reservations/", headers=self.owner_headers).status_code, 403)


class TestSessionFlow(ApiTestCase):

    def test_issue_scan_check_in_and_complete(self):
        reservation = self.create_reservation()
        booking_id = reservation["booking_id"]

        issued = self.client.post(f"{API}/scans/bookings/{booking_id}/token", headers=self.owner_headers)
        self.assertEqual(issued.status_code, 200)
        token = issued.json()["token"]

        denied = self.client.post(f"{API}/scans/bookings/{booking_id}/token", headers=self.other_owner_headers)
        self.assertEqual(denied.status_code, 403)

        image = self.client.get(f"{API}/scans/bookings/{booking_id}/qr.png", headers=self.owner_headers)
        self.assertEqual(image.status_code, 200)
        self.assertEqual(image.headers["content-type"], "image/png")

        scanned = self.client.post(f"{API}/scans/scan", json={"token": token}, headers=self.operator_a_headers)
        self.assertEqual(scanned.status_code, 200)
        self.assertTrue(scanned.json()["is_valid"])

        bad = self.client.post(f"{API}/scans/scan", json={"token": "QR_garbage"}, headers=self.operator_a_headers)
        self.assertEqual(bad.status_code, 400)

        pending = self.client.get(f"{API}/reservations/users/{self.owner_id}/pending", headers=self.owner_headers)
        self.assertEqual([s["booking_id"] for s in pending.json()], [booking_id])

        self.clock.set(local_instant(hour=9))
        checked_in = self.client.post(f"{API}/scans/check-in", json={"token": token}, headers=self.operator_a_headers)
        self.assertEqual(checked_in.status_code, 200)
        self.assertEqual(checked_in.json()["status"], "InProgress")

        sessions = self.client.get(f"{API}/operators/me/sessions?status=InProgress", headers=self.operator_a_headers)
        self.assertEqual([s["booking_id"] for s in sessions.json()], [booking_id])

        body = {"energy_consumed_kwh": 30.5, "session_notes": "Done"}
        wrong_operator = self.client.post(
            f"{API}/operators/sessions/{booking_id}/complete", json=body, headers=self.operator_b_headers
        )
        self.assertEqual(wrong_operator.status_code, 403)

        self.clock.advance(minutes=50)
        completed = self.client.post(
            f"{API}/operators/sessions/{booking_id}/complete", json=body, headers=self.operator_a_headers
        )
        self.assertEqual(completed.status_code, 200)
        self.assertEqual(completed.json()["status"], "Completed")
        self.assertEqual(completed.json()["session_duration_minutes"], 50)

        history = self.client.get(f"{API}/reservations/users/{self.owner_id}/completed", headers=self.owner_headers)
        self.assertEqual(len(history.json()), 1)

        reservation_now = self.client.get(f"{API}/reservations/{reservation['id']}", headers=self.owner_headers)
        self.assertEqual(reservation_now.json()["status"], "Completed")

    def test_complete_rejects_out_of_range_energy(self):
        reservation = self.create_reservation()
        response = self.client.post(
            f"{API}/operators/sessions/{reservation['booking_id']}/complete",
            json={"energy_consumed_kwh": 5000},
            headers=self.operator_a_headers
        )
        self.assertEqual(response.status_code, 422)


class TestOperatorAndStationEndpoints(ApiTestCase):

    def test_find_available_operator(self):
        response = self.client.get(
            f"{API}/operators/available",
            params={"station_id": self.station_id, "instant": local_instant(hour=9).isoformat()},
            headers=self.admin_headers
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["available"])
        self.assertEqual(response.json()["operator"]["id"], self.operator_a_id)

        lunch = self.client.get(
            f"{API}/operators/available",
            params={"station_id": self.station_id, "instant": local_instant(hour=12).isoformat()},
            headers=self.admin_headers
        )
        self.assertFalse(lunch.json()["available"])

    def test_operator_management(self):
        user = self.add_staff(name="Sunil Fernando", role="Backoffice")
        created = self.client.post(
            f"{API}/operators/",
            json={"user_id": user.id, "station_id": self.station_id},
            headers=self.admin_headers
        )
        self.assertEqual(created.status_code, 201)
        operator_id = created.json()["id"]

        duplicate = self.client.post(
            f"{API}/operators/",
            json={"user_id": user.id, "station_id": self.station_id},
            headers=self.admin_headers
        )
        self.assertEqual(duplicate.status_code, 409)

        renamed = self.client.put(f"{API}/operators/{operator_id}", json={"name": "Sunil F."}, headers=self.admin_headers)
        self.assertEqual(renamed.json()["name"], "Sunil F.")

        by_station = self.client.get(f"{API}/operators/station/{self.station_id}", headers=self.operator_a_headers)
        self.assertEqual(len(by_station.json()), 3)

        deactivated = self.client.post(f"{API}/operators/{operator_id}/deactivate", headers=self.admin_headers)
        self.assertFalse(deactivated.json()["is_active"])

        self.assertEqual(self.client.get(f"{API}/operators/", headers=self.owner_headers).status_code, 403)

    def test_station_slots(self):
        response = self.client.get(f"{API}/stations/{self.station_id}/slots", params={"date": "2026-03-03"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()["slots"]), 8)

        missing = self.client.get(f"{API}/stations/missing/slots", params={"date": "2026-03-03"})
        self.assertEqual(missing.status_code, 404)


if __name__ == "__main__":
    unittest.main()
