"""
Tests for the HTTP surface (api/routes/*).

Each test runs against a fresh SQLite file with get_session overridden.
"""

import unittest

from fastapi.testclient import TestClient

from clinic_scheduler.api.deps import get_session
from clinic_scheduler.core.events import AppointmentEvent, Channel, InMemoryBroker
from clinic_scheduler.core.security import create_access_token
from clinic_scheduler.main import app
from clinic_scheduler.models import AppointmentType, Location, User
from support import TempDatabase


class TestAppointmentsApi(unittest.TestCase):

    def setUp(self):
        self.db = TempDatabase()
        app.dependency_overrides[get_session] = self.db.get_session
        self.broker = InMemoryBroker()
        app.state.broker = self.broker
        self.events: list[AppointmentEvent] = []
        self.broker.subscribe(Channel.APPOINTMENTS, self.events.append)

        self.admin, self.desk, self.billing, self.provider, self.other_provider = self.db.seed(
            User(email="admin@example.com", name="Avery Admin", role="ADMIN"),
            User(email="desk@example.com", name="Jordan Front", role="FRONT_DESK"),
            User(email="billing@example.com", name="Morgan Billing", role="BILLING"),
            User(email="dr.p@example.com", name="Dr P", role="PHYSICIAN"),
            User(email="dr.q@example.com", name="Dr Q", role="PHYSICIAN"),
        )
        (self.room,) = self.db.seed(Location(name="Room A"))
        (self.checkup,) = self.db.seed(
            AppointmentType(name="Checkup", default_duration_min=30, color="#00aa00")
        )
        self.client = TestClient(app)

    def tearDown(self):
        self.client.close()
        app.dependency_overrides.clear()
        self.db.close()

    def _auth(self, user):
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    def _book(self, user, start, **extra):
        body = {
            "patient_id": 7,
            "provider_id": self.provider.id,
            "appointment_type_id": self.checkup.id,
            "start_at": start,
        }
        body.update(extra)
        return self.client.post("/api/v1/appointments", json=body, headers=self._auth(user))

    def test_health(self):
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})

    def test_requires_token(self):
        response = self.client.get("/api/v1/appointments")
        self.assertEqual(response.status_code, 401)

        response = self.client.get(
            "/api/v1/appointments", headers={"Authorization": "Bearer not-a-jwt"}
        )
        self.assertEqual(response.status_code, 401)

    def test_requires_permission(self):
        response = self._book(self.billing, "2030-01-07T09:00:00")
        self.assertEqual(response.status_code, 403)

    def test_book_resolves_end_and_publishes(self):
        response = self._book(self.desk, "2030-01-07T09:00:00")
        self.assertEqual(response.status_code, 201, response.text)
        data = response.json()
        self.assertEqual(data["end_at"], "2030-01-07T09:30:00")
        self.assertEqual(data["status"], "SCHEDULED")
        self.assertEqual(
            self.events, [AppointmentEvent(appointment_id=data["id"], action="created", status="SCHEDULED")]
        )

    def test_conflict_rejected_for_front_desk(self):
        self.assertEqual(self._book(self.desk, "2030-01-07T09:00:00").status_code, 201)
        response = self._book(self.desk, "2030-01-07T09:15:00")
        self.assertEqual(response.status_code, 409)
        self.assertIn("already booked", response.json()["detail"])
        self.assertEqual(len(self.events), 1)

    def test_admin_can_override(self):
        self.assertEqual(self._book(self.desk, "2030-01-07T09:00:00").status_code, 201)
        response = self._book(self.admin, "2030-01-07T09:15:00")
        self.assertEqual(response.status_code, 201)

    def test_touching_slot_books(self):
        self.assertEqual(self._book(self.desk, "2030-01-07T09:00:00").status_code, 201)
        self.assertEqual(self._book(self.desk, "2030-01-07T09:30:00").status_code, 201)

    def test_explicit_end_before_start_is_rejected(self):
        response = self._book(self.desk, "2030-01-07T10:00:00", end_at="2030-01-07T09:00:00")
        self.assertEqual(response.status_code, 400)

    def test_unknown_type_is_404_on_booking(self):
        response = self._book(self.desk, "2030-01-07T09:00:00", appointment_type_id=999)
        self.assertEqual(response.status_code, 404)

    def test_conflict_preview(self):
        self._book(self.desk, "2030-01-07T09:00:00", location_id=self.room.id)
        headers = self._auth(self.desk)

        response = self.client.post(
            "/api/v1/appointments/conflicts",
            json={
                "provider_id": self.other_provider.id,
                "appointment_type_id": 999,
                "start_at": "2030-01-07T09:10:00",
            },
            headers=headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {"end_at": "2030-01-07T09:40:00", "provider_conflict": False, "location_conflict": None},
        )

        response = self.client.post(
            "/api/v1/appointments/conflicts",
            json={
                "provider_id": self.other_provider.id,
                "location_id": self.room.id,
                "appointment_type_id": self.checkup.id,
                "start_at": "2030-01-07T09:10:00",
            },
            headers=headers,
        )
        self.assertTrue(response.json()["location_conflict"])

        response = self.client.post(
            "/api/v1/appointments/conflicts",
            json={
                "provider_id": self.provider.id,
                "appointment_type_id": self.checkup.id,
                "start_at": "2030-01-07T09:10:00",
                "end_at": "2030-01-07T09:00:00",
            },
            headers=headers,
        )
        self.assertEqual(response.status_code, 422)

    def test_reschedule_status_and_cancel(self):
        appointment_id = self._book(self.desk, "2030-01-07T09:00:00").json()["id"]
        headers = self._auth(self.desk)

        response = self.client.patch(
            f"/api/v1/appointments/{appointment_id}",
            json={"start_at": "2030-01-07T09:15:00"},
            headers=headers,
        )
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["end_at"], "2030-01-07T09:45:00")

        response = self.client.post(
            f"/api/v1/appointments/{appointment_id}/status",
            json={"status": "CHECKED_IN"},
            headers=headers,
        )
        self.assertEqual(response.json()["status"], "CHECKED_IN")

        response = self.client.post(f"/api/v1/appointments/{appointment_id}/cancel", headers=headers)
        self.assertEqual(response.json()["status"], "CANCELED")

        self.assertEqual([e.action for e in self.events], ["created", "updated", "status", "canceled"])

        response = self.client.get(f"/api/v1/appointments/{appointment_id}", headers=headers)
        self.assertEqual(response.json()["status"], "CANCELED")

    def test_unknown_status_rejected(self):
        appointment_id = self._book(self.desk, "2030-01-07T09:00:00").json()["id"]
        response = self.client.post(
            f"/api/v1/appointments/{appointment_id}/status",
            json={"status": "TELEPORTED"},
            headers=self._auth(self.desk),
        )
        self.assertEqual(response.status_code, 422)

    def test_missing_appointment(self):
        response = self.client.get("/api/v1/appointments/12345", headers=self._auth(self.desk))
        self.assertEqual(response.status_code, 404)

    def test_list_by_provider(self):
        self._book(self.desk, "2030-01-07T09:00:00")
        self._book(self.desk, "2030-01-07T09:00:00", provider_id=self.other_provider.id)
        response = self.client.get(
            "/api/v1/appointments",
            params={"provider_id": self.other_provider.id},
            headers=self._auth(self.desk),
        )
        self.assertEqual([a["provider_id"] for a in response.json()], [self.other_provider.id])


class TestSupportingApi(unittest.TestCase):
    """Appointment types, locations, audit and /me."""

    def setUp(self):
        self.db = TempDatabase()
        app.dependency_overrides[get_session] = self.db.get_session
        app.state.broker = InMemoryBroker()
        self.admin, self.desk, self.nurse = self.db.seed(
            User(email="admin@example.com", name="Avery Admin", role="ADMIN"),
            User(email="desk@example.com", name="Jordan Front", role="FRONT_DESK"),
            User(email="nurse@example.com", name="Riley Nurse", role="NURSE"),
        )
        self.db.seed(Location(name="Room B"), Location(name="Room A"), Location(name="Closed", is_active=False))
        self.client = TestClient(app)

    def tearDown(self):
        self.client.close()
        app.dependency_overrides.clear()
        self.db.close()

    def _auth(self, user):
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    def test_appointment_type_lifecycle(self):
        headers = self._auth(self.desk)
        response = self.client.post(
            "/api/v1/appointment-types",
            json={"name": "Consult", "default_duration_min": 45, "color": "#123456"},
            headers=headers,
        )
        self.assertEqual(response.status_code, 201, response.text)
        type_id = response.json()["id"]
        self.assertEqual(response.json()["buffer_before_min"], 0)

        response = self.client.patch(
            f"/api/v1/appointment-types/{type_id}",
            json={"default_duration_min": 50},
            headers=headers,
        )
        self.assertEqual(response.json()["default_duration_min"], 50)
        self.assertEqual(response.json()["name"], "Consult")

        response = self.client.get("/api/v1/appointment-types", headers=headers)
        self.assertEqual([t["name"] for t in response.json()], ["Consult"])

        response = self.client.patch(
            "/api/v1/appointment-types/999", json={"name": "x"}, headers=headers
        )
        self.assertEqual(response.status_code, 404)

    def test_appointment_type_validation_and_permission(self):
        response = self.client.post(
            "/api/v1/appointment-types",
            json={"name": "Blink", "default_duration_min": 1, "color": "#123456"},
            headers=self._auth(self.desk),
        )
        self.assertEqual(response.status_code, 422)

        response = self.client.get("/api/v1/appointment-types", headers=self._auth(self.nurse))
        self.assertEqual(response.status_code, 403)

    def test_locations_lists_active_by_name(self):
        response = self.client.get("/api/v1/locations", headers=self._auth(self.nurse))
        self.assertEqual([loc["name"] for loc in response.json()], ["Room A", "Room B"])

    def test_audit_requires_view_audit(self):
        self.client.post(
            "/api/v1/appointment-types",
            json={"name": "Consult", "default_duration_min": 45, "color": "#123456"},
            headers=self._auth(self.desk),
        )
        self.assertEqual(
            self.client.get("/api/v1/audit", headers=self._auth(self.desk)).status_code, 403
        )
        response = self.client.get(
            "/api/v1/audit", params={"entity_type": "AppointmentType"}, headers=self._auth(self.admin)
        )
        self.assertEqual(response.status_code, 200)
        page = response.json()
        self.assertEqual(page["page"], 1)
        self.assertEqual(len(page["items"]), 1)
        self.assertEqual(page["items"][0]["actor"], "Jordan Front")
        self.assertEqual(page["items"][0]["action"], "CREATE")

    def test_me_lists_permissions(self):
        response = self.client.get("/api/v1/me", headers=self._auth(self.desk))
        data = response.json()
        self.assertEqual(data["role"], "FRONT_DESK")
        self.assertIn("MANAGE_SCHEDULES", data["permissions"])
        self.assertNotIn("APPOINTMENT_OVERRIDE", data["permissions"])


class TestWaitlistApi(unittest.TestCase):
    """/providers and /waitlist, including booking from the waitlist."""

    def setUp(self):
        self.db = TempDatabase()
        app.dependency_overrides[get_session] = self.db.get_session
        self.broker = InMemoryBroker()
        app.state.broker = self.broker
        self.events: list[AppointmentEvent] = []
        self.broker.subscribe(Channel.APPOINTMENTS, self.events.append)

        self.desk, self.nurse, self.provider, self.retired = self.db.seed(
            User(email="desk@example.com", name="Jordan Front", role="FRONT_DESK"),
            User(email="nurse@example.com", name="Riley Nurse", role="NURSE"),
            User(email="dr.p@example.com", name="Dr P", role="PHYSICIAN"),
            User(email="dr.old@example.com", name="Dr Old", role="PHYSICIAN", is_active=False),
        )
        (self.room,) = self.db.seed(Location(name="Room A"))
        (self.checkup,) = self.db.seed(
            AppointmentType(name="Checkup", default_duration_min=30, color="#00aa00")
        )
        self.client = TestClient(app)

    def tearDown(self):
        self.client.close()
        app.dependency_overrides.clear()
        self.db.close()

    def _auth(self, user):
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    def _enqueue(self, **extra):
        body = {
            "patient_id": 9,
            "appointment_type_id": self.checkup.id,
            "preferred_start_at": "2030-01-07T10:00:00",
            "preferred_end_at": "2030-01-09T17:00:00",
        }
        body.update(extra)
        return self.client.post("/api/v1/waitlist", json=body, headers=self._auth(self.desk))

    def test_providers_lists_active_physicians(self):
        response = self.client.get("/api/v1/providers", headers=self._auth(self.desk))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(), [{"id": self.provider.id, "name": "Dr P", "email": "dr.p@example.com"}]
        )

    def test_providers_requires_manage_schedules(self):
        response = self.client.get("/api/v1/providers", headers=self._auth(self.nurse))
        self.assertEqual(response.status_code, 403)

    def test_enqueue_update_and_list(self):
        response = self._enqueue(priority=1)
        self.assertEqual(response.status_code, 201, response.text)
        request_id = response.json()["id"]
        self.assertEqual(response.json()["status"], "OPEN")

        response = self.client.patch(
            f"/api/v1/waitlist/{request_id}",
            json={"status": "CONTACTED"},
            headers=self._auth(self.desk),
        )
        self.assertEqual(response.json()["status"], "CONTACTED")

        response = self.client.get(
            "/api/v1/waitlist", params={"status": "OPEN"}, headers=self._auth(self.desk)
        )
        self.assertEqual(response.json(), [])
        response = self.client.get("/api/v1/waitlist", headers=self._auth(self.desk))
        self.assertEqual([w["id"] for w in response.json()], [request_id])

    def test_enqueue_validation(self):
        self.assertEqual(self._enqueue(priority=9).status_code, 422)
        self.assertEqual(self._enqueue(appointment_type_id=999).status_code, 404)

    def test_book_from_waitlist(self):
        request_id = self._enqueue().json()["id"]
        response = self.client.post(
            f"/api/v1/waitlist/{request_id}/book", headers=self._auth(self.desk)
        )
        self.assertEqual(response.status_code, 201, response.text)
        data = response.json()
        self.assertEqual((data["start_at"], data["end_at"]), ("2030-01-07T10:00:00", "2030-01-07T10:30:00"))
        self.assertEqual((data["provider_id"], data["location_id"]), (self.provider.id, self.room.id))
        self.assertEqual(
            self.events, [AppointmentEvent(appointment_id=data["id"], action="created", status="SCHEDULED")]
        )

        response = self.client.post(
            f"/api/v1/waitlist/{request_id}/book", headers=self._auth(self.desk)
        )
        self.assertEqual(response.status_code, 400)

        waitlist = self.client.get("/api/v1/waitlist", headers=self._auth(self.desk)).json()
        self.assertEqual((waitlist[0]["status"], waitlist[0]["appointment_id"]), ("BOOKED", data["id"]))

    def test_book_into_taken_slot(self):
        self.client.post(
            "/api/v1/appointments",
            json={
                "patient_id": 1,
                "provider_id": self.provider.id,
                "appointment_type_id": self.checkup.id,
                "start_at": "2030-01-07T10:15:00",
            },
            headers=self._auth(self.desk),
        )
        request_id = self._enqueue().json()["id"]
        response = self.client.post(
            f"/api/v1/waitlist/{request_id}/book", headers=self._auth(self.desk)
        )
        self.assertEqual(response.status_code, 409)
        self.assertIn("already booked", response.json()["detail"])

    def test_book_unknown_provider_or_request(self):
        request_id = self._enqueue().json()["id"]
        response = self.client.post(
            f"/api/v1/waitlist/{request_id}/book",
            json={"provider_id": 999},
            headers=self._auth(self.desk),
        )
        self.assertEqual(response.status_code, 404)
        response = self.client.post("/api/v1/waitlist/999/book", headers=self._auth(self.desk))
        self.assertEqual(response.status_code, 404)


if __name__ == "__main__":
    unittest.main()
