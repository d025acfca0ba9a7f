"""
Integration tests for calendar availability and bookings.

2030-01-07 is a Monday; the default calendar works Monday to Friday,
09:00-18:00 in four two-hour slots with two emergency slots per day.
"""
from conftest import register_customer, submit_quote

MONDAY = "2030-01-07"


def book(client, customer, quote_id, start="09:00", end="11:00", day=MONDAY, emergency=False):
    return client.post("/api/v1/bookings", json={
        "quote_id": quote_id,
        "start_at": f"{day}T{start}:00",
        "end_at": f"{day}T{end}:00",
        "is_emergency": emergency,
    }, headers=customer["headers"])


class TestAvailability:

    def test_requires_dates(self, client):
        response = client.get("/api/v1/calendar/availability", params={"start_date": MONDAY})
        assert response.status_code == 400
        assert response.json()["detail"] == "start_date and end_date required"

    def test_rejects_bad_ranges(self, client):
        reversed_range = client.get("/api/v1/calendar/availability", params={"start_date": "2030-01-10", "end_date": MONDAY})
        too_long = client.get("/api/v1/calendar/availability", params={"start_date": "2030-01-01", "end_date": "2030-06-01"})
        malformed = client.get("/api/v1/calendar/availability", params={"start_date": "07/01/2030", "end_date": MONDAY})

        assert reversed_range.status_code == 400
        assert too_long.status_code == 400
        assert malformed.status_code == 400

    def test_week_skips_weekend(self, client):
        data = client.get("/api/v1/calendar/availability", params={"start_date": "2030-01-05", "end_date": "2030-01-11"}).json()

        assert [d["date"] for d in data["available_dates"]] == [
            "2030-01-07", "2030-01-08", "2030-01-09", "2030-01-10", "2030-01-11",
        ]
        monday = data["available_dates"][0]
        assert monday["available_slots"] == ["09:00", "11:00", "13:00", "15:00"]
        assert monday["is_full"] is False
        assert monday["emergency_slots_available"] == 2
        assert data["calendar_settings"]["slots_per_day"] == 4

    def test_blackout_dates_omitted(self, client, db):
        from storefront.models.database import BlackoutDate

        db.add(BlackoutDate(date=MONDAY, reason="Bank holiday"))
        db.commit()

        data = client.get("/api/v1/calendar/availability", params={"start_date": MONDAY, "end_date": "2030-01-08"}).json()
        assert [d["date"] for d in data["available_dates"]] == ["2030-01-08"]

    def test_configured_calendar(self, client, db):
        from storefront.models.database import CalendarSetting

        db.add(CalendarSetting(working_days="[0]", start_hour=10, end_hour=14, slot_duration_minutes=60, slots_per_day=2))
        db.commit()

        data = client.get("/api/v1/calendar/availability", params={"start_date": "2030-01-06", "end_date": MONDAY}).json()
        assert [d["date"] for d in data["available_dates"]] == ["2030-01-06"]
        assert data["available_dates"][0]["available_slots"] == ["10:00", "11:00"]
        assert data["calendar_settings"]["working_days"] == [0]

    def test_booked_slot_removed(self, client, catalog, customer):
        quote_id = submit_quote(client, customer, catalog)["quote"]["id"]
        assert book(client, customer, quote_id).status_code == 201

        data = client.get("/api/v1/calendar/availability", params={"start_date": MONDAY, "end_date": MONDAY}).json()
        assert data["available_dates"][0]["available_slots"] == ["11:00", "13:00", "15:00"]

    def test_day_reported_full_rejects_bookings(self, client, catalog, customer):
        quote_id = submit_quote(client, customer, catalog)["quote"]["id"]
        assert book(client, customer, quote_id, "09:00", "18:00").status_code == 201

        day = client.get("/api/v1/calendar/availability", params={"start_date": MONDAY, "end_date": MONDAY}).json()
        assert day["available_dates"][0]["is_full"] is True
        assert day["available_dates"][0]["available_slots"] == []

        response = book(client, customer, quote_id, "09:00", "11:00")
        assert response.status_code == 409
        assert response.json()["detail"] == "No slots available on this date"

    def test_overlapping_time_rejected(self, client, catalog, customer):
        quote_id = submit_quote(client, customer, catalog)["quote"]["id"]
        other = register_customer(client, email="ciara@example.com", name="Ciara")
        other_quote = submit_quote(client, other, catalog)["quote"]["id"]
        assert book(client, customer, quote_id).status_code == 201

        clash = book(client, other, other_quote, "10:00", "12:00")
        assert clash.status_code == 409
        assert clash.json()["detail"] == "Requested time overlaps an existing booking"
        assert book(client, other, other_quote, "11:00", "13:00").status_code == 201


class TestCreateBooking:

    def test_create_booking(self, client, catalog, customer):
        quote_id = submit_quote(client, customer, catalog)["quote"]["id"]
        response = book(client, customer, quote_id)

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "PENDING"
        assert data["start_at"].startswith("2030-01-07T09:00")
        assert data["urgent_fee_pct"] == 0
        assert data["service_name"] == "Business Cards"

    def test_emergency_booking_carries_fee(self, client, catalog, customer):
        quote_id = submit_quote(client, customer, catalog)["quote"]["id"]
        data = book(client, customer, quote_id, emergency=True).json()

        assert data["is_emergency"] is True
        assert data["urgent_fee_pct"] == 20

    def test_timezone_aware_input_stored_as_utc(self, client, catalog, customer):
        quote_id = submit_quote(client, customer, catalog)["quote"]["id"]
        response = client.post("/api/v1/bookings", json={
            "quote_id": quote_id,
            "start_at": "2030-01-07T11:00:00+02:00",
            "end_at": "2030-01-07T13:00:00+02:00",
        }, headers=customer["headers"])
        assert response.json()["start_at"].startswith("2030-01-07T09:00")

    def test_quote_must_belong_to_customer(self, client, catalog, customer):
        quote_id = submit_quote(client, customer, catalog)["quote"]["id"]
        other = register_customer(client, email="ciara@example.com", name="Ciara")

        assert book(client, other, quote_id).status_code == 404
        assert book(client, customer, "missing").status_code == 404

    def test_end_must_follow_start(self, client, catalog, customer):
        quote_id = submit_quote(client, customer, catalog)["quote"]["id"]
        response = book(client, customer, quote_id, start="11:00", end="09:00")
        assert response.status_code == 400

    def test_capacity_exhausted(self, client, catalog, customer):
        quote_id = submit_quote(client, customer, catalog)["quote"]["id"]
        for start, end in (("09:00", "11:00"), ("11:00", "13:00"), ("13:00", "15:00"), ("15:00", "17:00")):
            assert book(client, customer, quote_id, start, end).status_code == 201

        response = book(client, customer, quote_id, "16:00", "17:00")
        assert response.status_code == 409
        assert response.json()["detail"] == "No slots available on this date"

        day = client.get("/api/v1/calendar/availability", params={"start_date": MONDAY, "end_date": MONDAY}).json()
        assert day["available_dates"][0]["is_full"] is True

    def test_emergency_capacity(self, client, catalog, customer):
        quote_id = submit_quote(client, customer, catalog)["quote"]["id"]
        assert book(client, customer, quote_id, emergency=True).status_code == 201
        assert book(client, customer, quote_id, emergency=True).status_code == 201
        assert book(client, customer, quote_id, emergency=True).status_code == 409

    def test_weekend_not_bookable(self, client, catalog, customer):
        quote_id = submit_quote(client, customer, catalog)["quote"]["id"]
        assert book(client, customer, quote_id, day="2030-01-05").status_code == 409


class TestManageBookings:

    def _booking(self, client, catalog, customer):
        quote_id = submit_quote(client, customer, catalog)["quote"]["id"]
        return book(client, customer, quote_id).json()["id"]

    def test_list_scoped_to_customer(self, client, catalog, customer, staff):
        self._booking(client, catalog, customer)
        other = register_customer(client, email="ciara@example.com", name="Ciara")

        assert len(client.get("/api/v1/bookings", headers=customer["headers"]).json()) == 1
        assert client.get("/api/v1/bookings", headers=other["headers"]).json() == []
        staff_view = client.get("/api/v1/bookings", headers=staff["headers"]).json()
        assert staff_view[0]["customer_name"] == "Aoife Byrne"

    def test_get_booking_ownership(self, client, catalog, customer):
        booking_id = self._booking(client, catalog, customer)
        other = register_customer(client, email="ciara@example.com", name="Ciara")

        assert client.get(f"/api/v1/bookings/{booking_id}", headers=customer["headers"]).status_code == 200
        assert client.get(f"/api/v1/bookings/{booking_id}", headers=other["headers"]).status_code == 403

    def test_customer_may_only_cancel(self, client, catalog, customer):
        booking_id = self._booking(client, catalog, customer)

        confirm = client.patch(f"/api/v1/bookings/{booking_id}", json={"status": "CONFIRMED"}, headers=customer["headers"])
        assert confirm.status_code == 403

        cancel = client.patch(f"/api/v1/bookings/{booking_id}", json={"status": "CANCELLED"}, headers=customer["headers"])
        assert cancel.status_code == 200
        assert cancel.json()["status"] == "CANCELLED"

    def test_staff_moves_booking_forward(self, client, catalog, customer, staff):
        booking_id = self._booking(client, catalog, customer)

        confirmed = client.patch(f"/api/v1/bookings/{booking_id}", json={"status": "CONFIRMED"}, headers=staff["headers"])
        completed = client.patch(f"/api/v1/bookings/{booking_id}", json={"status": "COMPLETED"}, headers=staff["headers"])
        assert confirmed.json()["status"] == "CONFIRMED"
        assert completed.json()["status"] == "COMPLETED"

        reopen = client.patch(f"/api/v1/bookings/{booking_id}", json={"status": "PENDING"}, headers=staff["headers"])
        assert reopen.status_code == 409

    def test_skip_to_completed_is_invalid(self, client, catalog, customer, staff):
        booking_id = self._booking(client, catalog, customer)
        response = client.patch(f"/api/v1/bookings/{booking_id}", json={"status": "COMPLETED"}, headers=staff["headers"])
        assert response.status_code == 409
        assert response.json()["detail"] == "Cannot change booking status from PENDING to COMPLETED"

    def test_reschedule(self, client, catalog, customer):
        booking_id = self._booking(client, catalog, customer)
        response = client.patch(f"/api/v1/bookings/{booking_id}", json={
            "start_at": "2030-01-08T13:00:00", "end_at": "2030-01-08T15:00:00",
        }, headers=customer["headers"])
        assert response.status_code == 200
        assert response.json()["start_at"].startswith("2030-01-08T13:00")

    def test_reschedule_onto_taken_time_rejected(self, client, catalog, customer):
        quote_id = submit_quote(client, customer, catalog)["quote"]["id"]
        book(client, customer, quote_id, "13:00", "15:00")
        booking_id = book(client, customer, quote_id).json()["id"]

        clash = client.patch(f"/api/v1/bookings/{booking_id}", json={
            "start_at": f"{MONDAY}T14:00:00", "end_at": f"{MONDAY}T16:00:00",
        }, headers=customer["headers"])
        assert clash.status_code == 409

        shift = client.patch(f"/api/v1/bookings/{booking_id}", json={
            "start_at": f"{MONDAY}T10:00:00", "end_at": f"{MONDAY}T12:00:00",
        }, headers=customer["headers"])
        assert shift.status_code == 200

    def test_cancelled_booking_cannot_be_rescheduled(self, client, catalog, customer):
        booking_id = self._booking(client, catalog, customer)
        client.patch(f"/api/v1/bookings/{booking_id}", json={"status": "CANCELLED"}, headers=customer["headers"])

        response = client.patch(f"/api/v1/bookings/{booking_id}", json={
            "start_at": "2030-01-08T13:00:00", "end_at": "2030-01-08T15:00:00",
        }, headers=customer["headers"])
        assert response.status_code == 409
