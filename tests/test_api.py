"""HTTP surface tests: error taxonomy mapping and request/response shapes."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import patch
from fastapi.testclient import TestClient

from conftest import make_car, make_customer, make_booking, future
from app.database import get_db
from app.main import app
from app.models.booking import STATUS_CONFIRMED, STATUS_IN_PROGRESS
from app.models.customer import NOTIFY_EMAIL
from app.utils.business_time import business_today


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestBookingEndpoints:
    def test_conflicting_request_returns_409_with_every_period(self, client, db):
        car = make_car(db, status="Rented")
        customer = make_customer(db)
        make_booking(db, car, customer, future(5), future(8), status=STATUS_CONFIRMED, isPay=True)

        response = client.post("/api/v1/bookings", json={
            "car_id": car.id, "customer_id": customer.id,
            "start_date": future(7).isoformat(), "end_date": future(10).isoformat(),
        })

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "ConflictError"
        assert [c["reason"] for c in body["conflicts"]] == ["occupied", "maintenance buffer"]
        assert body["conflicts"][1]["start"] == future(9).isoformat()

    def test_successful_request_returns_pending_booking(self, client, db):
        car = make_car(db)
        customer = make_customer(db)
        response = client.post("/api/v1/bookings", json={
            "car_id": car.id, "customer_id": customer.id,
            "start_date": future(10).isoformat(), "end_date": future(11).isoformat(),
        })
        assert response.status_code == 201
        assert response.json()["booking_status"] == "Pending"
        assert response.json()["payment_deadline"] is not None

    def test_confirm_without_payment_returns_400_with_guard(self, client, db):
        car = make_car(db)
        customer = make_customer(db)
        booking = make_booking(db, car, customer, future(5), future(6))
        response = client.put(f"/api/v1/bookings/{booking.id}/confirm")
        assert response.status_code == 400
        assert response.json()["guard"] == "payment"

    def test_unknown_booking_returns_404(self, client):
        assert client.get("/api/v1/bookings/999").status_code == 404

    def test_non_positive_payment_rejected(self, client, db):
        car = make_car(db)
        customer = make_customer(db)
        booking = make_booking(db, car, customer, future(5), future(6))
        response = client.post(f"/api/v1/bookings/{booking.id}/payments", json={"amount": 0})
        assert response.status_code == 422


class TestCarEndpoints:
    def test_unavailable_periods(self, client, db):
        car = make_car(db)
        customer = make_customer(db)
        make_booking(db, car, customer, future(5), future(8))
        response = client.get(f"/api/v1/cars/{car.id}/unavailable-periods")
        assert response.status_code == 200
        periods = response.json()
        assert len(periods) == 2
        assert periods[1]["is_maintenance"] is True

    def test_availability_check(self, client, db):
        car = make_car(db)
        customer = make_customer(db)
        make_booking(db, car, customer, future(5), future(8))
        response = client.get(f"/api/v1/cars/{car.id}/availability",
                              params={"start_date": future(10).isoformat(), "end_date": future(12).isoformat()})
        assert response.json()["is_valid"] is True

    def test_status_change_to_available_schedules_cascade(self, client, db):
        car = make_car(db, status="Maintenance")
        with patch("app.services.booking_service.schedule_waitlist_cascade") as mock_cascade:
            response = client.put(f"/api/v1/cars/{car.id}/status", json={"status": "Available"})
        assert response.status_code == 200
        mock_cascade.assert_called_once_with(car.id)


class TestFees:
    def test_fee_schedule_falls_back_to_defaults(self, client):
        fees = client.get("/api/v1/fees").json()
        assert fees["reservation_fee"] == 1000
        assert fees["gas_level_fee"] == 500


class TestWaitlistEndpoints:
    def test_join_with_preference(self, client, db):
        car = make_car(db, status="Rented")
        customer = make_customer(db)
        response = client.post(f"/api/v1/cars/{car.id}/waitlist",
                               json={"customer_id": customer.id, "notification_preference": NOTIFY_EMAIL})
        assert response.status_code == 201
        assert response.json()["position"] == 1
        db.refresh(customer)
        assert customer.notification_preference == NOTIFY_EMAIL

    def test_out_of_range_preference_rejected(self, client, db):
        car = make_car(db, status="Rented")
        customer = make_customer(db)
        response = client.post(f"/api/v1/cars/{car.id}/waitlist",
                               json={"customer_id": customer.id, "notification_preference": 9})
        assert response.status_code == 422


class TestReminderEndpoint:
    def test_manual_sweep_reports_summary(self, client, db):
        car = make_car(db, status="Rented")
        customer = make_customer(db)
        today = business_today()
        make_booking(db, car, customer, today, today, status=STATUS_IN_PROGRESS)
        response = client.post("/api/v1/reminders/run")
        assert response.status_code == 200
        assert response.json()["sent"] == 1
