"""HTTP layer: routing, tenant header and error mapping"""
import uuid

import pytest

BASE = "/api/v1/dashboard"


@pytest.fixture
def create_body(service, booking_day):
    return {
        "service_id": str(service.id),
        "customer_ref": "cust-1",
        "customer_name": "Ana",
        "customer_phone": "+5511988887777",
        "pet_name": "Rex",
        "pet_size": "small",
        "scheduled_date": booking_day.isoformat(),
        "scheduled_time": "10:00",
    }


def test_health(client):
    response = client.get("/health/")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_missing_tenant_header_is_rejected(client):
    assert client.get(f"{BASE}/availability/windows").status_code == 422


def test_malformed_tenant_header_is_rejected(client):
    response = client.get(f"{BASE}/availability/windows", headers={"X-Business-ID": "not-a-uuid"})

    assert response.status_code == 400


def test_correlation_id_is_echoed(client, headers):
    response = client.get(f"{BASE}/availability/windows", headers={**headers, "X-Correlation-ID": "abc-123"})

    assert response.headers["X-Correlation-ID"] == "abc-123"


def test_windows_roundtrip(client, headers, window, booking_day):
    weekday = booking_day.weekday()
    body = {"windows": [{"start_time": "08:00", "end_time": "13:00", "capacity": 2}]}

    response = client.put(f"{BASE}/availability/windows/{weekday}", json=body, headers=headers)
    assert response.status_code == 200

    listed = client.get(f"{BASE}/availability/windows", params={"day_of_week": weekday}, headers=headers).json()
    assert listed["total"] == 1
    assert listed["windows"][0]["start_time"] == "08:00"
    assert listed["windows"][0]["capacity"] == 2


def test_invalid_window_is_rejected(client, headers):
    body = {"windows": [{"start_time": "13:00", "end_time": "08:00"}]}

    assert client.put(f"{BASE}/availability/windows/2", json=body, headers=headers).status_code == 422


def test_block_and_unblock_date(client, headers, window, booking_day):
    response = client.post(
        f"{BASE}/availability/blocked-dates",
        json={"date": booking_day.isoformat(), "reason": "Holiday"},
        headers=headers,
    )
    assert response.status_code == 201

    listed = client.get(f"{BASE}/availability/blocked-dates", headers=headers).json()
    assert listed["total"] == 1

    removed = client.delete(f"{BASE}/availability/blocked-dates/{booking_day.isoformat()}", headers=headers).json()
    assert removed["removed"] == 1


def test_check_availability(client, headers, service, window, booking_day):
    body = {"service_id": str(service.id), "date": booking_day.isoformat(), "time": "10:00"}

    response = client.post(f"{BASE}/availability/check", json=body, headers=headers)

    assert response.status_code == 200
    assert response.json()["available"] is True
    assert response.json()["remaining_capacity"] == 1


def test_slot_grid(client, headers, service, window, booking_day):
    response = client.get(
        f"{BASE}/availability/slots",
        params={"service_id": str(service.id), "date": booking_day.isoformat(), "step_minutes": 60},
        headers=headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["step_minutes"] == 60
    assert [s["start"] for s in data["slots"]] == ["09:00:00", "10:00:00", "11:00:00"]


def test_slot_grid_for_unknown_service_is_404(client, headers, window, booking_day):
    response = client.get(
        f"{BASE}/availability/slots",
        params={"service_id": str(uuid.uuid4()), "date": booking_day.isoformat()},
        headers=headers,
    )

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_booking_conflict_returns_409_with_suggestions(client, headers, window, create_body):
    assert client.post(f"{BASE}/appointments", json=create_body, headers=headers).status_code == 201

    response = client.post(
        f"{BASE}/appointments", json={**create_body, "customer_ref": "cust-2"}, headers=headers
    )

    assert response.status_code == 409
    data = response.json()
    assert data["error"] == "availability_conflict"
    assert data["reason"] == "capacity"
    assert len(data["suggestions"]) == 2


def test_appointment_lifecycle_over_http(client, headers, window, create_body, clock):
    created = client.post(f"{BASE}/appointments", json=create_body, headers=headers).json()
    appointment_id = created["id"]
    assert created["status"] == "pending"

    clock.advance(minutes=1)
    client.post(f"{BASE}/appointments/{appointment_id}/confirm", json={"party": "customer"}, headers=headers)
    confirmed = client.post(
        f"{BASE}/appointments/{appointment_id}/confirm", json={"party": "company"}, headers=headers
    ).json()
    assert confirmed["status"] == "confirmed"

    clock.advance(minutes=1)
    assert client.post(f"{BASE}/appointments/{appointment_id}/arrival", headers=headers).json()["status"] == "in_service"
    clock.advance(minutes=1)
    assert client.post(f"{BASE}/appointments/{appointment_id}/complete", headers=headers).json()["status"] == "completed"

    paid = client.post(
        f"{BASE}/appointments/{appointment_id}/payment", json={"amount": "40.00", "method": "cash"}, headers=headers
    ).json()
    assert paid["is_paid"] is True

    reviewed = client.post(
        f"{BASE}/appointments/{appointment_id}/review", json={"rating": 5, "comment": "Lovely"}, headers=headers
    ).json()
    assert reviewed["rating"] == 5

    history = client.get(f"{BASE}/appointments/{appointment_id}/history", headers=headers).json()["history"]
    assert [h["new_status"] for h in history] == ["pending", "confirmed", "in_service", "completed"]


def test_invalid_transition_is_409(client, headers, window, create_body):
    appointment_id = client.post(f"{BASE}/appointments", json=create_body, headers=headers).json()["id"]

    response = client.post(f"{BASE}/appointments/{appointment_id}/complete", headers=headers)

    assert response.status_code == 409
    assert response.json() == {
        "error": "invalid_transition",
        "detail": "Invalid status transition: pending -> completed",
        "from": "pending",
        "to": "completed",
    }


def test_review_out_of_range_is_422(client, headers, window, create_body):
    appointment_id = client.post(f"{BASE}/appointments", json=create_body, headers=headers).json()["id"]

    response = client.post(f"{BASE}/appointments/{appointment_id}/review", json={"rating": 9}, headers=headers)

    assert response.status_code == 422
    assert response.json()["field"] == "rating"


def test_cancel_and_recovery_endpoints(client, headers, window, create_body):
    appointment_id = client.post(f"{BASE}/appointments", json=create_body, headers=headers).json()["id"]

    cancelled = client.post(
        f"{BASE}/appointments/{appointment_id}/cancel", json={"reason": "Sick pet"}, headers=headers
    ).json()
    assert cancelled["status"] == "cancelled"

    recovery = client.get(f"{BASE}/appointments/{appointment_id}/recovery", headers=headers).json()
    assert recovery["status"] == "active"
    assert len(recovery["attempts"]) == 2

    stopped = client.post(f"{BASE}/appointments/{appointment_id}/recovery/stop", headers=headers).json()
    assert stopped["status"] == "stopped"


def test_reschedule_over_http(client, headers, window, create_body, booking_day):
    appointment_id = client.post(f"{BASE}/appointments", json=create_body, headers=headers).json()["id"]

    response = client.post(
        f"{BASE}/appointments/{appointment_id}/reschedule",
        json={"new_date": booking_day.isoformat(), "new_time": "11:00"},
        headers=headers,
    )

    assert response.status_code == 200
    assert response.json()["scheduled_time"] == "11:00"


def test_list_and_filter_appointments(client, headers, window, create_body, booking_day):
    client.post(f"{BASE}/appointments", json=create_body, headers=headers)
    client.post(
        f"{BASE}/appointments",
        json={**create_body, "customer_ref": "cust-2", "scheduled_time": "09:00"},
        headers=headers,
    )

    listed = client.get(f"{BASE}/appointments", params={"start_date": booking_day.isoformat()}, headers=headers).json()
    assert listed["total_appointments"] == 2
    assert [a["scheduled_time"] for a in listed["appointments"]] == ["09:00", "10:00"]

    filtered = client.get(f"{BASE}/appointments", params={"customer_ref": "cust-2"}, headers=headers).json()
    assert filtered["total_appointments"] == 1


def test_unknown_appointment_is_404(client, headers):
    response = client.get(f"{BASE}/appointments/{uuid.uuid4()}", headers=headers)

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_other_tenant_cannot_read_appointment(client, headers, window, create_body):
    appointment_id = client.post(f"{BASE}/appointments", json=create_body, headers=headers).json()["id"]

    response = client.get(f"{BASE}/appointments/{appointment_id}", headers={"X-Business-ID": str(uuid.uuid4())})

    assert response.status_code == 404


def test_search_by_phone(client, headers, window, create_body):
    client.post(f"{BASE}/appointments", json=create_body, headers=headers)

    found = client.get(f"{BASE}/appointments/search", params={"phone": "+5511988887777"}, headers=headers).json()
    missing = client.get(f"{BASE}/appointments/search", params={"phone": "+5500000000"}, headers=headers).json()

    assert found["total_appointments"] == 1
    assert missing["total_appointments"] == 0


def test_upcoming_by_customer(client, headers, window, create_body):
    client.post(f"{BASE}/appointments", json=create_body, headers=headers)

    response = client.get(f"{BASE}/appointments/customers/cust-1/upcoming", headers=headers).json()

    assert response["total"] == 1
    assert response["appointments"][0]["pet_name"] == "Rex"
