"""Tests for the attendance HTTP API."""

from fastapi.testclient import TestClient

from qr_attendance.api.app import create_app


def test_health(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_generate_token_and_list_sessions(container, repository) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/api/admin/generate-token",
        params={"section": "CSE-A", "sessionName": "Lecture 1", "durationMinutes": 10},
        headers={"X-User-Id": "admin_user_001"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["expiresInMinutes"] == 10
    assert repository.creators[data["token"]] == "admin_user_001"

    sessions = client.get("/api/admin/sessions").json()
    assert sessions[0]["sessionToken"] == data["token"]
    assert sessions[0]["sessionName"] == "Lecture 1"
    assert sessions[0]["section"] == "CSE-A"


def test_generate_token_requires_session_name(container) -> None:
    client = TestClient(create_app(container))

    response = client.post("/api/admin/generate-token", params={"section": "All"})

    assert response.status_code == 422


def test_check_in_flow(container) -> None:
    client = TestClient(create_app(container))
    token = client.post(
        "/api/admin/generate-token",
        params={"section": "All", "sessionName": "Lecture 1"},
    ).json()["token"]

    accepted = client.post(
        "/api/attendance/check-in",
        json={"token": token},
        headers={"X-User-Id": "student-7"},
    )
    duplicate = client.post(
        "/api/attendance/check-in",
        json={"token": token},
        headers={"X-User-Id": "student-7"},
    )
    unknown = client.post(
        "/api/attendance/check-in",
        json={"token": "unknown-token"},
        headers={"X-User-Id": "student-7"},
    )

    assert accepted.status_code == 200
    assert accepted.json() == {
        "message": "Attendance recorded successfully for Lecture 1"
    }
    assert duplicate.status_code == 409
    assert unknown.status_code == 404

    records = client.get(f"/api/admin/attendance/{token}").json()
    assert records[0]["userId"] == "student-7"
    log = client.get("/api/admin/attendance").json()
    assert log[0]["sessionName"] == "Lecture 1"


def test_check_in_requires_user(container) -> None:
    client = TestClient(create_app(container))

    response = client.post("/api/attendance/check-in", json={"token": "abc"})

    assert response.status_code == 401
    assert response.json() == {
        "message": "User must be logged in to check attendance."
    }


def test_check_in_to_expired_session_is_gone(container, clock) -> None:
    container.attendance_service.clock = clock
    client = TestClient(create_app(container))
    token = client.post(
        "/api/admin/generate-token",
        params={"section": "All", "sessionName": "Lecture 1", "durationMinutes": 1},
    ).json()["token"]
    clock.advance(60)

    response = client.post(
        "/api/attendance/check-in",
        json={"token": token},
        headers={"X-User-Id": "student-7"},
    )

    assert response.status_code == 410
    assert response.json() == {"message": "Session has expired."}
