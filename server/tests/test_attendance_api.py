from __future__ import annotations

from datetime import timedelta

from app.models.attendance import Attendance
from app.services import attendance as attendance_service
from app.services.qr_tokens import issue_token

from conftest import NOW


def _scan(client, event, token=None):
    return client.post(
        "/attendance/scan",
        json={"qr_data": token or issue_token(event, now=NOW), "event_id": event.id},
    )


def test_scan_records_attendance(client, authorize, student, active_event):
    authorize(student)

    response = _scan(client, active_event)
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["message"] == "Attendance marked successfully!"
    assert body["student_name"] == "Juan Dela Cruz"
    assert body["event"]["id"] == active_event.id
    assert body["attendance"]["status"] == "present"
    assert body["attendance"]["member"]["student_id"] == "2021-0100"


def test_second_scan_is_duplicate(client, authorize, db_session, student, active_event):
    authorize(student)
    token = issue_token(active_event, now=NOW)

    assert _scan(client, active_event, token).status_code == 201
    duplicate = _scan(client, active_event, token)
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "duplicate_attendance"

    rows = db_session.query(Attendance).filter_by(member_id=student.id, event_id=active_event.id).count()
    assert rows == 1


def test_scan_from_other_organization_is_forbidden(
    client, authorize, make_member, other_organization, active_event
):
    outsider = make_member(other_organization, "2022-0500")
    authorize(outsider)

    response = _scan(client, active_event)
    assert response.status_code == 403
    assert response.json()["code"] == "wrong_organization"


def test_expired_token_is_rejected(client, authorize, freeze_now, student, active_event):
    authorize(student)
    token = issue_token(active_event, now=NOW)
    freeze_now(NOW + timedelta(hours=1, seconds=1))

    response = _scan(client, active_event, token)
    assert response.status_code == 400
    assert response.json()["code"] == "qr_expired"


def test_token_for_other_event_is_rejected(client, authorize, make_event, organization, student, active_event):
    authorize(student)
    other = make_event(organization, title="Workshop")
    token = issue_token(other, now=NOW)

    response = client.post("/attendance/scan", json={"qr_data": token, "event_id": active_event.id})
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_signature"


def test_non_member_cannot_scan(client, authorize, make_member, organization, active_event):
    guest = make_member(organization, "2023-0042", organization_member=False)
    authorize(guest)

    response = _scan(client, active_event)
    assert response.status_code == 403
    assert response.json()["code"] == "scan_not_permitted"


def test_scan_requires_authentication(client, active_event):
    response = _scan(client, active_event)
    assert response.status_code == 401
    assert response.json()["code"] == "not_authenticated"


def test_scan_validates_payload(client, authorize, student):
    authorize(student)

    response = client.post("/attendance/scan", json={"event_id": 0})
    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"


def test_officer_overrides_attendance(client, authorize, officer, student, ended_event):
    authorize(officer)

    response = client.post(
        "/attendance/manual",
        json={"member_id": student.id, "event_id": ended_event.id, "status": "late"},
    )
    assert response.status_code == 200, response.text
    assert response.json()["attendance"]["status"] == "late"

    response = client.post(
        "/attendance/manual",
        json={"member_id": student.id, "event_id": ended_event.id, "status": "absent"},
    )
    assert response.status_code == 200
    assert response.json()["attendance"]["status"] == "absent"
    assert response.json()["attendance"]["scanned_at"] is None


def test_student_cannot_override_attendance(client, authorize, student, ended_event):
    authorize(student)

    response = client.post(
        "/attendance/manual",
        json={"member_id": student.id, "event_id": ended_event.id, "status": "present"},
    )
    assert response.status_code == 403


def test_member_history_is_self_or_officer(client, authorize, officer, student, active_event):
    authorize(student)
    assert _scan(client, active_event).status_code == 201

    own = client.get(f"/attendance/member/{student.id}")
    assert own.status_code == 200
    assert own.json()["summary"] == {"total": 1, "present": 1, "attendance_rate": "100.00"}

    assert client.get(f"/attendance/member/{officer.id}").status_code == 403

    authorize(officer)
    assert client.get(f"/attendance/member/{student.id}").status_code == 200


def test_concurrent_duplicate_is_caught_by_unique_index(client, authorize, monkeypatch, db_session, student, active_event):
    authorize(student)
    token = issue_token(active_event, now=NOW)
    assert _scan(client, active_event, token).status_code == 201

    # Simulate a second request that read before the first one committed.
    monkeypatch.setattr(attendance_service, "find_attendance", lambda scope, member_id, event_id: None)
    response = _scan(client, active_event, token)
    assert response.status_code == 409
    assert response.json()["code"] == "duplicate_attendance"

    rows = db_session.query(Attendance).filter_by(member_id=student.id, event_id=active_event.id).count()
    assert rows == 1


def test_scan_for_deleted_event_is_not_found(client, authorize, officer, student, active_event):
    token = issue_token(active_event, now=NOW)
    authorize(officer)
    assert client.delete(f"/events/{active_event.id}").status_code == 200

    authorize(student)
    response = _scan(client, active_event, token)
    assert response.status_code == 404
    assert response.json()["code"] == "event_not_found"
