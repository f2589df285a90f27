from __future__ import annotations

from datetime import timedelta

from app.models.attendance import Attendance
from app.models.member import Member

from conftest import NOW


def test_member_without_history_is_deleted(client, authorize, db_session, officer, student):
    authorize(officer)

    response = client.delete(f"/members/{student.id}")
    assert response.status_code == 200, response.text
    assert response.json()["deleted"] is True
    assert db_session.query(Member).filter(Member.id == student.id).count() == 0


def test_member_with_history_is_deactivated(client, authorize, db_session, officer, student, ended_event):
    db_session.add(
        Attendance(
            organization_id=student.organization_id,
            member_id=student.id,
            event_id=ended_event.id,
            status="present",
            scanned_at=NOW - timedelta(hours=2),
        )
    )
    db_session.commit()
    authorize(officer)

    response = client.delete(f"/members/{student.id}")
    assert response.status_code == 200
    assert response.json()["deactivated"] is True

    detail = client.get(f"/members/{student.id}")
    assert detail.json()["is_active"] is False
    assert detail.json()["organization_member"] is False
    assert client.get(f"/events/{ended_event.id}/attendance-details").json()["present_students"][0]["member"]["id"] == student.id


def test_officer_cannot_remove_self(client, authorize, officer):
    authorize(officer)

    response = client.delete(f"/members/{officer.id}")
    assert response.status_code == 403


def test_removal_is_scoped_to_organization(client, authorize, make_member, other_organization, officer):
    foreign = make_member(other_organization, "2022-0111")
    authorize(officer)

    assert client.delete(f"/members/{foreign.id}").status_code == 404


def test_student_cannot_remove_members(client, authorize, officer, student):
    authorize(student)

    assert client.delete(f"/members/{officer.id}").status_code == 403
