from __future__ import annotations

from datetime import timedelta

from sqlalchemy.orm import sessionmaker

from app import main
from app.models.attendance import Attendance
from app.models.event import Event

from conftest import NOW, engine


def test_scheduled_sweep_covers_every_organization(monkeypatch, db_session, make_event, make_member, organization, other_organization, student):
    make_member(other_organization, "2022-0700")
    ended_here = make_event(organization, title="Orientation", start=NOW - timedelta(hours=3), end=NOW - timedelta(hours=1))
    ended_there = make_event(other_organization, title="Site Visit", start=NOW - timedelta(hours=3), end=NOW - timedelta(hours=1))
    running = make_event(organization, title="Assembly")

    sent = []
    monkeypatch.setattr(main, "SessionLocal", sessionmaker(bind=engine, expire_on_commit=False))
    monkeypatch.setattr(main, "now_utc", lambda: NOW)
    monkeypatch.setattr(main.notifications, "notify", lambda name, payload: sent.append(payload["user_id"]))

    main._run_absence_sweep()

    absent = db_session.query(Attendance.event_id).filter(Attendance.status == "absent").all()
    assert sorted(event_id for (event_id,) in absent) == sorted([ended_here.id, ended_there.id])
    assert db_session.query(Attendance).filter(Attendance.event_id == running.id).count() == 0
    assert db_session.query(Event.id).filter(Event.absences_swept_at.isnot(None)).count() == 2
    assert len(sent) == 2


def test_scheduler_disabled_by_default(client):
    assert main.scheduler.get_job("absence_sweep") is None
