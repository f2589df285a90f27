from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import and_, exists, func
from sqlalchemy.orm import Query

from app.core.clock import ensure_utc
from app.core.errors import EventHasAttendance, InvalidEventWindow
from app.models.attendance import ATTENDANCE_ABSENT, ATTENDANCE_LATE, ATTENDANCE_PRESENT, Attendance
from app.models.event import Event
from app.models.member import Member
from app.schemas.event import (
    AbsentStudent,
    AttendanceDetailsResponse,
    AttendanceDetailsSummary,
    EventCreate,
    EventOut,
    EventStatsOut,
    EventSummaryOut,
    EventUpdate,
    PresentStudent,
)
from app.schemas.member import MemberBrief
from app.services.tenancy import TenantScope

logger = logging.getLogger(__name__)


def is_currently_active(event: Event, now: datetime) -> bool:
    current = ensure_utc(now)
    return bool(event.is_active) and ensure_utc(event.start_time) <= current <= ensure_utc(event.end_time)


def has_ended(event: Event, now: datetime) -> bool:
    return ensure_utc(now) > ensure_utc(event.end_time)


def attendance_rate(present: int, total: int) -> Decimal:
    if total <= 0:
        return Decimal("0")
    return (Decimal(present) * 100 / Decimal(total)).quantize(Decimal("0.01"))


def _status_counts(scope: TenantScope, event_ids: list[int]) -> dict[tuple[int, str], int]:
    if not event_ids:
        return {}
    rows = (
        scope.attendances()
        .with_entities(Attendance.event_id, Attendance.status, func.count(Attendance.id))
        .filter(Attendance.event_id.in_(event_ids))
        .group_by(Attendance.event_id, Attendance.status)
        .all()
    )
    return {(event_id, status): count for event_id, status, count in rows}


def summarize_events(scope: TenantScope, events: list[Event]) -> list[EventSummaryOut]:
    counts = _status_counts(scope, [event.id for event in events])
    items: list[EventSummaryOut] = []
    for event in events:
        item = EventSummaryOut.from_orm(event)
        item.present_count = counts.get((event.id, ATTENDANCE_PRESENT), 0)
        item.absent_count = counts.get((event.id, ATTENDANCE_ABSENT), 0)
        items.append(item)
    return items


def list_events(scope: TenantScope) -> list[EventSummaryOut]:
    events = scope.events().order_by(Event.start_time.desc(), Event.id.desc()).all()
    return summarize_events(scope, events)


def list_active_events(scope: TenantScope, *, now: datetime) -> list[Event]:
    return (
        scope.events()
        .filter(Event.is_active.is_(True), Event.end_time > now)
        .order_by(Event.start_time.asc())
        .all()
    )


def create_event(scope: TenantScope, payload: EventCreate) -> Event:
    event = Event(
        organization_id=scope.organization_id,
        title=payload.title,
        description=payload.description,
        start_time=ensure_utc(payload.start_time),
        end_time=ensure_utc(payload.end_time),
        is_active=True,
    )
    scope.db.add(event)
    scope.db.commit()
    scope.db.refresh(event)
    logger.info("event_created", extra={"event_id": event.id, "organization_id": scope.organization_id})
    return event


def update_event(scope: TenantScope, event_id: int, payload: EventUpdate) -> Event:
    event = scope.get_event(event_id)
    changes = payload.dict(exclude_unset=True)
    start = changes.get("start_time") or ensure_utc(event.start_time)
    end = changes.get("end_time") or ensure_utc(event.end_time)
    if end <= start:
        raise InvalidEventWindow()
    for field, value in changes.items():
        if value is not None:
            setattr(event, field, value)
    scope.db.add(event)
    scope.db.commit()
    scope.db.refresh(event)
    logger.info("event_updated", extra={"event_id": event.id, "fields": sorted(changes)})
    return event


def delete_event(scope: TenantScope, event_id: int) -> None:
    event = scope.get_event(event_id)
    if scope.attendances().filter(Attendance.event_id == event.id).first() is not None:
        raise EventHasAttendance()
    scope.db.delete(event)
    scope.db.commit()
    logger.info("event_deleted", extra={"event_id": event_id, "organization_id": scope.organization_id})


def toggle_active(scope: TenantScope, event_id: int) -> Event:
    event = scope.get_event(event_id)
    event.is_active = not event.is_active
    scope.db.add(event)
    scope.db.commit()
    scope.db.refresh(event)
    return event


def unswept_ended_events(scope: TenantScope, *, now: datetime) -> Query:
    return scope.events().filter(Event.end_time < now, Event.absences_swept_at.is_(None))


def events_needing_sweep(scope: TenantScope, *, now: datetime) -> list[EventSummaryOut]:
    events = unswept_ended_events(scope, now=now).order_by(Event.end_time.desc()).all()
    return summarize_events(scope, events)


def event_stats(scope: TenantScope, event_id: int) -> EventStatsOut:
    event = scope.get_event(event_id)
    counts = _status_counts(scope, [event.id])
    total_members = scope.current_members().count()
    present = counts.get((event.id, ATTENDANCE_PRESENT), 0)
    return EventStatsOut(
        total_members=total_members,
        present_count=present,
        absent_count=counts.get((event.id, ATTENDANCE_ABSENT), 0),
        late_count=counts.get((event.id, ATTENDANCE_LATE), 0),
        attendance_rate=attendance_rate(present, total_members),
    )


def attendance_details(scope: TenantScope, event_id: int) -> AttendanceDetailsResponse:
    event = scope.get_event(event_id)
    rows = (
        scope.attendances()
        .join(Member, Member.id == Attendance.member_id)
        .with_entities(Attendance, Member)
        .filter(Attendance.event_id == event.id)
        .order_by(Member.last_name.asc(), Member.first_name.asc())
        .all()
    )
    present = [
        PresentStudent(member=MemberBrief.from_orm(member), scanned_at=attendance.scanned_at)
        for attendance, member in rows
        if attendance.status in (ATTENDANCE_PRESENT, ATTENDANCE_LATE)
    ]
    absent = [
        AbsentStudent(member=MemberBrief.from_orm(member), marked_absent_at=attendance.created_at)
        for attendance, member in rows
        if attendance.status == ATTENDANCE_ABSENT
    ]
    has_row = exists().where(and_(Attendance.member_id == Member.id, Attendance.event_id == event.id))
    unmarked = (
        scope.current_members()
        .filter(~has_row)
        .order_by(Member.last_name.asc(), Member.first_name.asc())
        .all()
    )
    total_members = scope.current_members().count()
    return AttendanceDetailsResponse(
        event=EventOut.from_orm(event),
        present_students=present,
        absent_students=absent,
        unmarked_students=[MemberBrief.from_orm(member) for member in unmarked],
        summary=AttendanceDetailsSummary(
            total_members=total_members,
            present_count=len(present),
            absent_count=len(absent),
            unmarked_count=len(unmarked),
            attendance_rate=attendance_rate(len(present), total_members),
        ),
    )
