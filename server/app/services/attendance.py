from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import (
    DuplicateAttendance,
    InvalidSignature,
    ScanNotPermitted,
    WrongOrganization,
)
from app.models.attendance import ATTENDANCE_PRESENT, Attendance
from app.models.event import Event
from app.models.member import Member
from app.schemas.attendance import (
    AttendanceOut,
    MemberAttendanceItem,
    MemberAttendanceResponse,
    MemberAttendanceSummary,
)
from app.schemas.event import EventPublicOut
from app.schemas.member import MemberBrief
from app.services.events import attendance_rate
from app.services.qr_tokens import verify_token
from app.services.tenancy import TenantScope

logger = logging.getLogger(__name__)


def may_scan(member: Member) -> bool:
    return bool(member.is_active) and bool(member.is_officer or member.organization_member or member.can_scan)


def find_attendance(scope: TenantScope, member_id: int, event_id: int) -> Attendance | None:
    return (
        scope.attendances()
        .filter(Attendance.member_id == member_id, Attendance.event_id == event_id)
        .first()
    )


def record_attendance(
    db: Session,
    actor: Member,
    raw_token: str,
    *,
    event_id: int,
    now: datetime,
) -> tuple[Attendance, Event]:
    """Turn one scan into at most one ``present`` row for ``actor``."""

    payload, event = verify_token(db, raw_token, now=now)
    if payload.event_id != event_id:
        raise InvalidSignature("QR code does not belong to this event")
    if actor.organization_id != event.organization_id:
        raise WrongOrganization()
    if not may_scan(actor):
        raise ScanNotPermitted()

    scope = TenantScope(db, event.organization_id)
    if find_attendance(scope, actor.id, event.id) is not None:
        raise DuplicateAttendance()

    attendance = Attendance(
        organization_id=event.organization_id,
        member_id=actor.id,
        event_id=event.id,
        status=ATTENDANCE_PRESENT,
        scanned_at=now,
    )
    db.add(attendance)
    try:
        db.flush()
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.info("attendance_duplicate_race", extra={"member_id": actor.id, "event_id": event_id})
        raise DuplicateAttendance() from exc
    db.refresh(attendance)

    logger.info(
        "attendance_recorded",
        extra={"attendance_id": attendance.id, "member_id": actor.id, "event_id": event.id},
    )
    return attendance, event


def set_attendance_status(
    scope: TenantScope,
    *,
    member_id: int,
    event_id: int,
    status: str,
    now: datetime,
    officer: Member,
) -> Attendance:
    """Officer correction path: create or overwrite one member's row for an event."""

    member = scope.get_member(member_id)
    event = scope.get_event(event_id)
    db = scope.db
    attendance = find_attendance(scope, member.id, event.id)
    if attendance is None:
        attendance = Attendance(organization_id=scope.organization_id, member_id=member.id, event_id=event.id)
        db.add(attendance)
    previous_status = attendance.status
    attendance.status = status
    attendance.scanned_at = now if status != "absent" else None
    attendance.recorded_by_id = officer.id
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateAttendance("Attendance was recorded concurrently; retry the correction") from exc
    db.refresh(attendance)
    logger.info(
        "attendance_overridden",
        extra={
            "attendance_id": attendance.id,
            "member_id": member.id,
            "event_id": event.id,
            "old_status": previous_status,
            "new_status": status,
            "officer_id": officer.id,
        },
    )
    return attendance


def member_history(scope: TenantScope, member_id: int) -> MemberAttendanceResponse:
    member = scope.get_member(member_id)
    rows = (
        scope.attendances()
        .join(Event, Event.id == Attendance.event_id)
        .with_entities(Attendance, Event)
        .filter(Attendance.member_id == member.id)
        .order_by(Event.start_time.desc(), Attendance.id.desc())
        .all()
    )
    items = [
        MemberAttendanceItem(
            event=EventPublicOut.from_orm(event),
            status=attendance.status,
            scanned_at=attendance.scanned_at,
        )
        for attendance, event in rows
    ]
    present = sum(1 for item in items if item.status == ATTENDANCE_PRESENT)
    return MemberAttendanceResponse(
        member=MemberBrief.from_orm(member),
        attendances=items,
        summary=MemberAttendanceSummary(
            total=len(items),
            present=present,
            attendance_rate=attendance_rate(present, len(items)) if items else Decimal("0"),
        ),
    )


def to_attendance_out(attendance: Attendance, member: Member) -> AttendanceOut:
    out = AttendanceOut.from_orm(attendance)
    out.member = MemberBrief.from_orm(member)
    return out
