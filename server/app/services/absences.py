"""Absence sweep for ended events.

Each member is handled in its own transaction: the absent row and its fine
commit together or not at all. A sweep that dies half way can simply be run
again, because only members still lacking an attendance row are touched.
``Event.absences_swept_at`` is written once every member has been handled and
only lets later calls return early.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import and_, exists
from sqlalchemy.exc import IntegrityError

from app.core.errors import EventNotEnded, NotFound
from app.models.attendance import ATTENDANCE_ABSENT, Attendance
from app.models.event import Event
from app.models.ledger import LedgerEntry
from app.models.member import Member
from app.services import ledger as ledger_service
from app.services.events import has_ended, unswept_ended_events
from app.services.tenancy import TenantScope

logger = logging.getLogger(__name__)


@dataclass
class SweepOutcome:
    event_id: int
    event_title: str
    absent_count: int = 0
    fines: list[LedgerEntry] = field(default_factory=list)


def members_without_attendance(scope: TenantScope, event: Event) -> list[Member]:
    has_row = exists().where(and_(Attendance.member_id == Member.id, Attendance.event_id == event.id))
    return scope.current_members().filter(~has_row).order_by(Member.id.asc()).all()


def sweep_absences(scope: TenantScope, event: Event, *, now: datetime) -> SweepOutcome:
    if event.organization_id != scope.organization_id:
        raise NotFound("Event not found")
    if not has_ended(event, now):
        raise EventNotEnded()

    outcome = SweepOutcome(event_id=event.id, event_title=event.title)
    if event.absences_swept_at is not None:
        return outcome

    db = scope.db
    fine = ledger_service.to_money(scope.organization().attendance_fine)
    event_id = event.id
    title = event.title

    for member in members_without_attendance(scope, event):
        db.add(
            Attendance(
                organization_id=scope.organization_id,
                member_id=member.id,
                event_id=event_id,
                status=ATTENDANCE_ABSENT,
                scanned_at=None,
            )
        )
        try:
            db.flush()
            entry = None
            if fine > 0:
                entry = ledger_service.apply_fine(
                    db,
                    member,
                    fine,
                    description=f"Absence fine - {title}",
                    now=now,
                    event_id=event_id,
                    auto_commit=False,
                )
            db.commit()
        except IntegrityError:
            # The member scanned (or was corrected) while the sweep was running.
            db.rollback()
            logger.info("absence_sweep_member_skipped", extra={"event_id": event_id, "member_id": member.id})
            continue
        outcome.absent_count += 1
        if entry is not None:
            outcome.fines.append(entry)

    swept = db.get(Event, event_id)
    swept.absences_swept_at = now
    db.commit()

    logger.info(
        "absence_sweep_completed",
        extra={
            "event_id": event_id,
            "organization_id": scope.organization_id,
            "absent_count": outcome.absent_count,
            "fines_applied": len(outcome.fines),
        },
    )
    return outcome


def process_expired_events(scope: TenantScope, *, now: datetime) -> list[SweepOutcome]:
    events = unswept_ended_events(scope, now=now).order_by(Event.end_time.asc()).all()
    return [sweep_absences(scope, event, now=now) for event in events]
