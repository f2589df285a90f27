"""Organization-scoped data access.

Every member, event, attendance and ledger query in the attendance and
finance flows starts from a :class:`TenantScope`, which applies the
``organization_id`` filter before anything else can be added to the query.
"""

from __future__ import annotations

from fastapi import Depends
from sqlalchemy.orm import Query, Session

from app.auth.deps import get_current_member
from app.core.db import get_db
from app.core.errors import NotFound
from app.models.attendance import Attendance
from app.models.event import Event
from app.models.ledger import LedgerEntry
from app.models.member import Member
from app.models.organization import Organization


class TenantScope:
    def __init__(self, db: Session, organization_id: int) -> None:
        self.db = db
        self.organization_id = organization_id

    def organization(self) -> Organization:
        organization = self.db.get(Organization, self.organization_id)
        if organization is None:
            raise NotFound("Organization not found")
        return organization

    def members(self) -> Query:
        return self.db.query(Member).filter(Member.organization_id == self.organization_id)

    def current_members(self) -> Query:
        """Members that count for attendance: enrolled and not deactivated."""

        return self.members().filter(
            Member.organization_member.is_(True),
            Member.is_active.is_(True),
        )

    def events(self) -> Query:
        return self.db.query(Event).filter(Event.organization_id == self.organization_id)

    def attendances(self) -> Query:
        return self.db.query(Attendance).filter(Attendance.organization_id == self.organization_id)

    def ledger_entries(self) -> Query:
        return self.db.query(LedgerEntry).filter(LedgerEntry.organization_id == self.organization_id)

    def get_member(self, member_id: int) -> Member:
        member = self.members().filter(Member.id == member_id).first()
        if member is None:
            raise NotFound("Member not found")
        return member

    def get_event(self, event_id: int) -> Event:
        event = self.events().filter(Event.id == event_id).first()
        if event is None:
            raise NotFound("Event not found")
        return event

    def find_event(self, event_id: int) -> Event | None:
        return self.events().filter(Event.id == event_id).first()


def get_tenant_scope(
    member: Member = Depends(get_current_member),
    db: Session = Depends(get_db),
) -> TenantScope:
    return TenantScope(db, member.organization_id)
