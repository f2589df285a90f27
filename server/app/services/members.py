from __future__ import annotations

import logging
from datetime import datetime

from app.core.errors import PermissionDenied
from app.models.attendance import Attendance
from app.models.ledger import LedgerEntry
from app.models.member import Member
from app.schemas.member import MemberRemovalResult
from app.services.tenancy import TenantScope

logger = logging.getLogger(__name__)


def has_history(scope: TenantScope, member: Member) -> bool:
    attended = scope.attendances().filter(Attendance.member_id == member.id).first() is not None
    if attended:
        return True
    return scope.ledger_entries().filter(LedgerEntry.member_id == member.id).first() is not None


def remove_member(scope: TenantScope, member_id: int, *, officer: Member, now: datetime) -> MemberRemovalResult:
    """Delete a member without history; deactivate one that has attendance or ledger rows."""

    if member_id == officer.id:
        raise PermissionDenied("Officers cannot remove themselves")
    member = scope.get_member(member_id)
    db = scope.db

    if has_history(scope, member):
        member.is_active = False
        member.organization_member = False
        member.deactivated_at = now
        db.add(member)
        db.commit()
        logger.info("member deactivated", extra={"officer_id": officer.id, "member_id": member.id})
        return MemberRemovalResult(
            id=member.id,
            deleted=False,
            deactivated=True,
            message="Member has attendance or ledger history and was deactivated instead of deleted",
        )

    db.delete(member)
    db.commit()
    logger.info("member deleted", extra={"officer_id": officer.id, "member_id": member_id})
    return MemberRemovalResult(id=member_id, deleted=True, deactivated=False, message="Member deleted")
