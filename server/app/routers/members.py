from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, status

from app.auth.deps import require_officer
from app.core.clock import get_now
from app.models.member import Member
from app.schemas.member import MemberOut, MemberRemovalResult
from app.services import members as members_service
from app.services.tenancy import TenantScope, get_tenant_scope

router = APIRouter(prefix="/members", tags=["members"])


@router.get("/{member_id:int}", response_model=MemberOut, status_code=status.HTTP_200_OK)
def get_member(
    member_id: int,
    scope: TenantScope = Depends(get_tenant_scope),
    _: Member = Depends(require_officer),
) -> MemberOut:
    return MemberOut.from_orm(scope.get_member(member_id))


@router.delete("/{member_id:int}", response_model=MemberRemovalResult, status_code=status.HTTP_200_OK)
def remove_member(
    member_id: int,
    scope: TenantScope = Depends(get_tenant_scope),
    officer: Member = Depends(require_officer),
    now: datetime = Depends(get_now),
) -> MemberRemovalResult:
    return members_service.remove_member(scope, member_id, officer=officer, now=now)
