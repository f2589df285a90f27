from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, status

from app.auth.deps import get_current_member, require_officer
from app.core.clock import get_now
from app.core.errors import PermissionDenied
from app.models.member import Member
from app.schemas.ledger import (
    FineRequest,
    FineResponse,
    LedgerEntryOut,
    ManualEntryRequest,
    ManualEntryResponse,
    MemberLedgerResponse,
    OrganizationFinancialsResponse,
    PaymentRequest,
    PaymentResponse,
    StudentLedgerResponse,
)
from app.services import ledger as ledger_service
from app.services import notifications
from app.services.tenancy import TenantScope, get_tenant_scope

router = APIRouter(prefix="/financial", tags=["financial"])


def _ensure_self_or_officer(current_member: Member, member_id: int) -> None:
    if not current_member.is_officer and current_member.id != member_id:
        raise PermissionDenied("You can only view your own ledger.")


@router.post("/make-payment", response_model=PaymentResponse, status_code=status.HTTP_200_OK)
def make_payment(
    payload: PaymentRequest,
    background_tasks: BackgroundTasks,
    scope: TenantScope = Depends(get_tenant_scope),
    officer: Member = Depends(require_officer),
    now: datetime = Depends(get_now),
) -> PaymentResponse:
    member = scope.get_member(payload.member_id)
    entry = ledger_service.apply_payment(
        scope.db,
        member,
        payload.amount,
        now=now,
        description=payload.description,
        payment_date=payload.payment_date,
        recorded_by_id=officer.id,
    )
    notifications.schedule_ledger_updates(background_tasks, [entry])
    return PaymentResponse(
        message="Payment recorded successfully",
        payment=LedgerEntryOut.from_orm(entry),
        new_balance=entry.balance_after,
        is_cleared=entry.cleared,
    )


@router.post("/apply-fine", response_model=FineResponse, status_code=status.HTTP_201_CREATED)
def apply_fine(
    payload: FineRequest,
    background_tasks: BackgroundTasks,
    scope: TenantScope = Depends(get_tenant_scope),
    officer: Member = Depends(require_officer),
    now: datetime = Depends(get_now),
) -> FineResponse:
    member = scope.get_member(payload.member_id)
    entry = ledger_service.apply_fine(
        scope.db,
        member,
        payload.fine_amount,
        description=f"Absence fine - {payload.event_name}",
        now=now,
        recorded_by_id=officer.id,
    )
    notifications.schedule_ledger_updates(background_tasks, [entry])
    return FineResponse(
        message="Absence fine applied successfully",
        fine=LedgerEntryOut.from_orm(entry),
        new_balance=entry.balance_after,
    )


@router.post("/manual-entry", response_model=ManualEntryResponse, status_code=status.HTTP_201_CREATED)
def add_manual_entry(
    payload: ManualEntryRequest,
    background_tasks: BackgroundTasks,
    scope: TenantScope = Depends(get_tenant_scope),
    officer: Member = Depends(require_officer),
    now: datetime = Depends(get_now),
) -> ManualEntryResponse:
    member = scope.get_member(payload.member_id)
    entry = ledger_service.post_entry(
        scope.db,
        member,
        entry_type=payload.type,
        amount=payload.amount,
        description=payload.description,
        now=now,
        effective_date=payload.entry_date,
        recorded_by_id=officer.id,
    )
    notifications.schedule_ledger_updates(background_tasks, [entry])
    return ManualEntryResponse(
        message="Manual entry added successfully",
        entry=LedgerEntryOut.from_orm(entry),
        new_balance=entry.balance_after,
        is_cleared=entry.cleared,
    )


@router.get("/student-ledger/{member_id:int}", response_model=StudentLedgerResponse, status_code=status.HTTP_200_OK)
def get_student_ledger(
    member_id: int,
    scope: TenantScope = Depends(get_tenant_scope),
    current_member: Member = Depends(get_current_member),
) -> StudentLedgerResponse:
    _ensure_self_or_officer(current_member, member_id)
    return ledger_service.student_ledger(scope, member_id)


@router.get("/member-ledger/{member_id:int}", response_model=MemberLedgerResponse, status_code=status.HTTP_200_OK)
def get_member_ledger(
    member_id: int,
    scope: TenantScope = Depends(get_tenant_scope),
    current_member: Member = Depends(get_current_member),
) -> MemberLedgerResponse:
    _ensure_self_or_officer(current_member, member_id)
    return ledger_service.member_ledger(scope, member_id)


@router.get("/organization", response_model=OrganizationFinancialsResponse, status_code=status.HTTP_200_OK)
def get_organization_financials(
    scope: TenantScope = Depends(get_tenant_scope),
    _: Member = Depends(require_officer),
) -> OrganizationFinancialsResponse:
    return ledger_service.organization_financials(scope)
