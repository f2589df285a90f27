"""Append-only per-member ledger.

Each entry snapshots the balance before and after it, so the current balance
is always the ``balance_after`` of the member's latest entry. Postings lock the
member row first so two concurrent requests cannot both build on the same
prior balance.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.orm import Session

from app.core.clock import ensure_utc
from app.core.errors import AmountExceedsBalance, DomainError
from app.models.ledger import ENTRY_FINE, ENTRY_PAYMENT, LedgerEntry
from app.models.member import Member
from app.schemas.ledger import (
    LedgerEntryOut,
    MemberBalanceOut,
    MemberLedgerResponse,
    MemberLedgerSummary,
    OrganizationFinancialSummary,
    OrganizationFinancialsResponse,
    StudentLedgerResponse,
)
from app.schemas.member import MemberBrief
from app.services.tenancy import TenantScope

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


def to_money(value: Decimal | int | float | str | None) -> Decimal:
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def signed_amount(entry_type: str, amount: Decimal) -> Decimal:
    return -amount if entry_type == ENTRY_PAYMENT else amount


def latest_entry(db: Session, member_id: int) -> LedgerEntry | None:
    return (
        db.query(LedgerEntry)
        .filter(LedgerEntry.member_id == member_id)
        .order_by(LedgerEntry.recorded_at.desc(), LedgerEntry.id.desc())
        .first()
    )


def current_balance(db: Session, member: Member) -> Decimal:
    entry = latest_entry(db, member.id)
    return to_money(entry.balance_after) if entry else ZERO


def _lock_member(db: Session, member: Member) -> Member:
    locked = (
        db.query(Member)
        .filter(Member.id == member.id, Member.organization_id == member.organization_id)
        .with_for_update()
        .first()
    )
    if locked is None:
        raise DomainError("Member not found")
    return locked


def post_entry(
    db: Session,
    member: Member,
    *,
    entry_type: str,
    amount: Decimal,
    description: str,
    now: datetime,
    effective_date: date | None = None,
    event_id: int | None = None,
    recorded_by_id: int | None = None,
    auto_commit: bool = True,
) -> LedgerEntry:
    amount = to_money(amount)
    if amount <= 0:
        raise DomainError("Ledger amounts must be positive")

    locked = _lock_member(db, member)
    previous = latest_entry(db, locked.id)
    balance_before = to_money(previous.balance_after) if previous else ZERO
    recorded_at = ensure_utc(now)
    if previous is not None and previous.recorded_at is not None:
        # Chain order must not depend on the caller clock moving forward.
        recorded_at = max(recorded_at, ensure_utc(previous.recorded_at))
    balance_after = to_money(balance_before + signed_amount(entry_type, amount))

    entry = LedgerEntry(
        organization_id=locked.organization_id,
        member_id=locked.id,
        type=entry_type,
        amount=amount,
        description=description,
        balance_before=balance_before,
        balance_after=balance_after,
        cleared=balance_after <= 0,
        recorded_at=recorded_at,
        effective_date=effective_date,
        event_id=event_id,
        recorded_by_id=recorded_by_id,
    )
    db.add(entry)
    db.flush()
    if auto_commit:
        db.commit()
        db.refresh(entry)
    logger.info(
        "ledger_entry_posted",
        extra={
            "entry_id": entry.id,
            "member_id": locked.id,
            "type": entry_type,
            "amount": str(amount),
            "balance_after": str(balance_after),
        },
    )
    return entry


def apply_payment(
    db: Session,
    member: Member,
    amount: Decimal,
    *,
    now: datetime,
    description: str | None = None,
    payment_date: date | None = None,
    recorded_by_id: int | None = None,
) -> LedgerEntry:
    amount = to_money(amount)
    _lock_member(db, member)
    balance = current_balance(db, member)
    if amount > balance:
        db.rollback()
        raise AmountExceedsBalance(
            f"Payment amount (₱{amount:,.2f}) exceeds current balance (₱{balance:,.2f})"
        )
    return post_entry(
        db,
        member,
        entry_type=ENTRY_PAYMENT,
        amount=amount,
        description=description or "Payment received",
        now=now,
        effective_date=payment_date,
        recorded_by_id=recorded_by_id,
    )


def apply_fine(
    db: Session,
    member: Member,
    amount: Decimal,
    *,
    description: str,
    now: datetime,
    event_id: int | None = None,
    recorded_by_id: int | None = None,
    auto_commit: bool = True,
) -> LedgerEntry:
    return post_entry(
        db,
        member,
        entry_type=ENTRY_FINE,
        amount=amount,
        description=description,
        now=now,
        event_id=event_id,
        recorded_by_id=recorded_by_id,
        auto_commit=auto_commit,
    )


def _history(scope: TenantScope, member_id: int) -> list[LedgerEntry]:
    return (
        scope.ledger_entries()
        .filter(LedgerEntry.member_id == member_id)
        .order_by(LedgerEntry.recorded_at.desc(), LedgerEntry.id.desc())
        .all()
    )


def student_ledger(scope: TenantScope, member_id: int) -> StudentLedgerResponse:
    member = scope.get_member(member_id)
    entries = _history(scope, member.id)
    balance = to_money(entries[0].balance_after) if entries else ZERO
    return StudentLedgerResponse(
        member=MemberBrief.from_orm(member),
        ledger=[LedgerEntryOut.from_orm(entry) for entry in entries],
        current_balance=balance,
        is_cleared=balance <= 0,
        total_entries=len(entries),
    )


def member_ledger(scope: TenantScope, member_id: int) -> MemberLedgerResponse:
    member = scope.get_member(member_id)
    entries = _history(scope, member.id)
    balance = to_money(entries[0].balance_after) if entries else ZERO
    total_fines = sum((to_money(e.amount) for e in entries if e.type == ENTRY_FINE), ZERO)
    total_payments = sum((to_money(e.amount) for e in entries if e.type == ENTRY_PAYMENT), ZERO)
    return MemberLedgerResponse(
        member=MemberBrief.from_orm(member),
        ledger=[LedgerEntryOut.from_orm(entry) for entry in entries],
        current_balance=balance,
        is_cleared=balance <= 0,
        summary=MemberLedgerSummary(
            total_entries=len(entries),
            total_fines=total_fines,
            total_payments=total_payments,
            last_transaction=entries[0].recorded_at if entries else None,
        ),
    )


def organization_financials(scope: TenantScope) -> OrganizationFinancialsResponse:
    members = scope.members().filter(Member.organization_member.is_(True)).all()
    entries = (
        scope.ledger_entries()
        .order_by(LedgerEntry.recorded_at.desc(), LedgerEntry.id.desc())
        .all()
    )
    latest: dict[int, LedgerEntry] = {}
    counts: dict[int, int] = {}
    for entry in entries:
        latest.setdefault(entry.member_id, entry)
        counts[entry.member_id] = counts.get(entry.member_id, 0) + 1

    rows: list[MemberBalanceOut] = []
    for member in members:
        last = latest.get(member.id)
        balance = to_money(last.balance_after) if last else ZERO
        rows.append(
            MemberBalanceOut(
                id=member.id,
                student_id=member.student_id,
                first_name=member.first_name,
                last_name=member.last_name,
                email=member.email,
                is_officer=member.is_officer,
                current_balance=balance,
                is_cleared=balance <= 0,
                ledger_entries_count=counts.get(member.id, 0),
                last_transaction_date=last.recorded_at if last else None,
            )
        )
    rows.sort(key=lambda row: row.current_balance, reverse=True)

    pending = [row.current_balance for row in rows if row.current_balance > 0]
    return OrganizationFinancialsResponse(
        ledgers=rows,
        summary=OrganizationFinancialSummary(
            total_members=len(rows),
            total_balance=sum((row.current_balance for row in rows), ZERO),
            members_with_balance=len(pending),
            cleared_members=sum(1 for row in rows if row.is_cleared),
            total_pending=sum(pending, ZERO),
        ),
    )
