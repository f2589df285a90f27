from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, validator

from app.core.config import settings
from app.schemas.member import MemberBrief

LedgerEntryTypeValue = Literal["fine", "payment", "due", "adjustment"]


def _within_ledger_limit(value: Decimal) -> Decimal:
    if value > settings.LEDGER_MAX_AMOUNT:
        raise ValueError(f"Amount may not exceed {settings.LEDGER_MAX_AMOUNT}")
    return value


class LedgerEntryOut(BaseModel):
    id: int
    member_id: int
    type: LedgerEntryTypeValue
    amount: Decimal
    description: str
    balance_before: Decimal
    balance_after: Decimal
    cleared: bool
    recorded_at: datetime
    effective_date: Optional[date]
    event_id: Optional[int]
    recorded_by_id: Optional[int]

    class Config:
        from_attributes = True


class PaymentRequest(BaseModel):
    member_id: int = Field(..., ge=1)
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    description: Optional[str] = Field(None, max_length=500)
    payment_date: date

    @validator("amount")
    def validate_amount_limit(cls, value: Decimal) -> Decimal:
        return _within_ledger_limit(value)


class FineRequest(BaseModel):
    member_id: int = Field(..., ge=1)
    event_name: str = Field(..., min_length=1, max_length=255)
    fine_amount: Decimal = Field(..., gt=0, decimal_places=2)

    @validator("fine_amount")
    def validate_fine_limit(cls, value: Decimal) -> Decimal:
        if value > settings.FINE_MAX_AMOUNT:
            raise ValueError(f"Fine may not exceed {settings.FINE_MAX_AMOUNT}")
        return value


class ManualEntryRequest(BaseModel):
    member_id: int = Field(..., ge=1)
    type: LedgerEntryTypeValue
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    description: str = Field(..., min_length=1, max_length=500)
    entry_date: date

    @validator("amount")
    def validate_amount_limit(cls, value: Decimal) -> Decimal:
        return _within_ledger_limit(value)


class PaymentResponse(BaseModel):
    message: str
    payment: LedgerEntryOut
    new_balance: Decimal
    is_cleared: bool


class FineResponse(BaseModel):
    message: str
    fine: LedgerEntryOut
    new_balance: Decimal


class ManualEntryResponse(BaseModel):
    message: str
    entry: LedgerEntryOut
    new_balance: Decimal
    is_cleared: bool


class StudentLedgerResponse(BaseModel):
    member: MemberBrief
    ledger: List[LedgerEntryOut]
    current_balance: Decimal
    is_cleared: bool
    total_entries: int


class MemberLedgerSummary(BaseModel):
    total_entries: int
    total_fines: Decimal
    total_payments: Decimal
    last_transaction: Optional[datetime]


class MemberLedgerResponse(BaseModel):
    member: MemberBrief
    ledger: List[LedgerEntryOut]
    current_balance: Decimal
    is_cleared: bool
    summary: MemberLedgerSummary


class MemberBalanceOut(BaseModel):
    id: int
    student_id: str
    first_name: str
    last_name: str
    email: Optional[str]
    is_officer: bool
    current_balance: Decimal
    is_cleared: bool
    ledger_entries_count: int
    last_transaction_date: Optional[datetime]


class OrganizationFinancialSummary(BaseModel):
    total_members: int
    total_balance: Decimal
    members_with_balance: int
    cleared_members: int
    total_pending: Decimal


class OrganizationFinancialsResponse(BaseModel):
    ledgers: List[MemberBalanceOut]
    summary: OrganizationFinancialSummary
