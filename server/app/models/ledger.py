from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, Enum, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from app.core.db import Base

ENTRY_FINE = "fine"
ENTRY_PAYMENT = "payment"
ENTRY_DUE = "due"
ENTRY_ADJUSTMENT = "adjustment"

LedgerEntryType = Enum(ENTRY_FINE, ENTRY_PAYMENT, ENTRY_DUE, ENTRY_ADJUSTMENT, name="ledger_entry_type")


class LedgerEntry(Base):
    """Append-only row; corrections are posted as new ``adjustment`` entries."""

    __tablename__ = "financial_ledgers"

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="RESTRICT"), nullable=False, index=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="RESTRICT"), nullable=False, index=True)
    type = Column(LedgerEntryType, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    description = Column(String(500), nullable=False)
    balance_before = Column(Numeric(12, 2), nullable=False, default=0)
    balance_after = Column(Numeric(12, 2), nullable=False, default=0)
    cleared = Column(Boolean, nullable=False, default=False)
    recorded_at = Column(DateTime(timezone=True), nullable=False, index=True)
    effective_date = Column(Date, nullable=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="SET NULL"), nullable=True, index=True)
    recorded_by_id = Column(Integer, ForeignKey("members.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    member = relationship("Member", back_populates="ledger_entries", foreign_keys=[member_id])
    event = relationship("Event")
    recorded_by = relationship("Member", foreign_keys=[recorded_by_id])
