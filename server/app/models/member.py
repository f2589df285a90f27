from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.core.db import Base


class Member(Base):
    __tablename__ = "members"

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="RESTRICT"), nullable=False, index=True)
    student_id = Column(String(50), unique=True, nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    is_officer = Column(Boolean, default=False, nullable=False)
    organization_member = Column(Boolean, default=True, nullable=False)
    can_scan = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    deactivated_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    organization = relationship("Organization", back_populates="members")
    attendances = relationship("Attendance", back_populates="member", foreign_keys="Attendance.member_id")
    ledger_entries = relationship(
        "LedgerEntry",
        back_populates="member",
        foreign_keys="LedgerEntry.member_id",
        order_by="LedgerEntry.recorded_at",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
