from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from app.core.db import Base

ATTENDANCE_PRESENT = "present"
ATTENDANCE_ABSENT = "absent"
ATTENDANCE_LATE = "late"

AttendanceStatus = Enum(ATTENDANCE_PRESENT, ATTENDANCE_ABSENT, ATTENDANCE_LATE, name="attendance_status")


class Attendance(Base):
    __tablename__ = "attendances"
    # One row per member and event; the scan workflow relies on this index to reject races.
    __table_args__ = (UniqueConstraint("member_id", "event_id", name="uq_attendances_member_event"),)

    id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="RESTRICT"), nullable=False, index=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="RESTRICT"), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="RESTRICT"), nullable=False, index=True)
    status = Column(AttendanceStatus, nullable=False)
    scanned_at = Column(DateTime(timezone=True), nullable=True)
    recorded_by_id = Column(Integer, ForeignKey("members.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    member = relationship("Member", back_populates="attendances", foreign_keys=[member_id])
    event = relationship("Event", back_populates="attendances")
    recorded_by = relationship("Member", foreign_keys=[recorded_by_id])
