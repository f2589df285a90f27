from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from app.schemas.event import EventPublicOut
from app.schemas.member import MemberBrief

AttendanceStatusValue = Literal["present", "absent", "late"]


class ScanRequest(BaseModel):
    qr_data: str = Field(..., min_length=1, max_length=2048)
    event_id: int = Field(..., ge=1)


class ManualAttendanceRequest(BaseModel):
    member_id: int = Field(..., ge=1)
    event_id: int = Field(..., ge=1)
    status: AttendanceStatusValue


class AttendanceOut(BaseModel):
    id: int
    member_id: int
    event_id: int
    status: AttendanceStatusValue
    scanned_at: Optional[datetime]
    created_at: datetime
    member: Optional[MemberBrief] = None

    class Config:
        from_attributes = True


class ScanResponse(BaseModel):
    message: str
    attendance: AttendanceOut
    event: EventPublicOut
    student_name: str


class ManualAttendanceResponse(BaseModel):
    message: str
    attendance: AttendanceOut


class MemberAttendanceItem(BaseModel):
    event: EventPublicOut
    status: AttendanceStatusValue
    scanned_at: Optional[datetime]


class MemberAttendanceSummary(BaseModel):
    total: int
    present: int
    attendance_rate: Decimal


class MemberAttendanceResponse(BaseModel):
    member: MemberBrief
    attendances: List[MemberAttendanceItem]
    summary: MemberAttendanceSummary
