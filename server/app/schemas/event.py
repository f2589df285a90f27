from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, validator

from app.core.clock import ensure_utc
from app.schemas.member import MemberBrief


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    start_time: datetime
    end_time: datetime

    @validator("start_time", "end_time")
    def normalize_to_utc(cls, value: datetime) -> datetime:
        # Naive values are taken as UTC so they compare with aware ones.
        return ensure_utc(value)

    @validator("end_time")
    def validate_end_after_start(cls, value: datetime, values: dict) -> datetime:
        start = values.get("start_time")
        if start is not None and ensure_utc(value) <= ensure_utc(start):
            raise ValueError("end_time must be after start_time")
        return value


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @validator("start_time", "end_time")
    def normalize_to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)


class EventPublicOut(BaseModel):
    id: int
    title: str
    start_time: datetime
    end_time: datetime

    class Config:
        from_attributes = True


class EventOut(EventPublicOut):
    organization_id: int
    description: Optional[str]
    is_active: bool
    absences_swept_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class EventSummaryOut(EventOut):
    present_count: int = 0
    absent_count: int = 0


class EventListResponse(BaseModel):
    items: List[EventSummaryOut]
    total: int


class EventQROut(BaseModel):
    event_id: int
    event_title: str
    qr_code: str
    valid_until: datetime
    is_active: bool


class EventStatsOut(BaseModel):
    total_members: int
    present_count: int
    absent_count: int
    late_count: int
    attendance_rate: Decimal


class SweepResult(BaseModel):
    event_id: int
    event_title: str
    absent_marked: int


class MarkAbsentResponse(BaseModel):
    message: str
    absent_count: int
    event: EventOut


class ProcessExpiredResponse(BaseModel):
    message: str
    processed_events: List[SweepResult]
    total_events_processed: int
    total_absences_marked: int


class EventsNeedingSweepResponse(BaseModel):
    events: List[EventSummaryOut]
    count: int


class PresentStudent(BaseModel):
    member: MemberBrief
    scanned_at: Optional[datetime]


class AbsentStudent(BaseModel):
    member: MemberBrief
    marked_absent_at: Optional[datetime]


class AttendanceDetailsSummary(BaseModel):
    total_members: int
    present_count: int
    absent_count: int
    unmarked_count: int
    attendance_rate: Decimal


class AttendanceDetailsResponse(BaseModel):
    event: EventOut
    present_students: List[PresentStudent]
    absent_students: List[AbsentStudent]
    unmarked_students: List[MemberBrief]
    summary: AttendanceDetailsSummary


class EventDeletedResponse(BaseModel):
    id: int
    message: str
