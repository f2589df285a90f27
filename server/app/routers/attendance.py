from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from app.auth.deps import get_current_member, require_officer
from app.core.clock import get_now
from app.core.db import get_db
from app.core.errors import PermissionDenied
from app.models.member import Member
from app.schemas.attendance import (
    ManualAttendanceRequest,
    ManualAttendanceResponse,
    MemberAttendanceResponse,
    ScanRequest,
    ScanResponse,
)
from app.schemas.event import EventPublicOut
from app.services import attendance as attendance_service
from app.services import notifications
from app.services.tenancy import TenantScope, get_tenant_scope

router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.post("/scan", response_model=ScanResponse, status_code=status.HTTP_201_CREATED)
def scan_qr(
    payload: ScanRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_member: Member = Depends(get_current_member),
    now: datetime = Depends(get_now),
) -> ScanResponse:
    attendance, event = attendance_service.record_attendance(
        db,
        current_member,
        payload.qr_data,
        event_id=payload.event_id,
        now=now,
    )
    notifications.schedule(
        background_tasks,
        notifications.ATTENDANCE_RECORDED,
        notifications.attendance_recorded_payload(attendance, current_member, event),
    )
    return ScanResponse(
        message="Attendance marked successfully!",
        attendance=attendance_service.to_attendance_out(attendance, current_member),
        event=EventPublicOut.from_orm(event),
        student_name=current_member.full_name,
    )


@router.post("/manual", response_model=ManualAttendanceResponse, status_code=status.HTTP_200_OK)
def manual_attendance(
    payload: ManualAttendanceRequest,
    background_tasks: BackgroundTasks,
    scope: TenantScope = Depends(get_tenant_scope),
    officer: Member = Depends(require_officer),
    now: datetime = Depends(get_now),
) -> ManualAttendanceResponse:
    attendance = attendance_service.set_attendance_status(
        scope,
        member_id=payload.member_id,
        event_id=payload.event_id,
        status=payload.status,
        now=now,
        officer=officer,
    )
    member = scope.get_member(payload.member_id)
    event = scope.get_event(payload.event_id)
    notifications.schedule(
        background_tasks,
        notifications.ATTENDANCE_RECORDED,
        notifications.attendance_recorded_payload(attendance, member, event),
    )
    return ManualAttendanceResponse(
        message="Attendance updated successfully",
        attendance=attendance_service.to_attendance_out(attendance, member),
    )


@router.get("/member/{member_id:int}", response_model=MemberAttendanceResponse, status_code=status.HTTP_200_OK)
def member_attendance_history(
    member_id: int,
    scope: TenantScope = Depends(get_tenant_scope),
    current_member: Member = Depends(get_current_member),
) -> MemberAttendanceResponse:
    if not current_member.is_officer and current_member.id != member_id:
        raise PermissionDenied("You can only view your own attendance")
    return attendance_service.member_history(scope, member_id)
