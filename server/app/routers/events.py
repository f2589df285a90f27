from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, status

from app.auth.deps import require_officer
from app.core.clock import ensure_utc, get_now
from app.models.member import Member
from app.schemas.event import (
    AttendanceDetailsResponse,
    EventCreate,
    EventDeletedResponse,
    EventListResponse,
    EventOut,
    EventQROut,
    EventStatsOut,
    EventUpdate,
    EventsNeedingSweepResponse,
    MarkAbsentResponse,
    ProcessExpiredResponse,
    SweepResult,
)
from app.services import absences as absences_service
from app.services import events as events_service
from app.services import notifications
from app.services.events import is_currently_active
from app.services.qr_tokens import issue_token
from app.services.tenancy import TenantScope, get_tenant_scope

router = APIRouter(prefix="/events", tags=["events"])


@router.get("", response_model=EventListResponse, status_code=status.HTTP_200_OK)
def list_events(scope: TenantScope = Depends(get_tenant_scope)) -> EventListResponse:
    items = events_service.list_events(scope)
    return EventListResponse(items=items, total=len(items))


@router.post("", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    scope: TenantScope = Depends(get_tenant_scope),
    _: Member = Depends(require_officer),
) -> EventOut:
    event = events_service.create_event(scope, payload)
    return EventOut.from_orm(event)


@router.get("/active", response_model=list[EventOut], status_code=status.HTTP_200_OK)
def list_active_events(
    scope: TenantScope = Depends(get_tenant_scope),
    now: datetime = Depends(get_now),
) -> list[EventOut]:
    return [EventOut.from_orm(event) for event in events_service.list_active_events(scope, now=now)]


@router.get("/needing-absent-marking", response_model=EventsNeedingSweepResponse, status_code=status.HTTP_200_OK)
def list_events_needing_absent_marking(
    scope: TenantScope = Depends(get_tenant_scope),
    now: datetime = Depends(get_now),
) -> EventsNeedingSweepResponse:
    events = events_service.events_needing_sweep(scope, now=now)
    return EventsNeedingSweepResponse(events=events, count=len(events))


@router.post("/process-expired", response_model=ProcessExpiredResponse, status_code=status.HTTP_200_OK)
def process_expired_events(
    background_tasks: BackgroundTasks,
    scope: TenantScope = Depends(get_tenant_scope),
    _: Member = Depends(require_officer),
    now: datetime = Depends(get_now),
) -> ProcessExpiredResponse:
    outcomes = absences_service.process_expired_events(scope, now=now)
    processed = [
        SweepResult(event_id=outcome.event_id, event_title=outcome.event_title, absent_marked=outcome.absent_count)
        for outcome in outcomes
    ]
    for outcome in outcomes:
        notifications.schedule_ledger_updates(background_tasks, outcome.fines)
    total = sum(item.absent_marked for item in processed)
    return ProcessExpiredResponse(
        message=f"Processed {len(processed)} events, marked {total} total absences",
        processed_events=processed,
        total_events_processed=len(processed),
        total_absences_marked=total,
    )


@router.get("/{event_id:int}", response_model=EventOut, status_code=status.HTTP_200_OK)
def get_event(event_id: int, scope: TenantScope = Depends(get_tenant_scope)) -> EventOut:
    return EventOut.from_orm(scope.get_event(event_id))


@router.put("/{event_id:int}", response_model=EventOut, status_code=status.HTTP_200_OK)
def update_event(
    event_id: int,
    payload: EventUpdate,
    scope: TenantScope = Depends(get_tenant_scope),
    _: Member = Depends(require_officer),
) -> EventOut:
    return EventOut.from_orm(events_service.update_event(scope, event_id, payload))


@router.delete("/{event_id:int}", response_model=EventDeletedResponse, status_code=status.HTTP_200_OK)
def delete_event(
    event_id: int,
    scope: TenantScope = Depends(get_tenant_scope),
    _: Member = Depends(require_officer),
) -> EventDeletedResponse:
    events_service.delete_event(scope, event_id)
    return EventDeletedResponse(id=event_id, message="Event deleted successfully")


@router.get("/{event_id:int}/qr", response_model=EventQROut, status_code=status.HTTP_200_OK)
def get_event_qr(
    event_id: int,
    scope: TenantScope = Depends(get_tenant_scope),
    now: datetime = Depends(get_now),
) -> EventQROut:
    event = scope.get_event(event_id)
    token = issue_token(event, now=now)
    return EventQROut(
        event_id=event.id,
        event_title=event.title,
        qr_code=token,
        valid_until=ensure_utc(event.end_time),
        is_active=is_currently_active(event, now),
    )


@router.post("/{event_id:int}/toggle-active", response_model=EventOut, status_code=status.HTTP_200_OK)
def toggle_event_active(
    event_id: int,
    scope: TenantScope = Depends(get_tenant_scope),
    _: Member = Depends(require_officer),
) -> EventOut:
    return EventOut.from_orm(events_service.toggle_active(scope, event_id))


@router.get("/{event_id:int}/stats", response_model=EventStatsOut, status_code=status.HTTP_200_OK)
def get_event_stats(event_id: int, scope: TenantScope = Depends(get_tenant_scope)) -> EventStatsOut:
    return events_service.event_stats(scope, event_id)


@router.post("/{event_id:int}/mark-absent", response_model=MarkAbsentResponse, status_code=status.HTTP_200_OK)
def mark_absent_students(
    event_id: int,
    background_tasks: BackgroundTasks,
    scope: TenantScope = Depends(get_tenant_scope),
    _: Member = Depends(require_officer),
    now: datetime = Depends(get_now),
) -> MarkAbsentResponse:
    event = scope.get_event(event_id)
    outcome = absences_service.sweep_absences(scope, event, now=now)
    notifications.schedule_ledger_updates(background_tasks, outcome.fines)
    return MarkAbsentResponse(
        message=f"Successfully marked {outcome.absent_count} students as absent",
        absent_count=outcome.absent_count,
        event=EventOut.from_orm(scope.get_event(event_id)),
    )


@router.get(
    "/{event_id:int}/attendance-details",
    response_model=AttendanceDetailsResponse,
    status_code=status.HTTP_200_OK,
)
def get_event_attendance_details(
    event_id: int,
    scope: TenantScope = Depends(get_tenant_scope),
) -> AttendanceDetailsResponse:
    return events_service.attendance_details(scope, event_id)
