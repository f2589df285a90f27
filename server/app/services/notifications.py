from __future__ import annotations

import logging
from typing import Any

import httpx
from fastapi import BackgroundTasks
from fastapi.encoders import jsonable_encoder

from app.core.config import settings
from app.models.attendance import Attendance
from app.models.event import Event
from app.models.ledger import LedgerEntry
from app.models.member import Member

logger = logging.getLogger(__name__)

ATTENDANCE_RECORDED = "attendance.recorded"
FINANCIAL_UPDATED = "financial.updated"


def attendance_recorded_payload(attendance: Attendance, member: Member, event: Event) -> dict[str, Any]:
    return {
        "id": attendance.id,
        "student_id": member.id,
        "student_name": member.full_name,
        "event_id": event.id,
        "event_title": event.title,
        "status": attendance.status,
        "scanned_at": attendance.scanned_at,
    }


def financial_updated_payload(entry: LedgerEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "user_id": entry.member_id,
        "type": entry.type,
        "amount": entry.amount,
        "description": entry.description,
        "balance_after": entry.balance_after,
        "cleared": entry.cleared,
    }


def notify(event_name: str, payload: dict[str, Any]) -> None:
    """Deliver one notification to the realtime collaborator.

    Never raises: delivery problems are logged and dropped.
    """

    body = {"event": event_name, "data": jsonable_encoder(payload)}
    if not settings.NOTIFICATIONS_WEBHOOK_URL:
        logger.info("notification_logged", extra={"event": event_name, "payload": body["data"]})
        return
    try:
        response = httpx.post(
            settings.NOTIFICATIONS_WEBHOOK_URL,
            json=body,
            timeout=settings.NOTIFICATIONS_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
    except Exception:
        logger.exception("notification_delivery_failed", extra={"event": event_name})
        return
    logger.info("notification_delivered", extra={"event": event_name})


def schedule(background_tasks: BackgroundTasks, event_name: str, payload: dict[str, Any]) -> None:
    """Queue a notification to run once the response has been sent (after commit)."""

    background_tasks.add_task(notify, event_name, payload)


def schedule_ledger_updates(background_tasks: BackgroundTasks, entries: list[LedgerEntry]) -> None:
    for entry in entries:
        schedule(background_tasks, FINANCIAL_UPDATED, financial_updated_payload(entry))
