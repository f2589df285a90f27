"""Event-scoped QR tokens.

A token is an HS256 JWT signed with ``QR_SIGNING_SECRET``. The claims name
the event, its organization, when the token was generated and when it stops
being valid (the event's end time). Nothing in a presented token is trusted
until the signature checks out. Expiry is checked against the caller's
``now`` rather than the library clock.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.core.clock import ensure_utc
from app.core.config import settings
from app.core.errors import EventNoLongerActive, EventNotActive, EventNotFound, Expired, InvalidSignature
from app.models.event import Event
from app.services.events import is_currently_active
from app.services.tenancy import TenantScope

logger = logging.getLogger(__name__)

QR_TOKEN_ALGORITHM = "HS256"


@dataclass(frozen=True)
class QRPayload:
    event_id: int
    event_title: str
    organization_id: int
    generated_at: datetime
    expires_at: datetime


def _parse_datetime(value: Any) -> datetime:
    if not isinstance(value, str):
        raise ValueError("timestamp must be an ISO 8601 string")
    return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def issue_token(event: Event, *, now: datetime, secret: str | None = None) -> str:
    if not is_currently_active(event, now):
        raise EventNotActive("QR code is not available. Event is not currently active.")

    claims = {
        "event_id": event.id,
        "event_title": event.title,
        "organization_id": event.organization_id,
        "generated_at": ensure_utc(now).isoformat(),
        "expires_at": ensure_utc(event.end_time).isoformat(),
    }
    return jwt.encode(claims, secret or settings.QR_SIGNING_SECRET, algorithm=QR_TOKEN_ALGORITHM)


def decode_token(token: str, *, now: datetime, secret: str | None = None) -> QRPayload:
    """Check the signature and the validity window without touching the database."""

    try:
        claims = jwt.decode(
            token.strip(),
            secret or settings.QR_SIGNING_SECRET,
            algorithms=[QR_TOKEN_ALGORITHM],
            options={"verify_exp": False},
        )
    except (AttributeError, JWTError) as exc:
        raise InvalidSignature() from exc

    try:
        payload = QRPayload(
            event_id=int(claims["event_id"]),
            event_title=str(claims["event_title"]),
            organization_id=int(claims["organization_id"]),
            generated_at=_parse_datetime(claims["generated_at"]),
            expires_at=_parse_datetime(claims["expires_at"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidSignature("QR code payload is incomplete") from exc

    if ensure_utc(now) > payload.expires_at:
        raise Expired()
    return payload


def verify_token(db: Session, token: str, *, now: datetime, secret: str | None = None) -> tuple[QRPayload, Event]:
    """Decode ``token`` and resolve the event it was issued for.

    The event is looked up inside the organization named by the signed
    payload, so a token can only ever resolve to an event of its own tenant.
    """

    payload = decode_token(token, now=now, secret=secret)
    event = TenantScope(db, payload.organization_id).find_event(payload.event_id)
    if event is None:
        logger.info("qr_token_event_missing", extra={"event_id": payload.event_id})
        raise EventNotFound()
    if not is_currently_active(event, now):
        raise EventNoLongerActive()
    return payload, event
