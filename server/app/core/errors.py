"""Domain error taxonomy.

Every error carries a stable ``code`` next to the human readable ``detail`` so
clients can branch on the kind without parsing messages. They subclass
``HTTPException`` so services can raise them directly, the same way they raise
plain HTTP errors elsewhere.
"""

from __future__ import annotations

from fastapi import HTTPException, status


class DomainError(HTTPException):
    code = "domain_error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request could not be completed"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(status_code=type(self).status_code, detail=detail or self.default_detail)


class NotFound(DomainError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found"


class PermissionDenied(DomainError):
    code = "permission_denied"
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Insufficient permissions"


class InvalidQR(DomainError):
    code = "invalid_qr"
    default_detail = "Invalid QR code"


class InvalidSignature(InvalidQR):
    code = "invalid_signature"
    default_detail = "QR code signature is invalid"


class Expired(InvalidQR):
    code = "qr_expired"
    default_detail = "QR code has expired"


class EventNotFound(InvalidQR):
    code = "event_not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Event referenced by the QR code no longer exists"


class EventNoLongerActive(InvalidQR):
    code = "event_no_longer_active"
    default_detail = "Event referenced by the QR code is no longer active"


class EventNotActive(DomainError):
    code = "event_not_active"
    default_detail = "Event is not currently active"


class EventNotEnded(DomainError):
    code = "event_not_ended"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Cannot mark absent students for ongoing or future events"


class WrongOrganization(DomainError):
    code = "wrong_organization"
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Student not part of this organization"


class ScanNotPermitted(DomainError):
    code = "scan_not_permitted"
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Only organization members can record attendance"


class DuplicateAttendance(DomainError):
    code = "duplicate_attendance"
    status_code = status.HTTP_409_CONFLICT
    default_detail = "You have already marked attendance for this event"


class AmountExceedsBalance(DomainError):
    code = "amount_exceeds_balance"
    default_detail = "Payment amount exceeds current balance"


class InvalidEventWindow(DomainError):
    code = "invalid_event_window"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "end_time must be after start_time"


class EventHasAttendance(DomainError):
    code = "event_has_attendance"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Cannot delete event with attendance records"
