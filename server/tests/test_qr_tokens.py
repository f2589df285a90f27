from __future__ import annotations

from datetime import timedelta

import pytest
from jose import jwt

from app.core.config import settings
from app.core.errors import EventNoLongerActive, EventNotActive, EventNotFound, Expired, InvalidSignature
from app.services.qr_tokens import decode_token, issue_token, verify_token

from conftest import NOW


def test_token_accepted_until_event_end(db_session, active_event):
    token = issue_token(active_event, now=NOW)

    payload = decode_token(token, now=active_event.end_time - timedelta(seconds=1))
    assert payload.event_id == active_event.id
    assert payload.organization_id == active_event.organization_id
    assert payload.event_title == "General Assembly"

    with pytest.raises(Expired):
        decode_token(token, now=active_event.end_time + timedelta(seconds=1))


def test_tampered_payload_is_rejected(db_session, active_event):
    token = issue_token(active_event, now=NOW)
    header, _, signature = token.split(".")
    claims = jwt.get_unverified_claims(token)
    claims["organization_id"] += 1
    forged_claims = jwt.encode(claims, "attacker").split(".")[1]

    with pytest.raises(InvalidSignature):
        decode_token(f"{header}.{forged_claims}.{signature}", now=NOW)


def test_token_signed_with_other_secret_is_rejected(db_session, active_event):
    token = issue_token(active_event, now=NOW, secret="someone-else")

    with pytest.raises(InvalidSignature):
        decode_token(token, now=NOW)


@pytest.mark.parametrize("raw", ["", "not-a-token", "%%%.abc.def", "e30.e30.deadbeef"])
def test_malformed_tokens_are_invalid(raw):
    with pytest.raises(InvalidSignature):
        decode_token(raw, now=NOW)


def test_token_only_issued_for_running_events(make_event, organization):
    upcoming = make_event(organization, start=NOW + timedelta(hours=1), end=NOW + timedelta(hours=2))
    with pytest.raises(EventNotActive):
        issue_token(upcoming, now=NOW)


def test_verify_resolves_event(db_session, active_event):
    token = issue_token(active_event, now=NOW)

    payload, event = verify_token(db_session, token, now=NOW)
    assert payload.event_id == event.id == active_event.id


def test_verify_rejects_deactivated_event(db_session, active_event):
    token = issue_token(active_event, now=NOW)
    active_event.is_active = False
    db_session.commit()

    with pytest.raises(EventNoLongerActive):
        verify_token(db_session, token, now=NOW)


def test_verify_rejects_deleted_event(db_session, active_event):
    token = issue_token(active_event, now=NOW)
    db_session.delete(active_event)
    db_session.commit()

    with pytest.raises(EventNotFound):
        verify_token(db_session, token, now=NOW)


def test_expiry_respects_fractional_end_time(make_event, organization):
    event = make_event(organization, end=NOW + timedelta(milliseconds=500))
    token = issue_token(event, now=NOW)

    assert decode_token(token, now=NOW + timedelta(milliseconds=400)).event_id == event.id
    with pytest.raises(Expired):
        decode_token(token, now=NOW + timedelta(milliseconds=900))


def test_token_without_event_claims_is_rejected():
    token = jwt.encode({"event_id": 1}, settings.QR_SIGNING_SECRET, algorithm="HS256")

    with pytest.raises(InvalidSignature):
        decode_token(token, now=NOW)
