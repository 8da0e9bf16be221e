from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone

import pytest

from src.visitor_pass.visitor_pass.core.enums import AuditAction, AuditTargetType, RequestStatus
from src.visitor_pass.visitor_pass.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from src.visitor_pass.visitor_pass.visits.service import VisitRequestService, parse_status

PASS_CODE_RE = re.compile(r"^PASS-[A-Z0-9]+$")


def _submit(world, **overrides):
    data = dict(
        name="Jane",
        phone="9876543210",
        id_proof=None,
        host_id=world.host.user_id,
        purpose="Meeting",
        visit_date=world.clock.now.date().isoformat(),
    )
    data.update(overrides)
    return world.visit_service.submit(**data)


def _assert_pass_code_invariant(world):
    codes = []
    for r in world.visits.requests.values():
        assert (r.status == RequestStatus.APPROVED) == (r.pass_code is not None)
        if r.pass_code:
            codes.append(r.pass_code)
    assert len(codes) == len(set(codes))


def test_submit_creates_pending_request_and_visitor(world):
    rid = _submit(world, id_proof="  DL-778  ")

    req = world.visits.get(rid)
    assert req.status == RequestStatus.PENDING
    assert req.pass_code is None
    assert req.host_id == world.host.user_id
    assert req.visit_date == date(2026, 10, 19)

    visitor = world.visitors.visitors[req.visitor_id]
    assert visitor["full_name"] == "Jane"
    assert visitor["id_proof"] == "DL-778"


def test_second_submit_with_same_phone_reuses_visitor(world):
    first = _submit(world)
    second = _submit(world, name="Jane Doe", purpose="Interview")

    assert first != second
    assert world.visits.get(first).visitor_id == world.visits.get(second).visitor_id
    assert len(world.visitors.visitors) == 1
    # Identity is keyed by phone: the stored name is not overwritten.
    assert world.visitors.by_phone("9876543210")["full_name"] == "Jane"


def test_submit_accepts_iso_timestamp_for_visit_date(world):
    rid = _submit(world, visit_date="2026-10-21T00:00:00.000Z")
    expected = datetime(2026, 10, 21, tzinfo=timezone.utc).astimezone().date()
    assert world.visits.get(rid).visit_date == expected


def test_submit_accepts_host_id_as_digit_string(world):
    rid = _submit(world, host_id=str(world.host.user_id))
    assert world.visits.get(rid).host_id == world.host.user_id


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"name": ""}, "Name is required"),
        ({"name": "J"}, "Name must be at least 2 characters"),
        ({"phone": "12345"}, "Phone must be exactly 10 digits"),
        ({"phone": "98765abcde"}, "Phone must be exactly 10 digits"),
        ({"phone": "٩٨٧٦٥٤٣٢١٠"}, "Phone must be exactly 10 digits"),
        ({"purpose": "Hi"}, "Purpose must be at least 3 characters"),
        ({"host_id": None}, "Host is required"),
        ({"host_id": "abc"}, "Invalid host ID"),
        ({"host_id": 2.7}, "Invalid host ID"),
        ({"host_id": True}, "Invalid host ID"),
        ({"host_id": "٢"}, "Invalid host ID"),
        ({"visit_date": None}, "Visit date is required"),
        ({"visit_date": "19/10/2026"}, "Invalid visit date"),
        ({"visit_date": "2026-10-19garbage"}, "Invalid visit date"),
        ({"visit_date": "2026-10-18"}, "Visit date cannot be in the past"),
    ],
)
def test_submit_rejects_invalid_input(world, overrides, message):
    with pytest.raises(ValidationError) as exc:
        _submit(world, **overrides)

    assert str(exc.value) == message
    assert world.visitors.visitors == {}
    assert world.visits.requests == {}


def test_submit_requires_an_existing_active_host(world):
    with pytest.raises(ValidationError):
        _submit(world, host_id=world.security.user_id)
    with pytest.raises(ValidationError):
        _submit(world, host_id=999)

    world.users.set_suspended(world.host.user_id, is_suspended=True)
    with pytest.raises(ValidationError, match="not available"):
        _submit(world)


def test_submit_rolls_back_visitor_when_request_write_fails(world):
    world.visits.fail_on_create = True

    with pytest.raises(RuntimeError):
        _submit(world)

    assert world.visitors.visitors == {}
    assert world.transactions.rollbacks == 1


def test_approve_by_owning_host_issues_pass_code(world):
    rid = _submit(world)

    code = world.visit_service.approve(world.host, rid)

    req = world.visits.get(rid)
    assert req.status == RequestStatus.APPROVED
    assert req.pass_code == code
    assert PASS_CODE_RE.match(code)
    _assert_pass_code_invariant(world)


def test_approve_by_other_host_is_forbidden(world):
    rid = _submit(world)

    with pytest.raises(AuthorizationError):
        world.visit_service.approve(world.other_host, rid)
    with pytest.raises(AuthorizationError):
        world.visit_service.reject(world.other_host, rid)

    assert world.visits.get(rid).status == RequestStatus.PENDING


def test_security_cannot_approve(world):
    rid = _submit(world)
    with pytest.raises(AuthorizationError):
        world.visit_service.approve(world.security, rid)


def test_approve_unknown_request(world):
    with pytest.raises(NotFoundError):
        world.visit_service.approve(world.host, 404)


def test_repeated_approve_issues_a_fresh_code(world):
    rid = _submit(world)
    first = world.visit_service.approve(world.host, rid)
    second = world.visit_service.approve(world.host, rid)

    assert first != second
    assert world.visits.get(rid).pass_code == second


def test_reject_clears_pass_code(world):
    rid = _submit(world)
    world.visit_service.approve(world.host, rid)

    world.visit_service.reject(world.host, rid)

    req = world.visits.get(rid)
    assert req.status == RequestStatus.REJECTED
    assert req.pass_code is None
    _assert_pass_code_invariant(world)


def test_pass_codes_stay_unique_across_requests(world):
    ids = [_submit(world, phone=f"90000000{i:02d}") for i in range(20)]
    codes = {world.visit_service.approve(world.host, rid) for rid in ids}

    assert len(codes) == 20
    _assert_pass_code_invariant(world)


class _ScriptedCodes:
    def __init__(self, *codes):
        self._codes = list(codes)

    def next_code(self):
        return self._codes.pop(0)


def _service_with_codes(world, *codes):
    return VisitRequestService(
        world.visits,
        world.visitors,
        world.users,
        world.audit_trail,
        world.transactions,
        pass_codes=_ScriptedCodes(*codes),
        clock=lambda: world.clock.now,
    )


def test_pass_code_collision_is_retried(world):
    taken = world.visits.add(host_id=world.host.user_id, visit_date=date(2026, 10, 19), status=RequestStatus.APPROVED, pass_code="PASS-TAKEN")
    rid = _submit(world, phone="9111111111")

    service = _service_with_codes(world, "PASS-TAKEN", "PASS-FRESH")
    assert service.approve(world.host, rid) == "PASS-FRESH"
    assert world.visits.get(taken.request_id).pass_code == "PASS-TAKEN"


def test_pass_code_gives_up_after_repeated_collisions(world):
    world.visits.add(host_id=world.host.user_id, visit_date=date(2026, 10, 19), status=RequestStatus.APPROVED, pass_code="PASS-TAKEN")
    rid = _submit(world, phone="9111111111")

    service = _service_with_codes(world, "PASS-TAKEN", "PASS-TAKEN", "PASS-TAKEN")
    with pytest.raises(PersistenceError):
        service.approve(world.host, rid)
    assert world.visits.get(rid).status == RequestStatus.PENDING


def test_list_own_requests_only_returns_hosts_requests(world):
    mine = _submit(world)
    _submit(world, phone="9222222222", host_id=world.other_host.user_id)

    rows = world.visit_service.list_own_requests(world.host)
    assert [r["request_id"] for r in rows] == [mine]


def test_override_status_records_exactly_one_audit_entry(world):
    rid = _submit(world)

    result = world.visit_service.override_status(world.admin, rid, "approved")

    assert result["previous_status"] == "pending"
    assert result["status"] == "approved"
    assert PASS_CODE_RE.match(result["pass_code"])

    assert len(world.audits.entries) == 1
    entry = world.audits.entries[0]
    assert entry.action == AuditAction.OVERRIDE_STATUS
    assert entry.target_type == AuditTargetType.REQUEST
    assert entry.target_id == rid
    assert entry.admin_id == world.admin.user_id
    assert dict(entry.metadata) == {"previousStatus": "pending", "newStatus": "approved"}
    _assert_pass_code_invariant(world)


def test_override_reports_status_read_under_lock(world, monkeypatch):
    rid = _submit(world)
    stale = world.visits.get(rid)
    world.visits.set_status(request_id=rid, status=RequestStatus.APPROVED, pass_code="PASS-X")
    monkeypatch.setattr(world.visits, "get", lambda request_id: stale)

    result = world.visit_service.override_status(world.admin, rid, "rejected")

    assert result["previous_status"] == "approved"
    assert world.audits.entries[0].metadata["previousStatus"] == "approved"
    assert world.visits.requests[rid].pass_code is None


def test_override_back_to_pending_clears_pass_code(world):
    rid = _submit(world)
    world.visit_service.approve(world.host, rid)

    result = world.visit_service.override_status(world.admin, rid, "PENDING")

    assert result["pass_code"] is None
    assert world.visits.get(rid).pass_code is None
    _assert_pass_code_invariant(world)


def test_override_rejects_unknown_status_without_auditing(world):
    rid = _submit(world)

    with pytest.raises(ValidationError, match="Invalid status"):
        world.visit_service.override_status(world.admin, rid, "cancelled")

    assert world.audits.entries == []


def test_override_is_admin_only(world):
    rid = _submit(world)
    with pytest.raises(AuthorizationError):
        world.visit_service.override_status(world.host, rid, "approved")


def test_override_rolls_back_status_when_audit_write_fails(world):
    rid = _submit(world)
    world.audits.fail_on_append = True

    with pytest.raises(RuntimeError):
        world.visit_service.override_status(world.admin, rid, "rejected")

    assert world.visits.get(rid).status == RequestStatus.PENDING


def test_list_all_requests_filters_by_status(world):
    a = _submit(world)
    b = _submit(world, phone="9333333333")
    world.visit_service.approve(world.host, b)

    assert [r["request_id"] for r in world.visit_service.list_all_requests(world.admin)] == [b, a]
    approved = world.visit_service.list_all_requests(world.admin, status="approved")
    assert [r["request_id"] for r in approved] == [b]

    with pytest.raises(ValidationError):
        world.visit_service.list_all_requests(world.admin, status="bogus")


def test_pass_qr_png_for_approved_request(world):
    rid = _submit(world)
    with pytest.raises(ConflictError):
        world.visit_service.pass_qr_png(world.host, rid)

    world.visit_service.approve(world.host, rid)
    png = world.visit_service.pass_qr_png(world.host, rid)
    assert png.startswith(b"\x89PNG")

    # Admins may view any pass; other hosts may not.
    assert world.visit_service.pass_qr_png(world.admin, rid).startswith(b"\x89PNG")
    with pytest.raises(AuthorizationError):
        world.visit_service.pass_qr_png(world.other_host, rid)


def test_parse_status():
    assert parse_status(" Approved ") == RequestStatus.APPROVED
    assert parse_status(RequestStatus.REJECTED) == RequestStatus.REJECTED
    with pytest.raises(ValidationError):
        parse_status(None)


def test_future_visit_date_is_accepted(world):
    rid = _submit(world, visit_date=(world.clock.now.date() + timedelta(days=7)).isoformat())
    assert world.visits.get(rid).visit_date == date(2026, 10, 26)
