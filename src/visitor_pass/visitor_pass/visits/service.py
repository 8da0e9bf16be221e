from __future__ import annotations

import io
import logging
from datetime import date, datetime
from typing import Any, Callable, Optional, Sequence, Union

import qrcode

from ..access.gate import Operation, ensure_owner, ensure_permitted
from ..access.model import Actor
from ..audit.service import AuditTrail
from ..common.datetime_utils import now_local, parse_iso_date
from ..common.validators import optional_text, require_id, require_min_length, require_non_empty, require_phone
from ..core.constants import MIN_PURPOSE_LENGTH, MIN_VISITOR_NAME_LENGTH, PASS_CODE_MAX_ATTEMPTS
from ..core.enums import AuditAction, AuditTargetType, RequestStatus, Role
from ..core.exceptions import ConflictError, NotFoundError, PersistenceError, ValidationError
from ..database.transactions import TransactionManager
from ..users.repository import UserRepository
from ..visitors.repository import VisitorRepository
from .model import VisitRequest
from .passcodes import PassCodeGenerator
from .repository import DuplicatePassCodeError, VisitRequestRepository

logger = logging.getLogger(__name__)


def parse_status(value: Union[str, RequestStatus, None]) -> RequestStatus:
    if isinstance(value, RequestStatus):
        return value
    try:
        return RequestStatus(str(value or "").strip().lower())
    except ValueError:
        raise ValidationError("Invalid status")


class VisitRequestService:
    """Lifecycle of a visit request: submit -> approve | reject, plus admin override.

    Pass code policy: any write that leaves a request APPROVED issues a fresh
    unique code; any write that leaves it PENDING or REJECTED clears the code.
    """

    def __init__(
        self,
        visits: VisitRequestRepository,
        visitors: VisitorRepository,
        users: UserRepository,
        audit: AuditTrail,
        transactions: TransactionManager,
        *,
        pass_codes: Optional[PassCodeGenerator] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._visits = visits
        self._visitors = visitors
        self._users = users
        self._audit = audit
        self._transactions = transactions
        self._pass_codes = pass_codes or PassCodeGenerator()
        self._clock = clock or now_local

    # -------- Visitor-facing --------
    def _parse_visit_date(self, value: Union[str, date, None]) -> date:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        raw = require_non_empty(value, "Visit date")
        try:
            return parse_iso_date(raw)
        except ValueError:
            raise ValidationError("Invalid visit date")

    def submit(
        self,
        *,
        name: Optional[str],
        phone: Optional[str],
        id_proof: Optional[str],
        host_id: Any,
        purpose: Optional[str],
        visit_date: Union[str, date, None],
    ) -> int:
        name = require_min_length(require_non_empty(name, "Name"), "Name", MIN_VISITOR_NAME_LENGTH)
        phone = require_phone(phone)
        purpose = require_min_length(require_non_empty(purpose, "Purpose"), "Purpose", MIN_PURPOSE_LENGTH)
        id_proof = optional_text(id_proof)

        host_id = require_id(host_id, "Host")

        day = self._parse_visit_date(visit_date)
        if day < self._clock().date():
            raise ValidationError("Visit date cannot be in the past")

        host = self._users.get_by_id(host_id)
        if not host or host.role != Role.HOST:
            raise ValidationError("Host does not exist")
        if host.is_suspended:
            raise ValidationError("Host is not available")

        with self._transactions.atomic() as tx:
            visitor_id = self._visitors.find_or_create(full_name=name, phone=phone, id_proof=id_proof, tx=tx)
            request_id = self._visits.create(
                visitor_id=visitor_id,
                host_id=host_id,
                purpose=purpose,
                visit_date=day,
                tx=tx,
            )

        logger.info("Visit request %s submitted for host %s (visitor %s)", request_id, host_id, visitor_id)
        return request_id

    # -------- Host --------
    def _get_request(self, request_id: int) -> VisitRequest:
        req = self._visits.get(int(request_id))
        if not req:
            raise NotFoundError("Request not found")
        return req

    def _write_status(self, request_id: int, status: RequestStatus, *, tx: Any = None) -> Optional[str]:
        if status != RequestStatus.APPROVED:
            if not self._visits.set_status(request_id=request_id, status=status, pass_code=None, tx=tx):
                raise NotFoundError("Request not found")
            return None

        for _ in range(PASS_CODE_MAX_ATTEMPTS):
            code = self._pass_codes.next_code()
            try:
                updated = self._visits.set_status(request_id=request_id, status=status, pass_code=code, tx=tx)
            except DuplicatePassCodeError:
                logger.warning("Pass code collision on request %s, regenerating", request_id)
                continue
            if not updated:
                raise NotFoundError("Request not found")
            return code

        raise PersistenceError("Could not issue a unique pass code")

    def list_own_requests(self, actor: Actor) -> Sequence[dict]:
        ensure_permitted(actor, Operation.LIST_OWN_REQUESTS)
        return self._visits.list_for_host(actor.user_id)

    def approve(self, actor: Actor, request_id: int) -> str:
        ensure_permitted(actor, Operation.APPROVE_REQUEST)
        req = self._get_request(request_id)
        ensure_owner(actor, req.host_id)

        code = self._write_status(req.request_id, RequestStatus.APPROVED)
        logger.info("Host %s approved request %s", actor.user_id, req.request_id)
        return code

    def reject(self, actor: Actor, request_id: int) -> None:
        ensure_permitted(actor, Operation.REJECT_REQUEST)
        req = self._get_request(request_id)
        ensure_owner(actor, req.host_id)

        self._write_status(req.request_id, RequestStatus.REJECTED)
        logger.info("Host %s rejected request %s", actor.user_id, req.request_id)

    def pass_qr_png(self, actor: Actor, request_id: int) -> bytes:
        ensure_permitted(actor, Operation.VIEW_PASS)
        req = self._get_request(request_id)
        ensure_owner(actor, req.host_id)
        if not req.is_approved or not req.pass_code:
            raise ConflictError("Request is not approved")

        img = qrcode.make(req.pass_code)
        buf = io.BytesIO()
        img.save(buf)
        return buf.getvalue()

    # -------- Admin --------
    def override_status(self, actor: Actor, request_id: int, new_status: Union[str, RequestStatus, None]) -> dict:
        ensure_permitted(actor, Operation.OVERRIDE_STATUS)
        status = parse_status(new_status)

        with self._transactions.atomic() as tx:
            req = self._visits.lock(int(request_id), tx=tx)
            if not req:
                raise NotFoundError("Request not found")
            previous = req.status
            code = self._write_status(req.request_id, status, tx=tx)
            self._audit.record(
                action=AuditAction.OVERRIDE_STATUS,
                admin_id=actor.user_id,
                target_type=AuditTargetType.REQUEST,
                target_id=req.request_id,
                metadata={"previousStatus": previous.value, "newStatus": status.value},
                tx=tx,
            )

        logger.warning(
            "Admin %s overrode request %s: %s -> %s", actor.user_id, req.request_id, previous.value, status.value
        )
        return {"request_id": req.request_id, "previous_status": previous.value, "status": status.value, "pass_code": code}

    def list_all_requests(self, actor: Actor, *, status: Union[str, RequestStatus, None] = None) -> Sequence[dict]:
        ensure_permitted(actor, Operation.LIST_ALL_REQUESTS)
        wanted = parse_status(status) if status else None
        return self._visits.list_all(status=wanted)
