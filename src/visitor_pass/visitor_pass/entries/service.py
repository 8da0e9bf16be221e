from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional, Sequence

from ..access.gate import Operation, ensure_permitted
from ..access.model import Actor
from ..audit.service import AuditTrail
from ..common.datetime_utils import now_local
from ..core.enums import AuditAction, AuditTargetType
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..database.transactions import TransactionManager
from ..visits.model import VisitRequest
from ..visits.repository import VisitRequestRepository
from .model import EntryLog, classify_stage
from .repository import EntryLogRepository

logger = logging.getLogger(__name__)


class GateService:
    """Entry/exit at the security gate.

    Security staff mark entry only on the visit day; admins can force entry/exit
    regardless of the date, and every forced action is written to the audit trail.
    Routine security actions only go to the application log.
    """

    def __init__(
        self,
        visits: VisitRequestRepository,
        entries: EntryLogRepository,
        audit: AuditTrail,
        transactions: TransactionManager,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._visits = visits
        self._entries = entries
        self._audit = audit
        self._transactions = transactions
        self._clock = clock or now_local

    def _get_approved_request(self, request_id: int) -> VisitRequest:
        req = self._visits.get(int(request_id))
        if not req:
            raise NotFoundError("Request not found")
        if not req.is_approved:
            raise ConflictError("Request is not approved")
        return req

    def _entered_log(self, request_id: int, *, missing: type[Exception]) -> EntryLog:
        log = self._entries.get_for_request(request_id)
        if not log:
            raise missing("No entry log found")
        if log.in_time is None:
            raise ConflictError("Entry not marked yet")
        if log.out_time is not None:
            raise ConflictError("Exit already marked")
        return log

    def _exit_time(self, log: EntryLog) -> datetime:
        # A clock step backwards must never produce out_time < in_time.
        return max(self._clock(), log.in_time)

    def list_approved_with_logs(self, actor: Actor) -> Sequence[dict]:
        ensure_permitted(actor, Operation.LIST_APPROVED_WITH_LOGS)

        rows = self._visits.list_approved()
        logs = self._entries.list_for_requests(r["request_id"] for r in rows)

        out: list[dict] = []
        for r in rows:
            log = logs.get(r["request_id"])
            out.append(
                {
                    **r,
                    "entry_log": log.as_dict() if log else None,
                    "stage": classify_stage(log).value,
                }
            )
        return out

    def mark_entry(self, actor: Actor, request_id: int) -> datetime:
        ensure_permitted(actor, Operation.MARK_ENTRY)
        req = self._get_approved_request(request_id)

        now = self._clock()
        if req.visit_date != now.date():
            raise ValidationError("Visit date mismatch")

        if not self._entries.mark_entry(request_id=req.request_id, in_time=now):
            raise ConflictError("Entry already marked")

        logger.info("Security %s marked entry for request %s", actor.user_id, req.request_id)
        return now

    def mark_exit(self, actor: Actor, request_id: int) -> datetime:
        ensure_permitted(actor, Operation.MARK_EXIT)
        req = self._visits.get(int(request_id))
        if not req:
            raise NotFoundError("Request not found")

        log = self._entered_log(req.request_id, missing=ConflictError)
        out_time = self._exit_time(log)
        if not self._entries.mark_exit(request_id=req.request_id, out_time=out_time):
            raise ConflictError("Exit already marked")

        logger.info("Security %s marked exit for request %s", actor.user_id, req.request_id)
        return out_time

    def force_entry(self, actor: Actor, request_id: int) -> datetime:
        ensure_permitted(actor, Operation.FORCE_ENTRY)
        req = self._get_approved_request(request_id)

        now = self._clock()
        with self._transactions.atomic() as tx:
            if not self._entries.mark_entry(request_id=req.request_id, in_time=now, tx=tx):
                raise ConflictError("Entry already marked")
            self._audit.record(
                action=AuditAction.FORCE_ENTRY,
                admin_id=actor.user_id,
                target_type=AuditTargetType.REQUEST,
                target_id=req.request_id,
                metadata={"inTime": now},
                tx=tx,
            )

        logger.warning("Admin %s forced entry for request %s", actor.user_id, req.request_id)
        return now

    def force_exit(self, actor: Actor, request_id: int) -> datetime:
        ensure_permitted(actor, Operation.FORCE_EXIT)
        req = self._visits.get(int(request_id))
        if not req:
            raise NotFoundError("Request not found")

        log = self._entered_log(req.request_id, missing=NotFoundError)
        out_time = self._exit_time(log)
        with self._transactions.atomic() as tx:
            if not self._entries.mark_exit(request_id=req.request_id, out_time=out_time, tx=tx):
                raise ConflictError("Exit already marked")
            self._audit.record(
                action=AuditAction.FORCE_EXIT,
                admin_id=actor.user_id,
                target_type=AuditTargetType.REQUEST,
                target_id=req.request_id,
                metadata={"outTime": out_time},
                tx=tx,
            )

        logger.warning("Admin %s forced exit for request %s", actor.user_id, req.request_id)
        return out_time
