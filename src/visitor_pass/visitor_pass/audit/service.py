from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Sequence

from ..access.gate import Operation, ensure_permitted
from ..access.model import Actor
from ..common.datetime_utils import now_local
from ..core.enums import AuditAction, AuditTargetType
from .model import AuditEntry, AuditValue, normalize_metadata
from .repository import AuditRepository

logger = logging.getLogger(__name__)


class AuditTrail:
    """Append-only writer and newest-first admin view of privileged actions."""

    def __init__(self, audits: AuditRepository, *, clock: Optional[Callable[[], datetime]] = None):
        self._audits = audits
        self._clock = clock or now_local

    def record(
        self,
        *,
        action: AuditAction,
        admin_id: int,
        target_type: AuditTargetType,
        target_id: int,
        metadata: Optional[Mapping[str, AuditValue]] = None,
        tx: Any = None,
    ) -> AuditEntry:
        """Append one entry and return it exactly as written."""
        entry_fields = dict(
            action=AuditAction(action),
            admin_id=int(admin_id),
            target_type=AuditTargetType(target_type),
            target_id=int(target_id),
            metadata=normalize_metadata(metadata),
            created_at=self._clock(),
        )
        audit_id = self._audits.append(**entry_fields, tx=tx)
        entry = AuditEntry(audit_id=audit_id, **entry_fields)
        logger.info(
            "audit #%s: admin %s %s %s #%s",
            entry.audit_id,
            entry.admin_id,
            entry.action.value,
            entry.target_type.value,
            entry.target_id,
        )
        return entry

    def list_for_admin(self, actor: Actor) -> Sequence[dict]:
        ensure_permitted(actor, Operation.LIST_AUDIT_LOG)
        return self._audits.list_admin_view()
