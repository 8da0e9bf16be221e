from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Protocol, Sequence

from ..core.enums import AuditAction, AuditTargetType
from .model import AuditValue


class AuditRepository(Protocol):
    """Append-only store: there is deliberately no update or delete method."""

    def append(
        self,
        *,
        action: AuditAction,
        admin_id: int,
        target_type: AuditTargetType,
        target_id: int,
        metadata: Mapping[str, AuditValue],
        created_at: datetime,
        tx: Any = None,
    ) -> int:
        raise NotImplementedError

    def list_admin_view(self) -> Sequence[dict]:
        """Entries newest first, joined with the admin and (for request targets) the request."""

        raise NotImplementedError
