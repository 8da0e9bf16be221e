from __future__ import annotations

from datetime import date
from typing import Any, Optional, Protocol, Sequence

from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import RequestStatus
from ..core.exceptions import ConflictError
from .model import VisitRequest


class DuplicatePassCodeError(ConflictError):
    """The store already holds this pass code (unique constraint)."""


class VisitRequestRepository(Protocol):
    def create(
        self,
        *,
        visitor_id: int,
        host_id: int,
        purpose: str,
        visit_date: date,
        tx: Any = None,
    ) -> int:
        raise NotImplementedError

    def get(self, request_id: int) -> Optional[VisitRequest]:
        raise NotImplementedError

    def lock(self, request_id: int, *, tx: Any) -> Optional[VisitRequest]:
        """Read the request inside ``tx`` and hold its row until the transaction ends."""

        raise NotImplementedError

    def set_status(
        self,
        *,
        request_id: int,
        status: RequestStatus,
        pass_code: Optional[str],
        tx: Any = None,
    ) -> bool:
        """Write status and pass code together. Raises DuplicatePassCodeError on a code clash."""

        raise NotImplementedError

    def list_for_host(self, host_id: int) -> Sequence[dict]:
        """Return UI rows (joined with visitor), newest first."""

        raise NotImplementedError

    def list_approved(self) -> Sequence[dict]:
        """Return UI rows (joined with visitor and host), newest first."""

        raise NotImplementedError

    def list_all(self, *, status: Optional[RequestStatus] = None, limit: int = DEFAULT_LIST_LIMIT) -> Sequence[dict]:
        raise NotImplementedError
