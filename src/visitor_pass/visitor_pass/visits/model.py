from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import RequestStatus


@dataclass(frozen=True)
class VisitRequest:
    """Domain entity: a visit request and its approval state.

    Invariant: ``pass_code`` is set if and only if ``status`` is APPROVED.
    """

    request_id: int
    visitor_id: int
    host_id: int
    purpose: str
    visit_date: date
    status: RequestStatus
    pass_code: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_approved(self) -> bool:
        return self.status == RequestStatus.APPROVED
