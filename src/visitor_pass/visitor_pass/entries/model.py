from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import format_dt
from ..core.enums import VisitStage


@dataclass(frozen=True)
class EntryLog:
    """Domain entity: gate timestamps of one approved request (at most one log per request).

    Invariants: out_time set => in_time set; out_time >= in_time.
    """

    entry_id: int
    visit_request_id: int
    in_time: Optional[datetime] = None
    out_time: Optional[datetime] = None

    def as_dict(self) -> dict:
        return {
            "entry_id": self.entry_id,
            "visit_request_id": self.visit_request_id,
            "in_time": format_dt(self.in_time),
            "out_time": format_dt(self.out_time),
        }


def classify_stage(log: Optional[EntryLog]) -> VisitStage:
    if log is None or log.in_time is None:
        return VisitStage.QUEUE
    if log.out_time is None:
        return VisitStage.INSIDE
    return VisitStage.EXITED
