from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Protocol

from .model import EntryLog


class EntryLogRepository(Protocol):
    def get_for_request(self, request_id: int) -> Optional[EntryLog]:
        raise NotImplementedError

    def list_for_requests(self, request_ids: Iterable[int]) -> Mapping[int, EntryLog]:
        """Logs keyed by visit request id."""

        raise NotImplementedError

    def mark_entry(self, *, request_id: int, in_time: datetime, tx: Any = None) -> bool:
        """Set in_time, creating the log if absent. False if in_time was already set.

        Check and write are atomic per request id.
        """

        raise NotImplementedError

    def mark_exit(self, *, request_id: int, out_time: datetime, tx: Any = None) -> bool:
        """Set out_time only when in_time is set and out_time is not. False otherwise."""

        raise NotImplementedError
