from __future__ import annotations

from typing import Any, Optional, Protocol


class VisitorRepository(Protocol):
    def find_or_create(
        self,
        *,
        full_name: str,
        phone: str,
        id_proof: Optional[str],
        tx: Any = None,
    ) -> int:
        """Return the id of the visitor owning ``phone``, creating it if absent.

        Must be race-free: two concurrent calls with the same new phone yield one
        visitor. An existing visitor keeps its name; a missing id proof is backfilled.
        """

        raise NotImplementedError
