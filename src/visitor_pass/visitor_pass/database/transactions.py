from __future__ import annotations

from typing import Any, ContextManager, Protocol


class TransactionManager(Protocol):
    """Unit of work used by services that must commit several writes together."""

    def atomic(self) -> ContextManager[Any]:
        """Yield a transaction handle that repository write methods accept as ``tx``."""

        raise NotImplementedError
