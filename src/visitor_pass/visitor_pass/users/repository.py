from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from ..core.enums import Role
from .model import User


class UserRepository(Protocol):
    """Repository interface for User.

    Note (DIP): the service layer depends on this interface, not on a concrete DB.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def create_user(
        self,
        *,
        full_name: str,
        email: str,
        password_hash: str,
        role: Role,
    ) -> int:
        raise NotImplementedError

    def set_suspended(self, user_id: int, *, is_suspended: bool, tx: Any = None) -> bool:
        raise NotImplementedError

    def list_admin_view(self) -> Sequence[dict]:
        """Every user without the password hash, newest first."""

        raise NotImplementedError

    def list_active_hosts(self) -> Sequence[dict]:
        raise NotImplementedError
