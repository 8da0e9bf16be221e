from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: an actor account (admin, host or security staff).

    Note: plain data object, no DB access code here.
    """

    user_id: int
    full_name: str
    email: str
    password_hash: str
    role: Role
    is_suspended: bool = False
    created_at: Optional[datetime] = None
