from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import Role


@dataclass(frozen=True)
class Claims:
    """What a verified bearer token asserts, before the store confirms it."""

    user_id: int
    role: Role


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, passed explicitly into every service call."""

    user_id: int
    full_name: str
    role: Role
