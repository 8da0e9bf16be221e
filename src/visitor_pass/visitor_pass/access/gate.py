from __future__ import annotations

import logging
from enum import Enum
from typing import FrozenSet, Optional

from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError
from ..users.repository import UserRepository
from .model import Actor
from .tokens import TokenService

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    """Every gated operation. Visit submission and host listing are anonymous."""

    LIST_OWN_REQUESTS = "list-own-requests"
    APPROVE_REQUEST = "approve-request"
    REJECT_REQUEST = "reject-request"
    VIEW_PASS = "view-pass"
    LIST_APPROVED_WITH_LOGS = "list-approved-with-logs"
    MARK_ENTRY = "mark-entry"
    MARK_EXIT = "mark-exit"
    OVERRIDE_STATUS = "override-status"
    FORCE_ENTRY = "force-entry"
    FORCE_EXIT = "force-exit"
    LIST_AUDIT_LOG = "list-audit-log"
    LIST_ALL_REQUESTS = "list-all-requests"
    LIST_USERS = "list-users"
    REGISTER_USER = "register-user"
    SUSPEND_USER = "suspend-user"


_HOST_OPERATIONS: FrozenSet[Operation] = frozenset(
    {
        Operation.LIST_OWN_REQUESTS,
        Operation.APPROVE_REQUEST,
        Operation.REJECT_REQUEST,
        Operation.VIEW_PASS,
    }
)

_SECURITY_OPERATIONS: FrozenSet[Operation] = frozenset(
    {
        Operation.LIST_APPROVED_WITH_LOGS,
        Operation.MARK_ENTRY,
        Operation.MARK_EXIT,
    }
)

_ADMIN_OPERATIONS: FrozenSet[Operation] = frozenset(
    {
        Operation.VIEW_PASS,
        Operation.OVERRIDE_STATUS,
        Operation.FORCE_ENTRY,
        Operation.FORCE_EXIT,
        Operation.LIST_AUDIT_LOG,
        Operation.LIST_ALL_REQUESTS,
        Operation.LIST_USERS,
        Operation.REGISTER_USER,
        Operation.SUSPEND_USER,
    }
)


def permitted_operations(role: Role) -> FrozenSet[Operation]:
    if role is Role.ADMIN:
        return _ADMIN_OPERATIONS
    if role is Role.HOST:
        return _HOST_OPERATIONS
    if role is Role.SECURITY:
        return _SECURITY_OPERATIONS
    raise AssertionError(f"Unhandled role: {role!r}")


def ensure_permitted(actor: Actor, operation: Operation) -> None:
    if operation not in permitted_operations(actor.role):
        raise AuthorizationError("You are not allowed to perform this action")


def ensure_owner(actor: Actor, host_id: int) -> None:
    """Host operations only apply to the host's own requests."""
    if actor.role is Role.HOST and int(actor.user_id) != int(host_id):
        raise AuthorizationError("Only the host of this request may act on it")


class AccessGate:
    """Credential verification + role check in front of every core operation.

    - invalid/expired/stale credential, deleted or suspended user -> AuthenticationError
    - valid actor without the required role -> AuthorizationError
    """

    def __init__(self, tokens: TokenService, users: UserRepository):
        self._tokens = tokens
        self._users = users

    def authenticate(self, token: Optional[str]) -> Actor:
        claims = self._tokens.verify(token)

        user = self._users.get_by_id(claims.user_id)
        if not user:
            raise AuthenticationError("User no longer exists")
        if user.is_suspended:
            logger.warning("Suspended user %s presented a token", user.user_id)
            raise AuthenticationError("Account suspended")
        if user.role != claims.role:
            raise AuthenticationError("Role changed, please sign in again")

        return Actor(user_id=user.user_id, full_name=user.full_name, role=user.role)

    def authorize(self, token: Optional[str], operation: Operation) -> Actor:
        actor = self.authenticate(token)
        ensure_permitted(actor, operation)
        return actor
