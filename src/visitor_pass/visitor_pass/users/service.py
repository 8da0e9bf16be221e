from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence, Union

from werkzeug.security import check_password_hash, generate_password_hash

from ..access.gate import Operation, ensure_permitted
from ..access.model import Actor
from ..access.tokens import TokenService
from ..audit.service import AuditTrail
from ..common.validators import require_email, require_min_length, require_non_empty
from ..core.constants import MIN_PASSWORD_LENGTH, MIN_VISITOR_NAME_LENGTH
from ..core.enums import AuditAction, AuditTargetType, Role
from ..core.exceptions import AuthenticationError, ConflictError, NotFoundError, ValidationError
from ..database.transactions import TransactionManager
from .repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginResult:
    """What the client keeps after login: the bearer token plus a user summary."""

    token: str
    user_id: int
    full_name: str
    email: str
    role: Role

    def as_dict(self) -> dict:
        return {
            "token": self.token,
            "user": {
                "id": self.user_id,
                "name": self.full_name,
                "email": self.email,
                "role": self.role.value,
            },
        }


class AuthService:
    """Use case: authenticate user (login) and issue a bearer token."""

    def __init__(self, users: UserRepository, tokens: TokenService):
        self._users = users
        self._tokens = tokens

    def login(self, email: str, password: str) -> LoginResult:
        user = self._users.get_by_email((email or "").strip().lower())
        if not user:
            raise AuthenticationError("Invalid email or password")

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except ValueError:
            # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
            ok = False

        if not ok:
            logger.warning("Failed login for %s", user.email)
            raise AuthenticationError("Invalid email or password")
        if user.is_suspended:
            raise AuthenticationError("Account suspended")

        token = self._tokens.issue(user_id=user.user_id, role=user.role)
        return LoginResult(
            token=token,
            user_id=user.user_id,
            full_name=user.full_name,
            email=user.email,
            role=user.role,
        )


class UserService:
    """Use case: manage users (admin)."""

    def __init__(self, users: UserRepository, audit: AuditTrail, transactions: TransactionManager):
        self._users = users
        self._audit = audit
        self._transactions = transactions

    def register_user(
        self,
        actor: Actor,
        *,
        full_name: str,
        email: str,
        password: str,
        role: Union[str, Role, None],
    ) -> int:
        ensure_permitted(actor, Operation.REGISTER_USER)

        full_name = require_min_length(require_non_empty(full_name, "Name"), "Name", MIN_VISITOR_NAME_LENGTH)
        email = require_email(email)
        require_min_length(password, "Password", MIN_PASSWORD_LENGTH)
        try:
            role = Role(role or Role.HOST.value)
        except ValueError:
            raise ValidationError("Invalid role")

        if self._users.get_by_email(email):
            raise ValidationError("Email is already registered")

        user_id = self._users.create_user(
            full_name=full_name,
            email=email,
            password_hash=generate_password_hash(password),
            role=role,
        )
        logger.info("Admin %s registered %s user %s", actor.user_id, role.value, user_id)
        return user_id

    def list_users(self, actor: Actor) -> Sequence[dict]:
        ensure_permitted(actor, Operation.LIST_USERS)
        return self._users.list_admin_view()

    def list_hosts(self) -> Sequence[dict]:
        return self._users.list_active_hosts()

    def set_suspended(self, actor: Actor, user_id: int, *, suspended: bool) -> None:
        ensure_permitted(actor, Operation.SUSPEND_USER)
        if int(user_id) == int(actor.user_id):
            raise ValidationError("You cannot change your own account state")

        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("User not found")
        if user.is_suspended == bool(suspended):
            raise ConflictError("User is already suspended" if suspended else "User is already active")

        action = AuditAction.SUSPEND_USER if suspended else AuditAction.ACTIVATE_USER
        with self._transactions.atomic() as tx:
            self._users.set_suspended(user.user_id, is_suspended=bool(suspended), tx=tx)
            self._audit.record(
                action=action,
                admin_id=actor.user_id,
                target_type=AuditTargetType.USER,
                target_id=user.user_id,
                metadata={"email": user.email, "role": user.role.value},
                tx=tx,
            )

        logger.warning("Admin %s: %s user %s", actor.user_id, action.value, user.user_id)
