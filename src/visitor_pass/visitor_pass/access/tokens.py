from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt

from ..core.constants import DEFAULT_TOKEN_TTL_MINUTES
from ..core.enums import Role
from ..core.exceptions import AuthenticationError
from .model import Claims

logger = logging.getLogger(__name__)

TOKEN_ALGORITHM = "HS256"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Issue and verify signed bearer tokens (HS256 JWT carrying user id + role)."""

    def __init__(
        self,
        secret: str,
        *,
        ttl_minutes: int = DEFAULT_TOKEN_TTL_MINUTES,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if not secret:
            raise ValueError("Token secret must not be empty")
        self._secret = secret
        self._ttl = timedelta(minutes=int(ttl_minutes))
        self._clock = clock or _utc_now

    def issue(self, *, user_id: int, role: Role) -> str:
        now = self._clock()
        payload = {
            "sub": str(int(user_id)),
            "role": role.value,
            "iat": now,
            "exp": now + self._ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=TOKEN_ALGORITHM)

    def verify(self, token: Optional[str]) -> Claims:
        if not token:
            raise AuthenticationError("No token provided")

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[TOKEN_ALGORITHM],
                options={"require": ["sub", "role", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Session expired, please sign in again")
        except jwt.PyJWTError as err:
            logger.warning("Rejected bearer token: %s", err)
            raise AuthenticationError("Invalid token")

        try:
            return Claims(user_id=int(payload["sub"]), role=Role(payload["role"]))
        except (TypeError, ValueError):
            raise AuthenticationError("Invalid token payload")
