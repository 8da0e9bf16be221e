from __future__ import annotations

from typing import Any, Optional, Sequence

import mysql.connector

from ..common.datetime_utils import format_dt
from ..core.enums import Role
from ..core.exceptions import ValidationError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .model import User
from .repository import UserRepository

_USER_COLUMNS = "user_id, full_name, email, password_hash, role, is_suspended, created_at"


def _to_user(row: dict) -> User:
    return User(
        user_id=int(row["user_id"]),
        full_name=row["full_name"],
        email=row["email"],
        password_hash=row["password_hash"],
        role=Role(row["role"]),
        is_suspended=bool(row.get("is_suspended", False)),
        created_at=row.get("created_at"),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE user_id=%s", (int(user_id),))
            row = fetchone(cur)
            return _to_user(row) if row else None

    def get_by_email(self, email: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE email=%s", (email,))
            row = fetchone(cur)
            return _to_user(row) if row else None

    def create_user(
        self,
        *,
        full_name: str,
        email: str,
        password_hash: str,
        role: Role,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            try:
                cur.execute(
                    """
                    INSERT INTO users(full_name, email, password_hash, role, is_suspended)
                    VALUES(%s,%s,%s,%s,0)
                    """,
                    (full_name, email, password_hash, role.value),
                )
            except mysql.connector.IntegrityError as err:
                if is_duplicate_key(err):
                    raise ValidationError("Email is already registered") from err
                raise
            return int(cur.lastrowid)

    def set_suspended(self, user_id: int, *, is_suspended: bool, tx: Any = None) -> bool:
        with db_cursor(self._conn_factory, tx=tx) as (_, cur):
            cur.execute(
                "UPDATE users SET is_suspended=%s WHERE user_id=%s",
                (1 if is_suspended else 0, int(user_id)),
            )
            return cur.rowcount > 0

    def list_admin_view(self) -> Sequence[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT user_id, full_name, email, role, is_suspended, created_at
                FROM users
                ORDER BY created_at DESC, user_id DESC
                """
            )
            return [
                {
                    "user_id": int(r["user_id"]),
                    "full_name": r["full_name"],
                    "email": r["email"],
                    "role": r["role"],
                    "is_suspended": bool(r["is_suspended"]),
                    "created_at": format_dt(r.get("created_at")),
                }
                for r in fetchall(cur)
            ]

    def list_active_hosts(self) -> Sequence[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT user_id, full_name
                FROM users
                WHERE role=%s AND is_suspended=0
                ORDER BY full_name ASC
                """,
                (Role.HOST.value,),
            )
            return [{"user_id": int(r["user_id"]), "full_name": r["full_name"]} for r in fetchall(cur)]
