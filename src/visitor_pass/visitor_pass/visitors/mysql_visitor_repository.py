from __future__ import annotations

from typing import Any, Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor
from .repository import VisitorRepository


class MySQLVisitorRepository(VisitorRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_or_create(
        self,
        *,
        full_name: str,
        phone: str,
        id_proof: Optional[str],
        tx: Any = None,
    ) -> int:
        # The unique key on phone serializes concurrent inserts; LAST_INSERT_ID(expr)
        # makes lastrowid report the existing row on the duplicate path.
        with db_cursor(self._conn_factory, tx=tx) as (_, cur):
            cur.execute(
                """
                INSERT INTO visitors(full_name, phone, id_proof)
                VALUES(%s,%s,%s) AS incoming
                ON DUPLICATE KEY UPDATE
                    visitor_id = LAST_INSERT_ID(visitors.visitor_id),
                    id_proof = COALESCE(visitors.id_proof, incoming.id_proof)
                """,
                (full_name, phone, id_proof),
            )
            return int(cur.lastrowid)
