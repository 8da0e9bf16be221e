from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

import mysql.connector

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .model import EntryLog
from .repository import EntryLogRepository


def _to_log(row: dict) -> EntryLog:
    return EntryLog(
        entry_id=int(row["entry_id"]),
        visit_request_id=int(row["visit_request_id"]),
        in_time=row.get("in_time"),
        out_time=row.get("out_time"),
    )


class MySQLEntryLogRepository(EntryLogRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_request(self, request_id: int) -> Optional[EntryLog]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT entry_id, visit_request_id, in_time, out_time
                FROM entry_logs
                WHERE visit_request_id=%s
                """,
                (int(request_id),),
            )
            row = fetchone(cur)
            return _to_log(row) if row else None

    def list_for_requests(self, request_ids: Iterable[int]) -> Mapping[int, EntryLog]:
        ids = [int(i) for i in request_ids]
        if not ids:
            return {}

        placeholders = ",".join(["%s"] * len(ids))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT entry_id, visit_request_id, in_time, out_time
                FROM entry_logs
                WHERE visit_request_id IN ({placeholders})
                """,
                tuple(ids),
            )
            return {int(r["visit_request_id"]): _to_log(r) for r in fetchall(cur)}

    def mark_entry(self, *, request_id: int, in_time: datetime, tx: Any = None) -> bool:
        with db_cursor(self._conn_factory, tx=tx) as (_, cur):
            cur.execute(
                """
                UPDATE entry_logs
                SET in_time=%s
                WHERE visit_request_id=%s AND in_time IS NULL
                """,
                (in_time, int(request_id)),
            )
            if cur.rowcount > 0:
                return True

            # The unique key on visit_request_id lets only one concurrent insert win.
            try:
                cur.execute(
                    "INSERT INTO entry_logs(visit_request_id, in_time) VALUES(%s,%s)",
                    (int(request_id), in_time),
                )
            except mysql.connector.IntegrityError as err:
                if is_duplicate_key(err):
                    return False
                raise
            return True

    def mark_exit(self, *, request_id: int, out_time: datetime, tx: Any = None) -> bool:
        with db_cursor(self._conn_factory, tx=tx) as (_, cur):
            cur.execute(
                """
                UPDATE entry_logs
                SET out_time=%s
                WHERE visit_request_id=%s
                  AND in_time IS NOT NULL
                  AND out_time IS NULL
                  AND in_time <= %s
                """,
                (out_time, int(request_id), out_time),
            )
            return cur.rowcount > 0
