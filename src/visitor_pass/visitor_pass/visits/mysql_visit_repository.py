from __future__ import annotations

from datetime import date
from typing import Any, Optional, Sequence

import mysql.connector

from ..common.datetime_utils import format_dt
from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import RequestStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .model import VisitRequest
from .repository import DuplicatePassCodeError, VisitRequestRepository

_REQUEST_COLUMNS = "request_id, visitor_id, host_id, purpose, visit_date, status, pass_code, created_at, updated_at"

_UI_SELECT = """
    SELECT r.request_id, r.visitor_id, r.host_id, r.purpose, r.visit_date,
           r.status, r.pass_code, r.created_at, r.updated_at,
           v.full_name AS visitor_name, v.phone AS visitor_phone, v.id_proof AS visitor_id_proof,
           h.full_name AS host_name, h.email AS host_email
    FROM visit_requests r
    JOIN visitors v ON v.visitor_id = r.visitor_id
    JOIN users h ON h.user_id = r.host_id
"""


def _to_request(row: dict) -> VisitRequest:
    return VisitRequest(
        request_id=int(row["request_id"]),
        visitor_id=int(row["visitor_id"]),
        host_id=int(row["host_id"]),
        purpose=row["purpose"],
        visit_date=row["visit_date"],
        status=RequestStatus(row["status"]),
        pass_code=row.get("pass_code"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def _to_ui_row(r: dict) -> dict:
    return {
        "request_id": int(r["request_id"]),
        "purpose": r["purpose"],
        "visit_date": r["visit_date"].strftime("%Y-%m-%d"),
        "status": r["status"],
        "pass_code": r.get("pass_code"),
        "created_at": format_dt(r.get("created_at")),
        "updated_at": format_dt(r.get("updated_at")),
        "visitor": {
            "visitor_id": int(r["visitor_id"]),
            "full_name": r["visitor_name"],
            "phone": r["visitor_phone"],
            "id_proof": r.get("visitor_id_proof"),
        },
        "host": {
            "user_id": int(r["host_id"]),
            "full_name": r["host_name"],
            "email": r["host_email"],
        },
    }


class MySQLVisitRequestRepository(VisitRequestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        visitor_id: int,
        host_id: int,
        purpose: str,
        visit_date: date,
        tx: Any = None,
    ) -> int:
        with db_cursor(self._conn_factory, tx=tx) as (_, cur):
            cur.execute(
                """
                INSERT INTO visit_requests(visitor_id, host_id, purpose, visit_date, status)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (int(visitor_id), int(host_id), purpose, visit_date, RequestStatus.PENDING.value),
            )
            return int(cur.lastrowid)

    def get(self, request_id: int) -> Optional[VisitRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_REQUEST_COLUMNS} FROM visit_requests WHERE request_id=%s", (int(request_id),))
            row = fetchone(cur)
            return _to_request(row) if row else None

    def lock(self, request_id: int, *, tx: Any) -> Optional[VisitRequest]:
        with db_cursor(self._conn_factory, tx=tx) as (_, cur):
            cur.execute(
                f"SELECT {_REQUEST_COLUMNS} FROM visit_requests WHERE request_id=%s FOR UPDATE",
                (int(request_id),),
            )
            row = fetchone(cur)
            return _to_request(row) if row else None

    def set_status(
        self,
        *,
        request_id: int,
        status: RequestStatus,
        pass_code: Optional[str],
        tx: Any = None,
    ) -> bool:
        with db_cursor(self._conn_factory, tx=tx) as (_, cur):
            try:
                cur.execute(
                    """
                    UPDATE visit_requests
                    SET status=%s, pass_code=%s, updated_at=CURRENT_TIMESTAMP(6)
                    WHERE request_id=%s
                    """,
                    (status.value, pass_code, int(request_id)),
                )
            except mysql.connector.IntegrityError as err:
                if is_duplicate_key(err):
                    raise DuplicatePassCodeError("Pass code already issued") from err
                raise
            return cur.rowcount > 0

    def list_for_host(self, host_id: int) -> Sequence[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _UI_SELECT + " WHERE r.host_id=%s ORDER BY r.created_at DESC, r.request_id DESC",
                (int(host_id),),
            )
            return [_to_ui_row(r) for r in fetchall(cur)]

    def list_approved(self) -> Sequence[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _UI_SELECT + " WHERE r.status=%s ORDER BY r.created_at DESC, r.request_id DESC",
                (RequestStatus.APPROVED.value,),
            )
            return [_to_ui_row(r) for r in fetchall(cur)]

    def list_all(self, *, status: Optional[RequestStatus] = None, limit: int = DEFAULT_LIST_LIMIT) -> Sequence[dict]:
        clauses = ["1=1"]
        params: list[object] = []

        if status is not None:
            clauses.append("r.status=%s")
            params.append(status.value)

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _UI_SELECT + f" WHERE {where} ORDER BY r.created_at DESC, r.request_id DESC LIMIT %s",
                tuple(params + [int(limit)]),
            )
            return [_to_ui_row(r) for r in fetchall(cur)]
