from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Any, Mapping, Sequence

from ..common.datetime_utils import format_dt
from ..core.enums import AuditAction, AuditTargetType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import AuditValue, value_kind
from .repository import AuditRepository


def _metadata_row(audit_id: int, key: str, value: AuditValue) -> tuple:
    kind = value_kind(value)
    if kind == "string":
        return (audit_id, key, kind, value, None, None)
    if kind == "number":
        return (audit_id, key, kind, None, float(value), None)
    return (audit_id, key, kind, None, None, value)


def _metadata_value(row: dict) -> AuditValue:
    kind = row["value_kind"]
    if kind == "string":
        return row["text_value"]
    if kind == "number":
        num = float(row["num_value"])
        return int(num) if num.is_integer() else num
    return row["ts_value"]


def _display(value: AuditValue) -> Any:
    return format_dt(value) if isinstance(value, datetime) else value


class MySQLAuditRepository(AuditRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def append(
        self,
        *,
        action: AuditAction,
        admin_id: int,
        target_type: AuditTargetType,
        target_id: int,
        metadata: Mapping[str, AuditValue],
        created_at: datetime,
        tx: Any = None,
    ) -> int:
        with db_cursor(self._conn_factory, tx=tx) as (_, cur):
            cur.execute(
                """
                INSERT INTO audit_logs(action, admin_id, target_type, target_id, created_at)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (action.value, int(admin_id), target_type.value, int(target_id), created_at),
            )
            audit_id = int(cur.lastrowid)
            if metadata:
                cur.executemany(
                    """
                    INSERT INTO audit_log_metadata(audit_id, meta_key, value_kind, text_value, num_value, ts_value)
                    VALUES(%s,%s,%s,%s,%s,%s)
                    """,
                    [_metadata_row(audit_id, k, v) for k, v in metadata.items()],
                )
            return audit_id

    def _load_metadata(self, cur) -> dict[int, dict[str, AuditValue]]:
        cur.execute(
            """
            SELECT audit_id, meta_key, value_kind, text_value, num_value, ts_value
            FROM audit_log_metadata
            """
        )
        out: dict[int, dict[str, AuditValue]] = defaultdict(dict)
        for r in fetchall(cur):
            out[int(r["audit_id"])][r["meta_key"]] = _metadata_value(r)
        return out

    def list_admin_view(self) -> Sequence[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            metadata = self._load_metadata(cur)
            cur.execute(
                """
                SELECT a.audit_id, a.action, a.admin_id, a.target_type, a.target_id, a.created_at,
                       u.full_name AS admin_name, u.email AS admin_email,
                       r.request_id, r.purpose, r.visit_date, r.status,
                       v.full_name AS visitor_name, v.phone AS visitor_phone
                FROM audit_logs a
                LEFT JOIN users u ON u.user_id = a.admin_id
                LEFT JOIN visit_requests r ON a.target_type = 'request' AND r.request_id = a.target_id
                LEFT JOIN visitors v ON v.visitor_id = r.visitor_id
                ORDER BY a.created_at DESC, a.audit_id DESC
                """
            )
            out: list[dict] = []
            for r in fetchall(cur):
                audit_id = int(r["audit_id"])
                request = None
                if r.get("request_id") is not None:
                    request = {
                        "request_id": int(r["request_id"]),
                        "purpose": r["purpose"],
                        "visit_date": r["visit_date"].strftime("%Y-%m-%d"),
                        "status": r["status"],
                        "visitor_name": r.get("visitor_name"),
                        "visitor_phone": r.get("visitor_phone"),
                    }
                out.append(
                    {
                        "audit_id": audit_id,
                        "action": r["action"],
                        "target_type": r["target_type"],
                        "target_id": int(r["target_id"]),
                        "created_at": format_dt(r["created_at"]),
                        "metadata": {k: _display(v) for k, v in metadata.get(audit_id, {}).items()},
                        "admin": {
                            "user_id": int(r["admin_id"]),
                            "full_name": r.get("admin_name"),
                            "email": r.get("admin_email"),
                        },
                        "request": request,
                    }
                )
            return out
