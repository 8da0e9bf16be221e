from __future__ import annotations

from dataclasses import dataclass

from .access.gate import AccessGate
from .access.tokens import TokenService
from .audit.mysql_audit_repository import MySQLAuditRepository
from .audit.service import AuditTrail
from .core.constants import DEFAULT_TOKEN_TTL_MINUTES
from .database.connection import DBConfig, DatabaseConnection
from .database.mysql_base import MySQLTransactionManager
from .entries.mysql_entry_repository import MySQLEntryLogRepository
from .entries.service import GateService
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import AuthService, UserService
from .visitors.mysql_visitor_repository import MySQLVisitorRepository
from .visits.mysql_visit_repository import MySQLVisitRequestRepository
from .visits.service import VisitRequestService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    users_repo: MySQLUserRepository
    visitors_repo: MySQLVisitorRepository
    visits_repo: MySQLVisitRequestRepository
    entries_repo: MySQLEntryLogRepository
    audit_repo: MySQLAuditRepository

    gate: AccessGate
    audit_trail: AuditTrail
    auth_service: AuthService
    user_service: UserService
    visit_service: VisitRequestService
    gate_service: GateService


def build_container(
    *,
    db_config: dict,
    token_secret: str,
    token_ttl_minutes: int = DEFAULT_TOKEN_TTL_MINUTES,
) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
    )
    conn = DatabaseConnection(config)
    transactions = MySQLTransactionManager(conn)

    users_repo = MySQLUserRepository(conn)
    visitors_repo = MySQLVisitorRepository(conn)
    visits_repo = MySQLVisitRequestRepository(conn)
    entries_repo = MySQLEntryLogRepository(conn)
    audit_repo = MySQLAuditRepository(conn)

    tokens = TokenService(token_secret, ttl_minutes=token_ttl_minutes)
    gate = AccessGate(tokens, users_repo)
    audit_trail = AuditTrail(audit_repo)

    auth_service = AuthService(users_repo, tokens)
    user_service = UserService(users_repo, audit_trail, transactions)
    visit_service = VisitRequestService(visits_repo, visitors_repo, users_repo, audit_trail, transactions)
    gate_service = GateService(visits_repo, entries_repo, audit_trail, transactions)

    return Container(
        conn=conn,
        users_repo=users_repo,
        visitors_repo=visitors_repo,
        visits_repo=visits_repo,
        entries_repo=entries_repo,
        audit_repo=audit_repo,
        gate=gate,
        audit_trail=audit_trail,
        auth_service=auth_service,
        user_service=user_service,
        visit_service=visit_service,
        gate_service=gate_service,
    )
