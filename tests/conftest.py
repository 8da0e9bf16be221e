from __future__ import annotations

import copy
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime
from types import SimpleNamespace
from typing import Optional

import pytest
from werkzeug.security import generate_password_hash

from src.visitor_pass.visitor_pass.access.gate import AccessGate
from src.visitor_pass.visitor_pass.access.model import Actor
from src.visitor_pass.visitor_pass.access.tokens import TokenService
from src.visitor_pass.visitor_pass.audit.model import AuditEntry
from src.visitor_pass.visitor_pass.audit.service import AuditTrail
from src.visitor_pass.visitor_pass.core.enums import RequestStatus, Role
from src.visitor_pass.visitor_pass.entries.model import EntryLog
from src.visitor_pass.visitor_pass.entries.service import GateService
from src.visitor_pass.visitor_pass.users.model import User
from src.visitor_pass.visitor_pass.users.service import AuthService, UserService
from src.visitor_pass.visitor_pass.visits.model import VisitRequest
from src.visitor_pass.visitor_pass.visits.repository import DuplicatePassCodeError
from src.visitor_pass.visitor_pass.visits.service import VisitRequestService

TOKEN_SECRET = "unit-test-token-secret-0123456789abcdef"


class InMemoryUsers:
    def __init__(self):
        self._users: dict[int, User] = {}
        self._id = 0

    def add(self, full_name: str, email: str, role: Role, *, password: str = "password123", suspended: bool = False) -> User:
        self._id += 1
        user = User(
            user_id=self._id,
            full_name=full_name,
            email=email,
            password_hash=generate_password_hash(password),
            role=role,
            is_suspended=suspended,
            created_at=datetime(2026, 1, 1, 8, 0, 0),
        )
        self._users[user.user_id] = user
        return user

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._users.get(int(user_id))

    def get_by_email(self, email: str) -> Optional[User]:
        return next((u for u in self._users.values() if u.email == email), None)

    def create_user(self, *, full_name, email, password_hash, role):
        self._id += 1
        self._users[self._id] = User(
            user_id=self._id,
            full_name=full_name,
            email=email,
            password_hash=password_hash,
            role=role,
        )
        return self._id

    def set_suspended(self, user_id, *, is_suspended, tx=None):
        user = self._users.get(int(user_id))
        if not user:
            return False
        self._users[user.user_id] = replace(user, is_suspended=is_suspended)
        return True

    def remove(self, user_id: int) -> None:
        self._users.pop(int(user_id), None)

    def list_admin_view(self):
        return [
            {"user_id": u.user_id, "full_name": u.full_name, "email": u.email, "role": u.role.value, "is_suspended": u.is_suspended}
            for u in sorted(self._users.values(), key=lambda u: u.user_id, reverse=True)
        ]

    def list_active_hosts(self):
        return [
            {"user_id": u.user_id, "full_name": u.full_name}
            for u in self._users.values()
            if u.role == Role.HOST and not u.is_suspended
        ]


class InMemoryVisitors:
    def __init__(self):
        self.visitors: dict[int, dict] = {}
        self._id = 0

    def by_phone(self, phone):
        return next((v for v in self.visitors.values() if v["phone"] == phone), None)

    def find_or_create(self, *, full_name, phone, id_proof, tx=None):
        existing = self.by_phone(phone)
        if existing:
            if existing["id_proof"] is None and id_proof:
                existing["id_proof"] = id_proof
            return existing["visitor_id"]
        self._id += 1
        self.visitors[self._id] = {"visitor_id": self._id, "full_name": full_name, "phone": phone, "id_proof": id_proof}
        return self._id


class InMemoryVisits:
    def __init__(self):
        self.requests: dict[int, VisitRequest] = {}
        self._id = 0
        self.fail_on_create = False

    def _row(self, r: VisitRequest) -> dict:
        return {
            "request_id": r.request_id,
            "purpose": r.purpose,
            "visit_date": r.visit_date.isoformat(),
            "status": r.status.value,
            "pass_code": r.pass_code,
            "visitor": {"visitor_id": r.visitor_id},
            "host": {"user_id": r.host_id},
        }

    def create(self, *, visitor_id, host_id, purpose, visit_date, tx=None):
        if self.fail_on_create:
            raise RuntimeError("store went away")
        self._id += 1
        self.requests[self._id] = VisitRequest(
            request_id=self._id,
            visitor_id=int(visitor_id),
            host_id=int(host_id),
            purpose=purpose,
            visit_date=visit_date,
            status=RequestStatus.PENDING,
        )
        return self._id

    def add(self, *, host_id: int, visit_date: date, status: RequestStatus = RequestStatus.PENDING, pass_code=None) -> VisitRequest:
        rid = self.create(visitor_id=1, host_id=host_id, purpose="Meeting", visit_date=visit_date)
        self.requests[rid] = replace(self.requests[rid], status=status, pass_code=pass_code)
        return self.requests[rid]

    def get(self, request_id):
        return self.requests.get(int(request_id))

    def lock(self, request_id, *, tx):
        return self.requests.get(int(request_id))

    def set_status(self, *, request_id, status, pass_code, tx=None):
        req = self.requests.get(int(request_id))
        if not req:
            return False
        if pass_code and any(r.pass_code == pass_code for r in self.requests.values() if r.request_id != req.request_id):
            raise DuplicatePassCodeError("Pass code already in use")
        self.requests[req.request_id] = replace(req, status=status, pass_code=pass_code)
        return True

    def list_for_host(self, host_id):
        rows = [r for r in self.requests.values() if r.host_id == int(host_id)]
        return [self._row(r) for r in sorted(rows, key=lambda r: r.request_id, reverse=True)]

    def list_approved(self):
        rows = [r for r in self.requests.values() if r.status == RequestStatus.APPROVED]
        return [self._row(r) for r in sorted(rows, key=lambda r: r.request_id, reverse=True)]

    def list_all(self, *, status=None, limit=500):
        rows = [r for r in self.requests.values() if status is None or r.status == status]
        return [self._row(r) for r in sorted(rows, key=lambda r: r.request_id, reverse=True)][:limit]


class InMemoryEntries:
    def __init__(self):
        self.logs: dict[int, EntryLog] = {}
        self._id = 0

    def get_for_request(self, request_id):
        return self.logs.get(int(request_id))

    def list_for_requests(self, request_ids):
        return {int(i): self.logs[int(i)] for i in request_ids if int(i) in self.logs}

    def mark_entry(self, *, request_id, in_time, tx=None):
        log = self.logs.get(int(request_id))
        if log is None:
            self._id += 1
            self.logs[int(request_id)] = EntryLog(entry_id=self._id, visit_request_id=int(request_id), in_time=in_time)
            return True
        if log.in_time is not None:
            return False
        self.logs[int(request_id)] = replace(log, in_time=in_time)
        return True

    def mark_exit(self, *, request_id, out_time, tx=None):
        log = self.logs.get(int(request_id))
        if log is None or log.in_time is None or log.out_time is not None or log.in_time > out_time:
            return False
        self.logs[int(request_id)] = replace(log, out_time=out_time)
        return True


class InMemoryAudit:
    def __init__(self):
        self.entries: list[AuditEntry] = []
        self.fail_on_append = False

    def append(self, *, action, admin_id, target_type, target_id, metadata, created_at, tx=None):
        if self.fail_on_append:
            raise RuntimeError("audit store went away")
        entry = AuditEntry(
            audit_id=len(self.entries) + 1,
            action=action,
            admin_id=admin_id,
            target_type=target_type,
            target_id=target_id,
            created_at=created_at,
            metadata=dict(metadata),
        )
        self.entries.append(entry)
        return entry.audit_id

    def list_admin_view(self):
        return [
            {
                "audit_id": e.audit_id,
                "action": e.action.value,
                "target_type": e.target_type.value,
                "target_id": e.target_id,
                "created_at": e.created_at.isoformat(),
                "metadata": {k: (v.isoformat() if isinstance(v, datetime) else v) for k, v in e.metadata.items()},
                "admin": {"user_id": e.admin_id},
            }
            for e in reversed(self.entries)
        ]


class InMemoryTransactions:
    """Snapshot every store on enter, restore them all if the block raises."""

    def __init__(self, *stores):
        self._stores = stores
        self.commits = 0
        self.rollbacks = 0

    @contextmanager
    def atomic(self):
        snapshot = [copy.deepcopy(s.__dict__) for s in self._stores]
        try:
            yield object()
        except Exception:
            for store, state in zip(self._stores, snapshot):
                store.__dict__.clear()
                store.__dict__.update(state)
            self.rollbacks += 1
            raise
        self.commits += 1


def actor_of(user: User) -> Actor:
    return Actor(user_id=user.user_id, full_name=user.full_name, role=user.role)


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 10, 19, 9, 30, 0)


@pytest.fixture
def world(fixed_now):
    users = InMemoryUsers()
    visitors = InMemoryVisitors()
    visits = InMemoryVisits()
    entries = InMemoryEntries()
    audits = InMemoryAudit()
    transactions = InMemoryTransactions(users, visitors, visits, entries, audits)

    clock = SimpleNamespace(now=fixed_now)

    def tick():
        return clock.now

    admin = users.add("Admin One", "admin@example.com", Role.ADMIN, password="admin12345")
    host = users.add("Host One", "host@example.com", Role.HOST, password="host12345")
    other_host = users.add("Host Two", "host2@example.com", Role.HOST)
    security = users.add("Guard One", "security@example.com", Role.SECURITY, password="security12345")

    tokens = TokenService(TOKEN_SECRET, ttl_minutes=60)
    trail = AuditTrail(audits, clock=tick)

    return SimpleNamespace(
        clock=clock,
        users=users,
        visitors=visitors,
        visits=visits,
        entries=entries,
        audits=audits,
        transactions=transactions,
        tokens=tokens,
        gate=AccessGate(tokens, users),
        audit_trail=trail,
        auth_service=AuthService(users, tokens),
        user_service=UserService(users, trail, transactions),
        visit_service=VisitRequestService(visits, visitors, users, trail, transactions, clock=tick),
        gate_service=GateService(visits, entries, trail, transactions, clock=tick),
        admin=actor_of(admin),
        host=actor_of(host),
        other_host=actor_of(other_host),
        security=actor_of(security),
    )
