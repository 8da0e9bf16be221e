from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Actor roles used for authorization."""

    ADMIN = "admin"
    HOST = "host"
    SECURITY = "security"


class RequestStatus(str, Enum):
    """Lifecycle state of a visit request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class VisitStage(str, Enum):
    """Physical presence of a visitor, derived from the entry log."""

    QUEUE = "queue"
    INSIDE = "inside"
    EXITED = "exited"


class AuditAction(str, Enum):
    OVERRIDE_STATUS = "override-status"
    FORCE_ENTRY = "force-entry"
    FORCE_EXIT = "force-exit"
    SUSPEND_USER = "suspend-user"
    ACTIVATE_USER = "activate-user"


class AuditTargetType(str, Enum):
    REQUEST = "request"
    USER = "user"
