from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping, Optional, Union

from ..core.enums import AuditAction, AuditTargetType
from ..core.exceptions import ValidationError

# Closed set of metadata value kinds: string, number, timestamp.
AuditValue = Union[str, int, float, datetime]


@dataclass(frozen=True)
class AuditEntry:
    """Domain entity: one privileged admin action. Never updated or deleted."""

    audit_id: int
    action: AuditAction
    admin_id: int
    target_type: AuditTargetType
    target_id: int
    created_at: datetime
    metadata: Mapping[str, AuditValue] = field(default_factory=dict)


def value_kind(value: AuditValue) -> str:
    if isinstance(value, bool):
        raise ValidationError("Audit metadata does not accept booleans")
    if isinstance(value, str):
        return "string"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, datetime):
        return "timestamp"
    raise ValidationError(f"Unsupported audit metadata value: {type(value).__name__}")


def normalize_metadata(metadata: Optional[Mapping[str, AuditValue]]) -> dict[str, AuditValue]:
    out: dict[str, AuditValue] = {}
    for key, value in (metadata or {}).items():
        if not isinstance(key, str) or not key.strip():
            raise ValidationError("Audit metadata keys must be non-empty strings")
        value_kind(value)
        out[key.strip()] = value
    return out
