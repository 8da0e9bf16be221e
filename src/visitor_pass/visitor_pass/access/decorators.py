from __future__ import annotations

from functools import wraps

from ..common.http import bearer_token
from .gate import AccessGate, Operation


def gated(gate: AccessGate, operation: Operation):
    """Authorize the bearer token for ``operation`` and pass the actor to the view."""

    def deco(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            actor = gate.authorize(bearer_token(), operation)
            return view(*args, actor=actor, **kwargs)

        return wrapper

    return deco
