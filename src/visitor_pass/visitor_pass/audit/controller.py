from __future__ import annotations

from flask import Flask

from ..access.decorators import gated
from ..access.gate import Operation
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/admin/audit-log", methods=["GET"], endpoint="audit_log")
    @gated(container.gate, Operation.LIST_AUDIT_LOG)
    def audit_log(actor):
        return {"entries": list(container.audit_trail.list_for_admin(actor))}
