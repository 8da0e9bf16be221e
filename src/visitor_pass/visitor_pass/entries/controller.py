from __future__ import annotations

from flask import Flask

from ..access.decorators import gated
from ..access.gate import Operation
from ..common.datetime_utils import format_dt
from ..container import Container


def register(app: Flask, container: Container) -> None:
    gate = container.gate

    @app.route("/api/visitor/approved-with-logs", methods=["GET"], endpoint="approved_with_logs")
    @gated(gate, Operation.LIST_APPROVED_WITH_LOGS)
    def approved_with_logs(actor):
        return {"requests": list(container.gate_service.list_approved_with_logs(actor))}

    @app.route("/api/visitor/entry/<int:request_id>", methods=["POST"], endpoint="mark_entry")
    @gated(gate, Operation.MARK_ENTRY)
    def mark_entry(request_id: int, actor):
        in_time = container.gate_service.mark_entry(actor, request_id)
        return {"message": "Entry marked", "inTime": format_dt(in_time)}

    @app.route("/api/visitor/exit/<int:request_id>", methods=["POST"], endpoint="mark_exit")
    @gated(gate, Operation.MARK_EXIT)
    def mark_exit(request_id: int, actor):
        out_time = container.gate_service.mark_exit(actor, request_id)
        return {"message": "Exit marked", "outTime": format_dt(out_time)}

    @app.route("/api/admin/force-entry/<int:request_id>", methods=["POST"], endpoint="force_entry")
    @gated(gate, Operation.FORCE_ENTRY)
    def force_entry(request_id: int, actor):
        in_time = container.gate_service.force_entry(actor, request_id)
        return {"message": "Entry forced by admin", "inTime": format_dt(in_time)}

    @app.route("/api/admin/force-exit/<int:request_id>", methods=["POST"], endpoint="force_exit")
    @gated(gate, Operation.FORCE_EXIT)
    def force_exit(request_id: int, actor):
        out_time = container.gate_service.force_exit(actor, request_id)
        return {"message": "Exit forced by admin", "outTime": format_dt(out_time)}
