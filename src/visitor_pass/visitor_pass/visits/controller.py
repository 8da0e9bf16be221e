from __future__ import annotations

from flask import Flask, Response, request

from ..access.decorators import gated
from ..access.gate import Operation
from ..common.http import json_body
from ..container import Container


def register(app: Flask, container: Container) -> None:
    gate = container.gate

    @app.route("/api/visitor/request", methods=["POST"], endpoint="submit_request")
    def submit_request():
        data = json_body()
        request_id = container.visit_service.submit(
            name=data.get("name"),
            phone=data.get("phone"),
            id_proof=data.get("idProof"),
            host_id=data.get("hostId"),
            purpose=data.get("purpose"),
            visit_date=data.get("visitDate"),
        )
        return {"message": "Visit request created", "requestId": request_id}, 201

    @app.route("/api/visitor/host/my-requests", methods=["GET"], endpoint="my_requests")
    @gated(gate, Operation.LIST_OWN_REQUESTS)
    def my_requests(actor):
        return {"requests": list(container.visit_service.list_own_requests(actor))}

    @app.route("/api/visitor/approve/<int:request_id>", methods=["PUT"], endpoint="approve_request")
    @gated(gate, Operation.APPROVE_REQUEST)
    def approve_request(request_id: int, actor):
        pass_code = container.visit_service.approve(actor, request_id)
        return {"message": "Approved", "passCode": pass_code}

    @app.route("/api/visitor/reject/<int:request_id>", methods=["PUT"], endpoint="reject_request")
    @gated(gate, Operation.REJECT_REQUEST)
    def reject_request(request_id: int, actor):
        container.visit_service.reject(actor, request_id)
        return {"message": "Rejected"}

    @app.route("/api/visitor/<int:request_id>/pass.png", methods=["GET"], endpoint="pass_qr")
    @gated(gate, Operation.VIEW_PASS)
    def pass_qr(request_id: int, actor):
        png = container.visit_service.pass_qr_png(actor, request_id)
        return Response(png, mimetype="image/png")

    @app.route("/api/admin/override-status/<int:request_id>", methods=["POST"], endpoint="override_status")
    @gated(gate, Operation.OVERRIDE_STATUS)
    def override_status(request_id: int, actor):
        result = container.visit_service.override_status(actor, request_id, json_body().get("status"))
        return {"message": "Status overridden by admin", **result}

    @app.route("/api/admin/requests", methods=["GET"], endpoint="admin_requests")
    @gated(gate, Operation.LIST_ALL_REQUESTS)
    def admin_requests(actor):
        rows = container.visit_service.list_all_requests(actor, status=request.args.get("status"))
        return {"requests": list(rows)}
