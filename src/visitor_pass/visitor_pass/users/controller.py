from __future__ import annotations

from flask import Flask

from ..access.decorators import gated
from ..access.gate import Operation
from ..common.http import json_body
from ..container import Container


def register(app: Flask, container: Container) -> None:
    gate = container.gate

    @app.route("/api/auth/login", methods=["POST"], endpoint="login")
    def login():
        data = json_body()
        result = container.auth_service.login(data.get("email", ""), data.get("password", ""))
        return result.as_dict()

    @app.route("/api/hosts", methods=["GET"], endpoint="list_hosts")
    def list_hosts():
        return {"hosts": list(container.user_service.list_hosts())}

    @app.route("/api/admin/users", methods=["GET"], endpoint="admin_users")
    @gated(gate, Operation.LIST_USERS)
    def admin_users(actor):
        return {"users": list(container.user_service.list_users(actor))}

    @app.route("/api/admin/users", methods=["POST"], endpoint="add_user")
    @gated(gate, Operation.REGISTER_USER)
    def add_user(actor):
        data = json_body()
        user_id = container.user_service.register_user(
            actor,
            full_name=data.get("name", ""),
            email=data.get("email", ""),
            password=data.get("password", ""),
            role=data.get("role"),
        )
        return {"message": "User created", "userId": user_id}, 201

    @app.route("/api/admin/user/<int:user_id>/suspend", methods=["POST"], endpoint="suspend_user")
    @gated(gate, Operation.SUSPEND_USER)
    def suspend_user(user_id: int, actor):
        container.user_service.set_suspended(actor, user_id, suspended=True)
        return {"message": "User suspended"}

    @app.route("/api/admin/user/<int:user_id>/activate", methods=["POST"], endpoint="activate_user")
    @gated(gate, Operation.SUSPEND_USER)
    def activate_user(user_id: int, actor):
        container.user_service.set_suspended(actor, user_id, suspended=False)
        return {"message": "User activated"}
