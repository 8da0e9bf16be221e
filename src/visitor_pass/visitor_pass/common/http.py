from __future__ import annotations

from typing import Any, Optional

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from ..core.exceptions import DomainError, PersistenceError


def bearer_token() -> Optional[str]:
    """Token from ``Authorization: Bearer <token>``; None when absent or malformed."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def error_payload(kind: str, message: str) -> dict:
    return {"error": kind, "message": message}


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def _domain_error(e: DomainError):
        if isinstance(e, PersistenceError):
            return jsonify(error_payload(e.kind, "Internal storage error")), e.status_code
        return jsonify(error_payload(e.kind, str(e))), e.status_code

    @app.errorhandler(Exception)
    def _unexpected(e: Exception):
        if isinstance(e, HTTPException):
            return jsonify(error_payload("http_error", e.description or e.name)), e.code
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify(error_payload(PersistenceError.kind, "Internal server error")), 500
