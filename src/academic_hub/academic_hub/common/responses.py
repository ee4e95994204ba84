"""JSON response envelope and boundary error handlers.

Every response has the shape ``{success, message?, data?, count?, errors?}``.
"""

from __future__ import annotations

from typing import Any, Optional

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from ..core.exceptions import DomainError


def envelope(
    *,
    success: bool = True,
    message: Optional[str] = None,
    data: Any = None,
    count: Optional[int] = None,
    errors: Optional[list] = None,
    status: int = 200,
):
    body: dict[str, Any] = {"success": success}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    if count is not None:
        body["count"] = count
    if errors is not None:
        body["errors"] = errors
    return jsonify(body), status


def ok(data: Any = None, *, message: Optional[str] = None, status: int = 200):
    return envelope(data=data, message=message, status=status)


def ok_list(items: list, *, message: Optional[str] = None):
    return envelope(data=items, count=len(items), message=message)


def created(data: Any = None, *, message: Optional[str] = None):
    return envelope(data=data, message=message, status=201)


def fail(message: str, status: int, *, errors: Optional[list] = None):
    return envelope(success=False, message=message, errors=errors, status=status)


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(err: DomainError):
        return fail(str(err), err.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_error(err: HTTPException):
        if err.code == 404:
            return fail("API endpoint not found", 404)
        if err.code == 400:
            return fail("Malformed request body", 400)
        return fail(err.description or err.name, err.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(err: Exception):
        app.logger.exception("Unhandled error")
        if app.config.get("DEBUG"):
            return fail(f"Internal Server Error: {err}", 500)
        return fail("Internal Server Error", 500)
