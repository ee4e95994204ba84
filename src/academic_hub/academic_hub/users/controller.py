from __future__ import annotations

from typing import Any, Mapping

from flask import Flask, request

from ..common.responses import created, ok, ok_list
from ..common.validators import optional_str, parse_bool, require_enum, require_semester
from ..core.enums import Role
from ..container import Container
from .model import UserFilter

_WIRE_FIELDS = {
    "name": "name",
    "email": "email",
    "password": "password",
    "role": "role",
    "branch": "branch",
    "semester": "semester",
    "rollNumber": "roll_number",
    "employeeId": "employee_id",
    "department": "department",
    "isActive": "is_active",
}


def _account_fields(body: Mapping[str, Any]) -> dict:
    return {field: body.get(key) for key, field in _WIRE_FIELDS.items() if key in body}


def _optional_semester(value: Any):
    return require_semester(value) if value not in (None, "") else None


def _user_filter(args: Mapping[str, Any]) -> UserFilter:
    role = args.get("role")
    return UserFilter(
        role=require_enum(Role, role, "Role") if role else None,
        branch=optional_str(args.get("branch")),
        semester=_optional_semester(args.get("semester")),
        is_active=parse_bool(args.get("isActive")),
        search=optional_str(args.get("search")),
    )


def register(app: Flask, container: Container) -> None:
    guard = container.guard
    auth = container.auth_service
    users = container.user_service

    # -------- Auth --------
    @app.route("/api/auth/register", methods=["POST"], endpoint="auth_register")
    def auth_register():
        fields = _account_fields(request.get_json(silent=True) or {})
        fields.pop("is_active", None)
        result = auth.register(
            name=fields.pop("name", None),
            email=fields.pop("email", None),
            password=fields.pop("password", None),
            role=fields.pop("role", None),
            **fields,
        )
        return created({"user": result.user.to_public(), "token": result.token}, message="User registered successfully")

    @app.route("/api/auth/login", methods=["POST"], endpoint="auth_login")
    def auth_login():
        body = request.get_json(silent=True) or {}
        result = auth.login(body.get("email"), body.get("password"))
        return ok({"user": result.user.to_public(), "token": result.token}, message="Login successful")

    @app.route("/api/auth/me", methods=["GET"], endpoint="auth_me")
    @guard.requires()
    def auth_me(current_user):
        return ok({"user": auth.me(current_user).to_public()})

    @app.route("/api/auth/profile", methods=["PUT"], endpoint="auth_profile")
    @guard.requires()
    def auth_profile(current_user):
        body = request.get_json(silent=True) or {}
        user = users.update_profile(current_user, name=body.get("name"), email=body.get("email"))
        return ok({"user": user.to_public()}, message="Profile updated successfully")

    # -------- Users --------
    @app.route("/api/users", methods=["GET"], endpoint="users_list")
    @guard.requires(Role.ADMIN)
    def users_list(current_user):
        items = users.list_users(current_user, _user_filter(request.args))
        return ok_list([u.to_public() for u in items])

    @app.route("/api/users/students", methods=["GET"], endpoint="users_students")
    @guard.requires(Role.TEACHER, Role.ADMIN)
    def users_students(current_user):
        items = users.list_students(
            current_user,
            branch=optional_str(request.args.get("branch")),
            semester=_optional_semester(request.args.get("semester")),
        )
        return ok_list([u.to_public() for u in items])

    @app.route("/api/users/teachers", methods=["GET"], endpoint="users_teachers")
    @guard.requires(Role.ADMIN)
    def users_teachers(current_user):
        items = users.list_teachers(current_user, department=optional_str(request.args.get("department")))
        return ok_list([u.to_public() for u in items])

    @app.route("/api/users/stats/overview", methods=["GET"], endpoint="users_overview")
    @guard.requires(Role.ADMIN)
    def users_overview(current_user):
        return ok(users.overview(current_user))

    @app.route("/api/users/<int:user_id>", methods=["GET"], endpoint="users_get")
    @guard.requires()
    def users_get(user_id: int, current_user):
        return ok(users.get_user(current_user, user_id).to_public())

    @app.route("/api/users", methods=["POST"], endpoint="users_create")
    @guard.requires(Role.ADMIN)
    def users_create(current_user):
        fields = _account_fields(request.get_json(silent=True) or {})
        fields.pop("is_active", None)
        user = users.create_user(
            current_user,
            name=fields.pop("name", None),
            email=fields.pop("email", None),
            password=fields.pop("password", None),
            role=fields.pop("role", None),
            **fields,
        )
        return created(user.to_public(), message="User created successfully")

    @app.route("/api/users/<int:user_id>", methods=["PUT"], endpoint="users_update")
    @guard.requires()
    def users_update(user_id: int, current_user):
        fields = _account_fields(request.get_json(silent=True) or {})
        fields.pop("password", None)
        user = users.update_user(current_user, user_id, fields)
        return ok(user.to_public(), message="User updated successfully")

    @app.route("/api/users/<int:user_id>", methods=["DELETE"], endpoint="users_delete")
    @guard.requires(Role.ADMIN)
    def users_delete(user_id: int, current_user):
        users.deactivate_user(current_user, user_id)
        return ok(message="User deactivated successfully")
