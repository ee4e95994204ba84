from __future__ import annotations

from typing import Any, Mapping

from flask import Flask, request

from ..common.responses import created, ok, ok_list
from ..common.validators import optional_str, require_enum, require_int, require_semester
from ..core.enums import Role, Weekday
from ..container import Container
from .model import TimetableFilter

_WIRE_FIELDS = {
    "subject": "subject",
    "teacher": "teacher",
    "teacherName": "teacher_name",
    "time": "time_range",
    "room": "room",
    "branch": "branch",
    "semester": "semester",
    "day": "day",
    "type": "class_type",
}


def _entry_fields(body: Mapping[str, Any]) -> dict:
    return {field: body.get(key) for key, field in _WIRE_FIELDS.items() if key in body}


def _timetable_filter(args: Mapping[str, Any], current_user) -> TimetableFilter:
    # A student's class is fixed by the service; their query values are not parsed.
    if current_user.is_student:
        args = {k: v for k, v in args.items() if k not in ("branch", "semester")}
    semester = args.get("semester")
    day = args.get("day")
    teacher = args.get("teacher")
    return TimetableFilter(
        branch=optional_str(args.get("branch")),
        semester=require_semester(semester) if semester else None,
        day=require_enum(Weekday, day, "Day") if day else None,
        teacher_id=require_int(teacher, "Teacher") if teacher else None,
    )


def register(app: Flask, container: Container) -> None:
    guard = container.guard
    timetable = container.timetable_service

    @app.route("/api/timetable", methods=["GET"], endpoint="timetable_list")
    @guard.requires()
    def timetable_list(current_user):
        items = timetable.list_entries(current_user, _timetable_filter(request.args, current_user))
        return ok_list([e.to_public() for e in items])

    @app.route("/api/timetable/<int:entry_id>", methods=["GET"], endpoint="timetable_get")
    @guard.requires()
    def timetable_get(entry_id: int, current_user):
        return ok(timetable.get_entry(current_user, entry_id).to_public())

    @app.route("/api/timetable", methods=["POST"], endpoint="timetable_create")
    @guard.requires(Role.TEACHER, Role.ADMIN)
    def timetable_create(current_user):
        entry = timetable.create_entry(current_user, _entry_fields(request.get_json(silent=True) or {}))
        return created(entry.to_public(), message="Timetable entry created successfully")

    @app.route("/api/timetable/<int:entry_id>", methods=["PUT"], endpoint="timetable_update")
    @guard.requires(Role.TEACHER, Role.ADMIN)
    def timetable_update(entry_id: int, current_user):
        entry = timetable.update_entry(current_user, entry_id, _entry_fields(request.get_json(silent=True) or {}))
        return ok(entry.to_public(), message="Timetable entry updated successfully")

    @app.route("/api/timetable/<int:entry_id>", methods=["DELETE"], endpoint="timetable_delete")
    @guard.requires(Role.TEACHER, Role.ADMIN)
    def timetable_delete(entry_id: int, current_user):
        timetable.delete_entry(current_user, entry_id)
        return ok(message="Timetable entry deleted successfully")
