from __future__ import annotations

from typing import Any, Mapping

from flask import Flask, request

from ..common.datetime_utils import parse_when, range_end
from ..common.responses import created, ok, ok_list
from ..common.validators import optional_str, require_enum, require_int, require_semester
from ..core.enums import AttendanceStatus, Role
from ..container import Container
from .model import AttendanceFilter

_SHARED_FIELDS = ("subject", "branch", "semester", "date")


def _attendance_filter(args: Mapping[str, Any], current_user) -> AttendanceFilter:
    # Students are pinned to their own class and records by the service.
    if current_user.is_student:
        args = {k: v for k, v in args.items() if k not in ("branch", "semester", "student")}
    semester = args.get("semester")
    student = args.get("student")
    status = args.get("status")
    return AttendanceFilter(
        branch=optional_str(args.get("branch")),
        semester=require_semester(semester) if semester else None,
        subject=optional_str(args.get("subject")),
        student_id=require_int(student, "Student") if student else None,
        status=require_enum(AttendanceStatus, status, "Status") if status else None,
        start=parse_when(args.get("startDate")),
        end=range_end(args.get("endDate")),
    )


def register(app: Flask, container: Container) -> None:
    guard = container.guard
    attendance = container.attendance_service

    @app.route("/api/attendance", methods=["GET"], endpoint="attendance_list")
    @guard.requires()
    def attendance_list(current_user):
        records = attendance.list_records(current_user, _attendance_filter(request.args, current_user))
        return ok_list([r.to_public() for r in records])

    @app.route("/api/attendance/stats", methods=["GET"], endpoint="attendance_stats")
    @guard.requires()
    def attendance_stats(current_user):
        rows = attendance.statistics(current_user, _attendance_filter(request.args, current_user))
        return ok_list([r.to_public() for r in rows])

    @app.route("/api/attendance", methods=["POST"], endpoint="attendance_mark")
    @guard.requires(Role.TEACHER, Role.ADMIN)
    def attendance_mark(current_user):
        body = request.get_json(silent=True) or {}
        record = attendance.mark(current_user, body)
        return created(record.to_public(), message="Attendance marked successfully")

    @app.route("/api/attendance/bulk", methods=["POST"], endpoint="attendance_mark_bulk")
    @guard.requires(Role.TEACHER, Role.ADMIN)
    def attendance_mark_bulk(current_user):
        body = request.get_json(silent=True) or {}
        shared = {k: body.get(k) for k in _SHARED_FIELDS}
        outcome = attendance.mark_bulk(current_user, body.get("attendanceList"), shared)
        return created(outcome.to_public(), message=f"Attendance marked for {len(outcome.results)} students")

    @app.route("/api/attendance/<int:attendance_id>", methods=["PUT"], endpoint="attendance_update")
    @guard.requires(Role.TEACHER, Role.ADMIN)
    def attendance_update(attendance_id: int, current_user):
        body = request.get_json(silent=True) or {}
        changes = {k: body[k] for k in ("status", "remarks") if k in body}
        record = attendance.update(current_user, attendance_id, changes)
        return ok(record.to_public(), message="Attendance record updated successfully")

    @app.route("/api/attendance/<int:attendance_id>", methods=["DELETE"], endpoint="attendance_delete")
    @guard.requires(Role.ADMIN)
    def attendance_delete(attendance_id: int, current_user):
        attendance.delete(current_user, attendance_id)
        return ok(message="Attendance record deleted successfully")
