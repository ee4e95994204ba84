from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..access.policy import authorize, scope_class_filters
from ..access.principal import Principal
from ..common.datetime_utils import day_window, now_local, parse_when
from ..common.validators import (
    optional_str,
    require_enum,
    require_int,
    require_max_length,
    require_non_empty,
    require_semester,
)
from ..core.constants import MAX_REMARKS_LENGTH
from ..core.enums import AttendanceStatus, Role
from ..core.exceptions import AuthorizationError, ConflictError, DomainError, NotFoundError, ValidationError
from ..users.model import User
from ..users.repository import UserRepository
from .model import AttendanceFilter, AttendanceRecord, AttendanceStatsRow, BulkMarkResult, NewAttendanceRecord
from .repository import AttendanceRepository
from .stats import aggregate_attendance

logger = logging.getLogger(__name__)

ALREADY_MARKED = "Attendance already marked for this student and subject today"


class AttendanceService:
    def __init__(
        self,
        records: AttendanceRepository,
        users: UserRepository,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._records = records
        self._users = users
        self._clock = clock

    def list_records(self, current_user: Principal, criteria: AttendanceFilter) -> Sequence[AttendanceRecord]:
        return self._records.list_records(self._scoped(current_user, criteria))

    def statistics(self, current_user: Principal, criteria: AttendanceFilter) -> List[AttendanceStatsRow]:
        records = self._records.list_records(self._scoped(current_user, criteria))
        students: Dict[int, Optional[User]] = {}
        for student_id in {r.student_id for r in records}:
            students[student_id] = self._users.get_by_id(student_id)
        return aggregate_attendance(records, students)

    def mark(self, current_user: Principal, fields: Mapping[str, Any]) -> AttendanceRecord:
        authorize(current_user, Role.TEACHER, Role.ADMIN)
        when = parse_when(fields.get("date")) or self._clock()
        return self._mark_one(current_user, fields, when)

    def mark_bulk(
        self,
        current_user: Principal,
        items: Any,
        shared: Mapping[str, Any],
    ) -> BulkMarkResult:
        """Mark each entry independently; failures are collected, not raised.

        ``shared`` holds subject, branch, semester and the optional date.
        """
        authorize(current_user, Role.TEACHER, Role.ADMIN)
        if not isinstance(items, list) or not items:
            raise ValidationError("Attendance list is required and must be an array")

        when = parse_when(shared.get("date")) or self._clock()
        outcome = BulkMarkResult()

        for item in items:
            student = item.get("student") if isinstance(item, Mapping) else None
            try:
                if not isinstance(item, Mapping):
                    raise ValidationError("Invalid attendance entry")
                fields = dict(shared)
                fields.update(student=student, status=item.get("status"), remarks=item.get("remarks"))
                outcome.results.append(self._mark_one(current_user, fields, when))
            except DomainError as e:
                outcome.errors.append({"student": student, "error": str(e)})
            except Exception:
                logger.exception("Bulk attendance failed for student=%s", student)
                outcome.errors.append({"student": student, "error": "Failed to mark attendance"})

        logger.info(
            "Bulk attendance by user_id=%s: %s marked, %s failed",
            current_user.user_id,
            len(outcome.results),
            len(outcome.errors),
        )
        return outcome

    def update(self, current_user: Principal, attendance_id: int, changes: Mapping[str, Any]) -> AttendanceRecord:
        """Only status and remarks can change; other keys are ignored."""
        authorize(current_user, Role.TEACHER, Role.ADMIN)
        record = self._require(attendance_id)
        if current_user.is_teacher and record.teacher_id != current_user.user_id:
            raise AuthorizationError("You can only edit your own attendance records")

        updated = record
        if changes.get("status") not in (None, ""):
            updated = replace(updated, status=require_enum(AttendanceStatus, changes["status"], "Status"))
        if "remarks" in changes:
            updated = replace(updated, remarks=self._remarks(changes["remarks"]))

        self._records.update_record(updated)
        return self._require(record.attendance_id)

    def delete(self, current_user: Principal, attendance_id: int) -> None:
        authorize(current_user, Role.ADMIN)
        if not self._records.delete_record(int(attendance_id)):
            raise NotFoundError("Attendance record not found")
        logger.info("Attendance record %s deleted by user_id=%s", attendance_id, current_user.user_id)

    def _mark_one(self, current_user: Principal, fields: Mapping[str, Any], when: datetime) -> AttendanceRecord:
        if any(fields.get(name) in (None, "") for name in ("student", "subject", "status", "branch", "semester")):
            raise ValidationError("Student, subject, status, branch, and semester are required")

        student_id = require_int(fields["student"], "Student")
        subject = require_non_empty(fields["subject"], "Subject")
        status = require_enum(AttendanceStatus, fields["status"], "Status")
        branch = require_non_empty(fields["branch"], "Branch")
        semester = require_semester(fields["semester"])
        remarks = self._remarks(fields.get("remarks"))

        student = self._users.get_by_id(student_id)
        if not student or student.role != Role.STUDENT:
            raise NotFoundError("Student not found")

        start, end = day_window(when.date())
        if self._records.find_in_window(student_id=student_id, subject=subject, start=start, end=end):
            logger.info("Attendance conflict: student_id=%s subject=%s day=%s", student_id, subject, start.date())
            raise ConflictError(ALREADY_MARKED)

        record_id = self._records.create_record(
            NewAttendanceRecord(
                student_id=student_id,
                student_name=student.name,
                roll_number=student.roll_number or "",
                subject=subject,
                teacher_id=current_user.user_id,
                teacher_name=current_user.name,
                attended_at=when,
                status=status,
                branch=branch,
                semester=semester,
                marked_by=current_user.user_id,
                remarks=remarks,
            )
        )
        return self._require(record_id)

    @staticmethod
    def _scoped(current_user: Principal, criteria: AttendanceFilter) -> AttendanceFilter:
        branch, semester = scope_class_filters(current_user, criteria.branch, criteria.semester)
        criteria = replace(criteria, branch=branch, semester=semester)
        if current_user.is_student:
            return replace(criteria, student_id=current_user.user_id)
        if current_user.is_teacher:
            return replace(criteria, teacher_id=current_user.user_id)
        return criteria

    @staticmethod
    def _remarks(value: Any) -> Optional[str]:
        return require_max_length(optional_str(value), "Remarks", MAX_REMARKS_LENGTH)

    def _require(self, attendance_id: int) -> AttendanceRecord:
        record = self._records.get_by_id(int(attendance_id))
        if not record:
            raise NotFoundError("Attendance record not found")
        return record
