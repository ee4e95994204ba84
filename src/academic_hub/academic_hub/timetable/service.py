from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Mapping, Optional, Sequence, Tuple

from ..access.policy import authorize, scope_class_filters
from ..access.principal import Principal
from ..common.validators import optional_str, require_enum, require_int, require_non_empty, require_semester
from ..core.enums import ClassType, Role, Weekday
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..users.repository import UserRepository
from .model import NewTimetableEntry, TimetableEntry, TimetableFilter, parse_time_range
from .repository import TimetableRepository

logger = logging.getLogger(__name__)

SLOT_CONFLICT = "Time slot conflict: Room is already booked for this time"

_REQUIRED = ("subject", "teacher", "time_range", "room", "branch", "semester", "day")


class TimetableService:
    def __init__(self, entries: TimetableRepository, users: UserRepository):
        self._entries = entries
        self._users = users

    def list_entries(self, current_user: Principal, criteria: TimetableFilter) -> Sequence[TimetableEntry]:
        branch, semester = scope_class_filters(current_user, criteria.branch, criteria.semester)
        return self._entries.list_active(replace(criteria, branch=branch, semester=semester))

    def get_entry(self, current_user: Principal, entry_id: int) -> TimetableEntry:
        entry = self._require(entry_id)
        if current_user.is_student and (
            entry.branch != current_user.branch or entry.semester != current_user.semester
        ):
            raise AuthorizationError("Access denied")
        return entry

    def create_entry(self, current_user: Principal, fields: Mapping[str, Any]) -> TimetableEntry:
        authorize(current_user, Role.TEACHER, Role.ADMIN)

        if any(fields.get(name) in (None, "") for name in _REQUIRED):
            raise ValidationError("All required fields must be provided")

        teacher_id, teacher_name = self._resolve_teacher(fields["teacher"], fields.get("teacher_name"))
        class_type = fields.get("class_type")
        new_entry = NewTimetableEntry(
            subject=require_non_empty(fields["subject"], "Subject"),
            teacher_id=teacher_id,
            teacher_name=teacher_name,
            time_range=parse_time_range(fields["time_range"]),
            room=require_non_empty(fields["room"], "Room"),
            branch=require_non_empty(fields["branch"], "Branch"),
            semester=require_semester(fields["semester"]),
            day=require_enum(Weekday, fields["day"], "Day"),
            class_type=require_enum(ClassType, class_type, "Type") if class_type else ClassType.THEORY,
            created_by=current_user.user_id,
        )

        if self._entries.find_active_in_slot(new_entry.slot_key):
            logger.info("Slot conflict on create: %s", new_entry.slot_key)
            raise ConflictError(SLOT_CONFLICT)

        entry_id = self._entries.create_entry(new_entry)
        return self._require(entry_id)

    def update_entry(self, current_user: Principal, entry_id: int, changes: Mapping[str, Any]) -> TimetableEntry:
        authorize(current_user, Role.TEACHER, Role.ADMIN)
        entry = self._require(entry_id)
        self._check_owner(current_user, entry, "edit")

        wanted = {k: v for k, v in changes.items() if v not in (None, "")}
        updated = entry

        if "subject" in wanted:
            updated = replace(updated, subject=require_non_empty(wanted["subject"], "Subject"))
        if "teacher" in wanted:
            teacher_id, teacher_name = self._resolve_teacher(wanted["teacher"], wanted.get("teacher_name"))
            updated = replace(updated, teacher_id=teacher_id, teacher_name=teacher_name)
        elif "teacher_name" in wanted:
            updated = replace(updated, teacher_name=require_non_empty(wanted["teacher_name"], "Teacher name"))
        if "time_range" in wanted:
            updated = replace(updated, time_range=parse_time_range(wanted["time_range"]))
        if "room" in wanted:
            updated = replace(updated, room=require_non_empty(wanted["room"], "Room"))
        if "branch" in wanted:
            updated = replace(updated, branch=require_non_empty(wanted["branch"], "Branch"))
        if "semester" in wanted:
            updated = replace(updated, semester=require_semester(wanted["semester"]))
        if "day" in wanted:
            updated = replace(updated, day=require_enum(Weekday, wanted["day"], "Day"))
        if "class_type" in wanted:
            updated = replace(updated, class_type=require_enum(ClassType, wanted["class_type"], "Type"))

        if updated.is_active and self._entries.find_active_in_slot(updated.slot_key, exclude_id=entry.entry_id):
            logger.info("Slot conflict on update of entry_id=%s: %s", entry.entry_id, updated.slot_key)
            raise ConflictError(SLOT_CONFLICT)

        self._entries.update_entry(updated)
        return self._require(entry.entry_id)

    def delete_entry(self, current_user: Principal, entry_id: int) -> None:
        authorize(current_user, Role.TEACHER, Role.ADMIN)
        entry = self._require(entry_id)
        self._check_owner(current_user, entry, "delete")
        self._entries.update_entry(replace(entry, is_active=False))

    @staticmethod
    def _check_owner(current_user: Principal, entry: TimetableEntry, action: str) -> None:
        if current_user.is_teacher and entry.created_by != current_user.user_id:
            raise AuthorizationError(f"You can only {action} your own timetable entries")

    def _resolve_teacher(self, teacher: Any, teacher_name: Optional[str]) -> Tuple[int, str]:
        teacher_id = require_int(teacher, "Teacher")
        user = self._users.get_by_id(teacher_id)
        if not user or user.role != Role.TEACHER:
            raise ValidationError("Teacher not found")
        return teacher_id, optional_str(teacher_name) or user.name

    def _require(self, entry_id: int) -> TimetableEntry:
        entry = self._entries.get_by_id(int(entry_id))
        if not entry:
            raise NotFoundError("Timetable entry not found")
        return entry
