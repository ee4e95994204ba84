from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import isoformat
from ..core.constants import TIME_RANGE_PATTERN
from ..core.enums import ClassType, Weekday
from ..core.exceptions import ValidationError

_TIME_RANGE_RE = re.compile(TIME_RANGE_PATTERN)


def parse_time_range(value) -> str:
    """Validate a ``HH:MM - HH:MM`` wall-clock range with start before end."""
    text = str(value or "").strip()
    if not _TIME_RANGE_RE.match(text):
        raise ValidationError("Time format should be HH:MM - HH:MM")
    start, end = re.split(r"\s-\s", text)
    # Zero-padded HH:MM strings order the same as the times they denote.
    if start >= end:
        raise ValidationError("Start time must be before end time")
    return text


@dataclass(frozen=True)
class SlotKey:
    """(branch, semester, day, time, room): at most one active entry may hold it."""

    branch: str
    semester: int
    day: Weekday
    time_range: str
    room: str


@dataclass(frozen=True)
class TimetableEntry:
    """Domain entity: one weekly recurring class slot."""

    entry_id: int
    subject: str
    teacher_id: int
    teacher_name: str
    time_range: str
    room: str
    branch: str
    semester: int
    day: Weekday
    class_type: ClassType
    created_by: int
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def slot_key(self) -> SlotKey:
        return SlotKey(
            branch=self.branch,
            semester=self.semester,
            day=self.day,
            time_range=self.time_range,
            room=self.room,
        )

    def to_public(self) -> dict:
        return {
            "id": self.entry_id,
            "subject": self.subject,
            "teacher": self.teacher_id,
            "teacherName": self.teacher_name,
            "time": self.time_range,
            "room": self.room,
            "branch": self.branch,
            "semester": self.semester,
            "day": self.day.value,
            "type": self.class_type.value,
            "isActive": self.is_active,
            "createdBy": self.created_by,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }


@dataclass(frozen=True)
class NewTimetableEntry:
    subject: str
    teacher_id: int
    teacher_name: str
    time_range: str
    room: str
    branch: str
    semester: int
    day: Weekday
    class_type: ClassType
    created_by: int

    @property
    def slot_key(self) -> SlotKey:
        return SlotKey(
            branch=self.branch,
            semester=self.semester,
            day=self.day,
            time_range=self.time_range,
            room=self.room,
        )


@dataclass(frozen=True)
class TimetableFilter:
    branch: Optional[str] = None
    semester: Optional[int] = None
    day: Optional[Weekday] = None
    teacher_id: Optional[int] = None
