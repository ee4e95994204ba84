from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for authorization."""

    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"


class ClassType(str, Enum):
    THEORY = "theory"
    LAB = "lab"
    TUTORIAL = "tutorial"


class Weekday(str, Enum):
    """Teaching days, declared in calendar order (used for sorting)."""

    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"

    @property
    def order(self) -> int:
        return list(Weekday).index(self)
