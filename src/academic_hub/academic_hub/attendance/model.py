from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import isoformat
from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one student's mark in one subject on one calendar day.

    ``student_name``/``roll_number``/``teacher_name`` are copies taken at
    write time; they are not refreshed when the identity is renamed.
    """

    attendance_id: int
    student_id: int
    student_name: str
    roll_number: str
    subject: str
    teacher_id: int
    teacher_name: str
    attended_at: datetime
    status: AttendanceStatus
    branch: str
    semester: int
    marked_by: int
    remarks: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def day(self) -> date:
        return self.attended_at.date()

    def to_public(self) -> dict:
        return {
            "id": self.attendance_id,
            "student": self.student_id,
            "studentName": self.student_name,
            "rollNumber": self.roll_number,
            "subject": self.subject,
            "teacher": self.teacher_id,
            "teacherName": self.teacher_name,
            "date": isoformat(self.attended_at),
            "status": self.status.value,
            "branch": self.branch,
            "semester": self.semester,
            "remarks": self.remarks,
            "markedBy": self.marked_by,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }


@dataclass(frozen=True)
class NewAttendanceRecord:
    student_id: int
    student_name: str
    roll_number: str
    subject: str
    teacher_id: int
    teacher_name: str
    attended_at: datetime
    status: AttendanceStatus
    branch: str
    semester: int
    marked_by: int
    remarks: Optional[str] = None


@dataclass(frozen=True)
class AttendanceFilter:
    branch: Optional[str] = None
    semester: Optional[int] = None
    subject: Optional[str] = None
    student_id: Optional[int] = None
    teacher_id: Optional[int] = None
    status: Optional[AttendanceStatus] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None


@dataclass(frozen=True)
class AttendanceStatsRow:
    """Read-model: attendance totals of one student in one subject."""

    student_id: int
    student_name: str
    roll_number: str
    subject: str
    total: int
    present: int
    absent: int
    late: int
    percentage: float

    def to_public(self) -> dict:
        return {
            "studentId": self.student_id,
            "student": self.student_name,
            "rollNumber": self.roll_number,
            "subject": self.subject,
            "totalClasses": self.total,
            "presentClasses": self.present,
            "absentClasses": self.absent,
            "lateClasses": self.late,
            "attendancePercentage": self.percentage,
        }


@dataclass
class BulkMarkResult:
    results: list = field(default_factory=list)
    errors: list = field(default_factory=list)

    def to_public(self) -> dict:
        return {
            "successful": len(self.results),
            "failed": len(self.errors),
            "results": [r.to_public() for r in self.results],
            "errors": self.errors,
        }
