from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import AttendanceFilter, AttendanceRecord, NewAttendanceRecord


class AttendanceRepository(Protocol):
    """Implementations raise ConflictError when a second record is written
    for the same (student, subject, calendar day)."""

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def find_in_window(
        self, *, student_id: int, subject: str, start: datetime, end: datetime
    ) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def create_record(self, record: NewAttendanceRecord) -> int:
        raise NotImplementedError

    def update_record(self, record: AttendanceRecord) -> None:
        """Persist status and remarks."""

        raise NotImplementedError

    def delete_record(self, attendance_id: int) -> bool:
        raise NotImplementedError

    def list_records(self, criteria: AttendanceFilter) -> Sequence[AttendanceRecord]:
        """Newest first."""

        raise NotImplementedError
