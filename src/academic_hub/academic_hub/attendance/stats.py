"""Attendance statistics: per (student, subject) totals and percentage."""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from ..core.enums import AttendanceStatus
from ..users.model import User
from .model import AttendanceRecord, AttendanceStatsRow


def attendance_percentage(present: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(present / total * 100, 2)


def aggregate_attendance(
    records: Iterable[AttendanceRecord],
    students: Mapping[int, Optional[User]],
) -> List[AttendanceStatsRow]:
    """Group records by (student, subject), highest percentage first.

    Names come from ``students``; the copy stored on the record is used
    when the student is not found.
    """
    groups: Dict[Tuple[int, str], Dict[str, object]] = {}

    for r in records:
        g = groups.get((r.student_id, r.subject))
        if g is None:
            g = {
                "student_name": r.student_name,
                "roll_number": r.roll_number,
                AttendanceStatus.PRESENT: 0,
                AttendanceStatus.ABSENT: 0,
                AttendanceStatus.LATE: 0,
            }
            groups[(r.student_id, r.subject)] = g
        g[r.status] += 1

    rows: List[AttendanceStatsRow] = []
    for (student_id, subject), g in groups.items():
        present = int(g[AttendanceStatus.PRESENT])
        absent = int(g[AttendanceStatus.ABSENT])
        late = int(g[AttendanceStatus.LATE])
        total = present + absent + late

        student = students.get(student_id)
        rows.append(
            AttendanceStatsRow(
                student_id=student_id,
                student_name=student.name if student else str(g["student_name"]),
                roll_number=(student.roll_number if student and student.roll_number else str(g["roll_number"])),
                subject=subject,
                total=total,
                present=present,
                absent=absent,
                late=late,
                percentage=attendance_percentage(present, total),
            )
        )

    rows.sort(key=lambda x: (-x.percentage, x.student_name, x.subject))
    return rows
