from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AttendanceFilter, AttendanceRecord, NewAttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = """
    attendance_id, student_id, student_name, roll_number, subject, teacher_id, teacher_name,
    attended_at, status, branch, semester, remarks, marked_by, created_at, updated_at
"""

_CONFLICTS = {"uq_attendance_day": "Attendance already marked for this student and subject today"}


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        student_id=int(r["student_id"]),
        student_name=r["student_name"],
        roll_number=r["roll_number"],
        subject=r["subject"],
        teacher_id=int(r["teacher_id"]),
        teacher_name=r["teacher_name"],
        attended_at=r["attended_at"],
        status=AttendanceStatus(r["status"]),
        branch=r["branch"],
        semester=int(r["semester"]),
        marked_by=int(r["marked_by"]),
        remarks=r.get("remarks"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE attendance_id=%s",
                (int(attendance_id),),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def find_in_window(
        self, *, student_id: int, subject: str, start: datetime, end: datetime
    ) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE student_id=%s AND subject=%s AND attended_at BETWEEN %s AND %s
                LIMIT 1
                """,
                (int(student_id), subject, start, end),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def create_record(self, record: NewAttendanceRecord) -> int:
        with db_cursor(self._conn_factory, conflicts=_CONFLICTS) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(student_id, student_name, roll_number, subject,
                                               teacher_id, teacher_name, attended_at, status,
                                               branch, semester, remarks, marked_by)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(record.student_id),
                    record.student_name,
                    record.roll_number,
                    record.subject,
                    int(record.teacher_id),
                    record.teacher_name,
                    record.attended_at,
                    record.status.value,
                    record.branch,
                    int(record.semester),
                    record.remarks,
                    int(record.marked_by),
                ),
            )
            return int(cur.lastrowid)

    def update_record(self, record: AttendanceRecord) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE attendance_records SET status=%s, remarks=%s WHERE attendance_id=%s",
                (record.status.value, record.remarks, int(record.attendance_id)),
            )

    def delete_record(self, attendance_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM attendance_records WHERE attendance_id=%s", (int(attendance_id),))
            return cur.rowcount > 0

    def list_records(self, criteria: AttendanceFilter) -> Sequence[AttendanceRecord]:
        clauses = ["1=1"]
        params: list[object] = []

        if criteria.branch:
            clauses.append("branch=%s")
            params.append(criteria.branch)
        if criteria.semester is not None:
            clauses.append("semester=%s")
            params.append(int(criteria.semester))
        if criteria.subject:
            clauses.append("subject=%s")
            params.append(criteria.subject)
        if criteria.student_id is not None:
            clauses.append("student_id=%s")
            params.append(int(criteria.student_id))
        if criteria.teacher_id is not None:
            clauses.append("teacher_id=%s")
            params.append(int(criteria.teacher_id))
        if criteria.status is not None:
            clauses.append("status=%s")
            params.append(criteria.status.value)
        if criteria.start is not None:
            clauses.append("attended_at>=%s")
            params.append(criteria.start)
        if criteria.end is not None:
            clauses.append("attended_at<=%s")
            params.append(criteria.end)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE {' AND '.join(clauses)}
                ORDER BY attended_at DESC, attendance_id DESC
                """,
                tuple(params),
            )
            return [_to_record(r) for r in fetchall(cur)]
