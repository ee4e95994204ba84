from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import ClassType, Weekday
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import NewTimetableEntry, SlotKey, TimetableEntry, TimetableFilter
from .repository import TimetableRepository

_COLUMNS = """
    entry_id, subject, teacher_id, teacher_name, time_range, room, branch, semester,
    day, class_type, is_active, created_by, created_at, updated_at
"""

_CONFLICTS = {"uq_timetable_slot": "Time slot conflict: Room is already booked for this time"}

_DAY_ORDER = ", ".join(f"'{d.value}'" for d in Weekday)


def _to_entry(r: dict) -> TimetableEntry:
    return TimetableEntry(
        entry_id=int(r["entry_id"]),
        subject=r["subject"],
        teacher_id=int(r["teacher_id"]),
        teacher_name=r["teacher_name"],
        time_range=r["time_range"],
        room=r["room"],
        branch=r["branch"],
        semester=int(r["semester"]),
        day=Weekday(r["day"]),
        class_type=ClassType(r["class_type"]),
        is_active=bool(r["is_active"]),
        created_by=int(r["created_by"]),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


class MySQLTimetableRepository(TimetableRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, entry_id: int) -> Optional[TimetableEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM timetable_entries WHERE entry_id=%s", (int(entry_id),))
            r = fetchone(cur)
            return _to_entry(r) if r else None

    def find_active_in_slot(self, key: SlotKey, *, exclude_id: Optional[int] = None) -> Optional[TimetableEntry]:
        clauses = ["branch=%s", "semester=%s", "day=%s", "time_range=%s", "room=%s", "is_active=1"]
        params: list[object] = [key.branch, int(key.semester), key.day.value, key.time_range, key.room]
        if exclude_id is not None:
            clauses.append("entry_id<>%s")
            params.append(int(exclude_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM timetable_entries WHERE {' AND '.join(clauses)} LIMIT 1",
                tuple(params),
            )
            r = fetchone(cur)
            return _to_entry(r) if r else None

    def create_entry(self, entry: NewTimetableEntry) -> int:
        with db_cursor(self._conn_factory, conflicts=_CONFLICTS) as (_, cur):
            cur.execute(
                """
                INSERT INTO timetable_entries(subject, teacher_id, teacher_name, time_range, room,
                                              branch, semester, day, class_type, is_active, created_by)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,1,%s)
                """,
                (
                    entry.subject,
                    int(entry.teacher_id),
                    entry.teacher_name,
                    entry.time_range,
                    entry.room,
                    entry.branch,
                    int(entry.semester),
                    entry.day.value,
                    entry.class_type.value,
                    int(entry.created_by),
                ),
            )
            return int(cur.lastrowid)

    def update_entry(self, entry: TimetableEntry) -> None:
        with db_cursor(self._conn_factory, conflicts=_CONFLICTS) as (_, cur):
            cur.execute(
                """
                UPDATE timetable_entries
                SET subject=%s, teacher_id=%s, teacher_name=%s, time_range=%s, room=%s,
                    branch=%s, semester=%s, day=%s, class_type=%s, is_active=%s
                WHERE entry_id=%s
                """,
                (
                    entry.subject,
                    int(entry.teacher_id),
                    entry.teacher_name,
                    entry.time_range,
                    entry.room,
                    entry.branch,
                    int(entry.semester),
                    entry.day.value,
                    entry.class_type.value,
                    1 if entry.is_active else 0,
                    int(entry.entry_id),
                ),
            )

    def list_active(self, criteria: TimetableFilter) -> Sequence[TimetableEntry]:
        clauses = ["is_active=1"]
        params: list[object] = []

        if criteria.branch:
            clauses.append("branch=%s")
            params.append(criteria.branch)
        if criteria.semester is not None:
            clauses.append("semester=%s")
            params.append(int(criteria.semester))
        if criteria.day is not None:
            clauses.append("day=%s")
            params.append(criteria.day.value)
        if criteria.teacher_id is not None:
            clauses.append("teacher_id=%s")
            params.append(int(criteria.teacher_id))

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM timetable_entries
                WHERE {where}
                ORDER BY FIELD(day, {_DAY_ORDER}) ASC, time_range ASC, entry_id ASC
                """,
                tuple(params),
            )
            return [_to_entry(r) for r in fetchall(cur)]
