from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, Optional

import mysql.connector
from werkzeug.security import generate_password_hash

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parents[4] / "database" / "schema.sql"

DEMO_ADMIN = ("Admin User", "admin@college.edu", "admin123")

DEMO_TEACHERS = (
    ("Dr. Robert Wilson", "robert.wilson@college.edu", "T001", "Computer Science"),
    ("Prof. Sarah Johnson", "sarah.johnson@college.edu", "T002", "Computer Science"),
    ("Dr. Michael Brown", "michael.brown@college.edu", "T003", "Electrical"),
)
DEMO_TEACHER_PASSWORD = "teacher123"

DEMO_STUDENTS = (
    ("John Doe", "john.doe@college.edu", "Computer Science", 6, "CS2021001"),
    ("Jane Smith", "jane.smith@college.edu", "Computer Science", 6, "CS2021002"),
    ("Alice Johnson", "alice.johnson@college.edu", "Computer Science", 4, "CS2022001"),
    ("Bob Wilson", "bob.wilson@college.edu", "Electrical", 4, "EC2022001"),
    ("Charlie Brown", "charlie.brown@college.edu", "Electrical", 6, "EC2021001"),
)
DEMO_STUDENT_PASSWORD = "student123"

# (subject, teacher email, time, room, branch, semester, day, type)
DEMO_TIMETABLE = (
    ("Data Structures", "robert.wilson@college.edu", "09:00 - 10:00", "CS-101", "Computer Science", 6, "Monday", "theory"),
    ("Database Management", "sarah.johnson@college.edu", "10:15 - 11:15", "CS-102", "Computer Science", 6, "Monday", "theory"),
    ("Software Engineering", "robert.wilson@college.edu", "11:30 - 12:30", "CS-103", "Computer Science", 6, "Monday", "theory"),
    ("Computer Networks", "sarah.johnson@college.edu", "14:00 - 15:00", "CS-104", "Computer Science", 6, "Tuesday", "theory"),
    ("Web Development Lab", "robert.wilson@college.edu", "15:15 - 17:15", "CS-Lab1", "Computer Science", 6, "Tuesday", "lab"),
    ("Digital Electrical", "michael.brown@college.edu", "09:00 - 10:00", "EC-101", "Electrical", 4, "Monday", "theory"),
    ("Microprocessors", "michael.brown@college.edu", "10:15 - 11:15", "EC-102", "Electrical", 6, "Monday", "theory"),
)

DEMO_ATTENDANCE_SUBJECTS = ("Data Structures", "Database Management", "Software Engineering")


@dataclass(frozen=True)
class DBTarget:
    host: str
    port: int
    user: str
    password: str
    database: str


def _as_target(db_config: dict) -> DBTarget:
    return DBTarget(
        host=str(db_config.get("host", "localhost")),
        port=int(db_config.get("port", 3306)),
        user=str(db_config.get("user", "root")),
        password=str(db_config.get("password", "")),
        database=str(db_config.get("database", "academic_hub")),
    )


def _connect(target: DBTarget, *, with_database: bool = True):
    kwargs = dict(host=target.host, port=target.port, user=target.user, password=target.password, use_pure=True)
    if with_database:
        kwargs["database"] = target.database
    return mysql.connector.connect(**kwargs)


def _strip_create_db_and_use(sql: str) -> str:
    # The target database comes from DB_CONFIG, not from the file.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _strip_comments(sql: str) -> str:
    return "\n".join(line for line in sql.splitlines() if not line.lstrip().startswith("--"))


def iter_sql_statements(sql: str) -> Iterable[str]:
    """Split a script on ';' outside quoted strings."""
    buf: list[str] = []
    quote: Optional[str] = None
    escape = False

    for ch in sql:
        if escape:
            buf.append(ch)
            escape = False
            continue
        if ch == "\\":
            buf.append(ch)
            escape = True
            continue
        if ch in ("'", '"'):
            if quote is None:
                quote = ch
            elif quote == ch:
                quote = None
        if ch == ";" and quote is None:
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt
            continue
        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        yield tail


def ensure_database_exists(db_config: dict) -> None:
    target = _as_target(db_config)
    conn = _connect(target, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path = SCHEMA_PATH) -> None:
    ensure_database_exists(db_config)
    sql = _strip_comments(_strip_create_db_and_use(Path(schema_path).read_text(encoding="utf-8")))

    conn = _connect(_as_target(db_config))
    try:
        cur = conn.cursor()
        for stmt in iter_sql_statements(sql):
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()
    logger.info("Schema applied from %s", schema_path)


def ensure_demo_users(db_config: dict) -> None:
    """Upsert the demo admin, teachers and students by email."""
    conn = _connect(_as_target(db_config))
    try:
        cur = conn.cursor(dictionary=True)

        def upsert_user(name: str, email: str, password: str, role: str, **extra) -> None:
            columns = ["name", "password_hash", "role", "branch", "semester", "roll_number", "employee_id", "department"]
            values = [
                name,
                generate_password_hash(password),
                role,
                extra.get("branch"),
                extra.get("semester"),
                extra.get("roll_number"),
                extra.get("employee_id"),
                extra.get("department"),
            ]
            cur.execute("SELECT user_id FROM users WHERE email=%s", (email,))
            if cur.fetchone():
                assignments = ", ".join(f"{c}=%s" for c in columns)
                cur.execute(
                    f"UPDATE users SET {assignments}, is_active=1 WHERE email=%s",
                    tuple(values) + (email,),
                )
            else:
                cur.execute(
                    f"INSERT INTO users (email, {', '.join(columns)}) VALUES ({', '.join(['%s'] * (len(columns) + 1))})",
                    (email, *values),
                )

        admin_name, admin_email, admin_password = DEMO_ADMIN
        upsert_user(admin_name, admin_email, admin_password, "admin")
        for name, email, employee_id, department in DEMO_TEACHERS:
            upsert_user(name, email, DEMO_TEACHER_PASSWORD, "teacher", employee_id=employee_id, department=department)
        for name, email, branch, semester, roll_number in DEMO_STUDENTS:
            upsert_user(name, email, DEMO_STUDENT_PASSWORD, "student", branch=branch, semester=semester, roll_number=roll_number)

        conn.commit()
    finally:
        conn.close()
    logger.info("Demo users ready (%s)", 1 + len(DEMO_TEACHERS) + len(DEMO_STUDENTS))


def _user_ids_by_email(cur) -> dict[str, tuple[int, str]]:
    cur.execute("SELECT user_id, name, email FROM users")
    return {row["email"]: (int(row["user_id"]), row["name"]) for row in cur.fetchall()}


def ensure_demo_timetable(db_config: dict) -> None:
    """Insert the demo weekly timetable; slots already taken are skipped."""
    conn = _connect(_as_target(db_config))
    try:
        cur = conn.cursor(dictionary=True)
        users = _user_ids_by_email(cur)
        for subject, teacher_email, time_range, room, branch, semester, day, class_type in DEMO_TIMETABLE:
            teacher_id, teacher_name = users[teacher_email]
            cur.execute(
                """
                INSERT IGNORE INTO timetable_entries(subject, teacher_id, teacher_name, time_range, room,
                                                     branch, semester, day, class_type, created_by)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (subject, teacher_id, teacher_name, time_range, room, branch, semester, day, class_type, teacher_id),
            )
        conn.commit()
    finally:
        conn.close()


def ensure_demo_attendance(db_config: dict, *, days: int = 30, today: Optional[datetime] = None) -> None:
    """Weekday attendance for Computer Science semester 6 over the last ``days`` days.

    Status follows a fixed rotation so repeated seeding yields the same data.
    """
    today = today or datetime.now()
    conn = _connect(_as_target(db_config))
    try:
        cur = conn.cursor(dictionary=True)
        users = _user_ids_by_email(cur)
        teacher_by_subject = {row[0]: users[row[1]] for row in DEMO_TIMETABLE}

        for offset in range(days):
            when = (today - timedelta(days=offset)).replace(hour=9, minute=0, second=0, microsecond=0)
            if when.weekday() >= 5:
                continue
            for index, (name, email, branch, semester, roll_number) in enumerate(DEMO_STUDENTS):
                if branch != "Computer Science" or semester != 6:
                    continue
                student_id, _ = users[email]
                for subject in DEMO_ATTENDANCE_SUBJECTS:
                    teacher_id, teacher_name = teacher_by_subject[subject]
                    tick = offset + index + len(subject)
                    status = "absent" if tick % 7 == 0 else ("late" if tick % 11 == 0 else "present")
                    cur.execute(
                        """
                        INSERT IGNORE INTO attendance_records(student_id, student_name, roll_number, subject,
                                                              teacher_id, teacher_name, attended_at, status,
                                                              branch, semester, marked_by)
                        VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                        """,
                        (student_id, name, roll_number, subject, teacher_id, teacher_name, when, status,
                         branch, semester, teacher_id),
                    )
        conn.commit()
    finally:
        conn.close()


def list_tables(db_config: dict) -> list[str]:
    conn = _connect(_as_target(db_config))
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
