from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
from types import SimpleNamespace
from typing import Optional

import pytest
from werkzeug.security import generate_password_hash

from src.academic_hub.academic_hub.access.principal import Principal
from src.academic_hub.academic_hub.access.tokens import TokenService
from src.academic_hub.academic_hub.attendance.model import AttendanceFilter, AttendanceRecord, NewAttendanceRecord
from src.academic_hub.academic_hub.container import wire_container
from src.academic_hub.academic_hub.core.enums import Role
from src.academic_hub.academic_hub.core.exceptions import ConflictError
from src.academic_hub.academic_hub.main import create_app
from src.academic_hub.academic_hub.timetable.model import NewTimetableEntry, SlotKey, TimetableEntry, TimetableFilter
from src.academic_hub.academic_hub.users.model import NewUser, User, UserFilter

# Cheap hash settings keep the suite fast.
HASH_METHOD = "pbkdf2:sha256:1000"

EPOCH = datetime(2026, 1, 1, 8, 0, 0)


class InMemoryUsers:
    """Honours the same unique keys as the users table."""

    def __init__(self):
        self._rows: dict[int, User] = {}
        self._next_id = 1

    def _check_unique(self, user, exclude_id: Optional[int] = None) -> None:
        for other in self._rows.values():
            if other.user_id == exclude_id:
                continue
            if other.email == user.email:
                raise ConflictError("User with this email already exists")
            if user.roll_number and other.roll_number == user.roll_number:
                raise ConflictError("Roll number already exists")
            if user.employee_id and other.employee_id == user.employee_id:
                raise ConflictError("Employee ID already exists")

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._rows.get(int(user_id))

    def get_by_email(self, email: str) -> Optional[User]:
        return next((u for u in self._rows.values() if u.email == email), None)

    def create_user(self, new_user: NewUser) -> int:
        self._check_unique(new_user)
        user_id = self._next_id
        self._next_id += 1
        created_at = EPOCH + timedelta(minutes=user_id)
        self._rows[user_id] = User(
            user_id=user_id,
            name=new_user.name,
            email=new_user.email,
            password_hash=new_user.password_hash,
            role=new_user.role,
            branch=new_user.branch,
            semester=new_user.semester,
            roll_number=new_user.roll_number,
            employee_id=new_user.employee_id,
            department=new_user.department,
            created_at=created_at,
            updated_at=created_at,
        )
        return user_id

    def update_user(self, user: User) -> None:
        self._check_unique(user, exclude_id=user.user_id)
        self._rows[user.user_id] = user

    def set_last_login(self, user_id: int, *, when: datetime) -> None:
        self._rows[user_id] = replace(self._rows[user_id], last_login=when)

    def list_users(self, criteria: UserFilter, *, order_by_name: bool = False):
        items = list(self._rows.values())
        if criteria.role is not None:
            items = [u for u in items if u.role == criteria.role]
        if criteria.branch:
            items = [u for u in items if u.branch == criteria.branch]
        if criteria.semester is not None:
            items = [u for u in items if u.semester == criteria.semester]
        if criteria.department:
            items = [u for u in items if u.department == criteria.department]
        if criteria.is_active is not None:
            items = [u for u in items if u.is_active == criteria.is_active]
        if criteria.search:
            term = criteria.search.lower()
            items = [
                u
                for u in items
                if any(term in (v or "").lower() for v in (u.name, u.email, u.roll_number, u.employee_id))
            ]
        if order_by_name:
            return sorted(items, key=lambda u: u.name)
        return sorted(items, key=lambda u: (u.created_at, u.user_id), reverse=True)

    def role_overview(self):
        rows = []
        for role in sorted({u.role for u in self._rows.values()}, key=lambda r: r.value):
            members = [u for u in self._rows.values() if u.role == role]
            rows.append({"role": role.value, "count": len(members), "active": sum(1 for u in members if u.is_active)})
        return rows


class InMemoryTimetable:
    """At most one active entry per slot, like uq_timetable_slot."""

    def __init__(self):
        self._rows: dict[int, TimetableEntry] = {}
        self._next_id = 1

    def _check_slot(self, key: SlotKey, exclude_id: Optional[int] = None) -> None:
        if self.find_active_in_slot(key, exclude_id=exclude_id):
            raise ConflictError("Time slot conflict: Room is already booked for this time")

    def get_by_id(self, entry_id: int) -> Optional[TimetableEntry]:
        return self._rows.get(int(entry_id))

    def find_active_in_slot(self, key: SlotKey, *, exclude_id: Optional[int] = None) -> Optional[TimetableEntry]:
        return next(
            (e for e in self._rows.values() if e.is_active and e.slot_key == key and e.entry_id != exclude_id),
            None,
        )

    def create_entry(self, entry: NewTimetableEntry) -> int:
        self._check_slot(entry.slot_key)
        entry_id = self._next_id
        self._next_id += 1
        self._rows[entry_id] = TimetableEntry(
            entry_id=entry_id,
            subject=entry.subject,
            teacher_id=entry.teacher_id,
            teacher_name=entry.teacher_name,
            time_range=entry.time_range,
            room=entry.room,
            branch=entry.branch,
            semester=entry.semester,
            day=entry.day,
            class_type=entry.class_type,
            created_by=entry.created_by,
        )
        return entry_id

    def update_entry(self, entry: TimetableEntry) -> None:
        if entry.is_active:
            self._check_slot(entry.slot_key, exclude_id=entry.entry_id)
        self._rows[entry.entry_id] = entry

    def list_active(self, criteria: TimetableFilter):
        items = [e for e in self._rows.values() if e.is_active]
        if criteria.branch:
            items = [e for e in items if e.branch == criteria.branch]
        if criteria.semester is not None:
            items = [e for e in items if e.semester == criteria.semester]
        if criteria.day is not None:
            items = [e for e in items if e.day == criteria.day]
        if criteria.teacher_id is not None:
            items = [e for e in items if e.teacher_id == criteria.teacher_id]
        return sorted(items, key=lambda e: (e.day.order, e.time_range, e.entry_id))


class InMemoryAttendance:
    """One record per (student, subject, calendar day), like uq_attendance_day."""

    def __init__(self):
        self._rows: dict[int, AttendanceRecord] = {}
        self._next_id = 1

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        return self._rows.get(int(attendance_id))

    def find_in_window(self, *, student_id, subject, start, end) -> Optional[AttendanceRecord]:
        return next(
            (
                r
                for r in self._rows.values()
                if r.student_id == student_id and r.subject == subject and start <= r.attended_at <= end
            ),
            None,
        )

    def create_record(self, record: NewAttendanceRecord) -> int:
        for r in self._rows.values():
            if (r.student_id, r.subject, r.day) == (record.student_id, record.subject, record.attended_at.date()):
                raise ConflictError("Attendance already marked for this student and subject today")
        attendance_id = self._next_id
        self._next_id += 1
        self._rows[attendance_id] = AttendanceRecord(
            attendance_id=attendance_id,
            student_id=record.student_id,
            student_name=record.student_name,
            roll_number=record.roll_number,
            subject=record.subject,
            teacher_id=record.teacher_id,
            teacher_name=record.teacher_name,
            attended_at=record.attended_at,
            status=record.status,
            branch=record.branch,
            semester=record.semester,
            marked_by=record.marked_by,
            remarks=record.remarks,
        )
        return attendance_id

    def update_record(self, record: AttendanceRecord) -> None:
        self._rows[record.attendance_id] = record

    def delete_record(self, attendance_id: int) -> bool:
        return self._rows.pop(int(attendance_id), None) is not None

    def list_records(self, criteria: AttendanceFilter):
        items = list(self._rows.values())
        for attr in ("branch", "semester", "subject", "student_id", "teacher_id", "status"):
            wanted = getattr(criteria, attr)
            if wanted not in (None, ""):
                items = [r for r in items if getattr(r, attr) == wanted]
        if criteria.start is not None:
            items = [r for r in items if r.attended_at >= criteria.start]
        if criteria.end is not None:
            items = [r for r in items if r.attended_at <= criteria.end]
        return sorted(items, key=lambda r: (r.attended_at, r.attendance_id), reverse=True)


def add_user(repo: InMemoryUsers, name: str, email: str, role: Role, password: str = "secret123", **extra) -> User:
    user_id = repo.create_user(
        NewUser(
            name=name,
            email=email,
            password_hash=generate_password_hash(password, method=HASH_METHOD),
            role=role,
            **extra,
        )
    )
    return repo.get_by_id(user_id)


@pytest.fixture
def fixed_now() -> datetime:
    # A Monday
    return datetime(2026, 3, 2, 9, 30, 0)


@pytest.fixture
def users_repo() -> InMemoryUsers:
    return InMemoryUsers()


@pytest.fixture
def timetable_repo() -> InMemoryTimetable:
    return InMemoryTimetable()


@pytest.fixture
def attendance_repo() -> InMemoryAttendance:
    return InMemoryAttendance()


@pytest.fixture
def people(users_repo):
    """admin, two teachers and three students; password 'secret123' for all."""
    return SimpleNamespace(
        admin=add_user(users_repo, "Admin User", "admin@college.edu", Role.ADMIN),
        teacher=add_user(
            users_repo, "Dr. Robert Wilson", "robert.wilson@college.edu", Role.TEACHER,
            employee_id="T001", department="Computer Science",
        ),
        teacher2=add_user(
            users_repo, "Prof. Sarah Johnson", "sarah.johnson@college.edu", Role.TEACHER,
            employee_id="T002", department="Computer Science",
        ),
        student=add_user(
            users_repo, "John Doe", "john.doe@college.edu", Role.STUDENT,
            branch="Computer Science", semester=6, roll_number="CS2021001",
        ),
        student2=add_user(
            users_repo, "Jane Smith", "jane.smith@college.edu", Role.STUDENT,
            branch="Computer Science", semester=6, roll_number="CS2021002",
        ),
        student_ec=add_user(
            users_repo, "Bob Wilson", "bob.wilson@college.edu", Role.STUDENT,
            branch="Electrical", semester=4, roll_number="EC2022001",
        ),
    )


@pytest.fixture
def as_principal():
    return Principal.from_user


@pytest.fixture
def tokens() -> TokenService:
    return TokenService("test-secret", max_age=3600)


@pytest.fixture
def container(users_repo, timetable_repo, attendance_repo, tokens, people, fixed_now):
    return wire_container(
        users_repo=users_repo,
        timetable_repo=timetable_repo,
        attendance_repo=attendance_repo,
        tokens=tokens,
        clock=lambda: fixed_now,
    )


@pytest.fixture
def app(container):
    return create_app("config.testing", container=container)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_header(tokens):
    def _header(user: User) -> dict:
        return {"Authorization": f"Bearer {tokens.issue(user.user_id)}"}

    return _header
