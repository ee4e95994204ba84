from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, like_pattern
from .model import NewUser, User, UserFilter
from .repository import UserRepository

_COLUMNS = """
    user_id, name, email, password_hash, role, branch, semester, roll_number,
    employee_id, department, is_active, last_login, created_at, updated_at
"""

_CONFLICTS = {
    "uq_users_email": "User with this email already exists",
    "uq_users_roll_number": "Roll number already exists",
    "uq_users_employee_id": "Employee ID already exists",
}


def _to_user(r: dict) -> User:
    return User(
        user_id=int(r["user_id"]),
        name=r["name"],
        email=r["email"],
        password_hash=r["password_hash"],
        role=Role(r["role"]),
        branch=r.get("branch"),
        semester=int(r["semester"]) if r.get("semester") is not None else None,
        roll_number=r.get("roll_number"),
        employee_id=r.get("employee_id"),
        department=r.get("department"),
        is_active=bool(r.get("is_active", True)),
        last_login=r.get("last_login"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE user_id=%s", (int(user_id),))
            row = fetchone(cur)
            return _to_user(row) if row else None

    def get_by_email(self, email: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE email=%s", (email,))
            row = fetchone(cur)
            return _to_user(row) if row else None

    def create_user(self, new_user: NewUser) -> int:
        with db_cursor(self._conn_factory, conflicts=_CONFLICTS) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(name, email, password_hash, role, branch, semester,
                                  roll_number, employee_id, department, is_active)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,1)
                """,
                (
                    new_user.name,
                    new_user.email,
                    new_user.password_hash,
                    new_user.role.value,
                    new_user.branch,
                    new_user.semester,
                    new_user.roll_number,
                    new_user.employee_id,
                    new_user.department,
                ),
            )
            return int(cur.lastrowid)

    def update_user(self, user: User) -> None:
        with db_cursor(self._conn_factory, conflicts=_CONFLICTS) as (_, cur):
            cur.execute(
                """
                UPDATE users
                SET name=%s, email=%s, role=%s, branch=%s, semester=%s, roll_number=%s,
                    employee_id=%s, department=%s, is_active=%s
                WHERE user_id=%s
                """,
                (
                    user.name,
                    user.email,
                    user.role.value,
                    user.branch,
                    user.semester,
                    user.roll_number,
                    user.employee_id,
                    user.department,
                    1 if user.is_active else 0,
                    int(user.user_id),
                ),
            )

    def set_last_login(self, user_id: int, *, when: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET last_login=%s WHERE user_id=%s", (when, int(user_id)))

    def list_users(self, criteria: UserFilter, *, order_by_name: bool = False) -> Sequence[User]:
        clauses = ["1=1"]
        params: list[object] = []

        if criteria.role is not None:
            clauses.append("role=%s")
            params.append(criteria.role.value)
        if criteria.branch:
            clauses.append("branch=%s")
            params.append(criteria.branch)
        if criteria.semester is not None:
            clauses.append("semester=%s")
            params.append(int(criteria.semester))
        if criteria.department:
            clauses.append("department=%s")
            params.append(criteria.department)
        if criteria.is_active is not None:
            clauses.append("is_active=%s")
            params.append(1 if criteria.is_active else 0)
        if criteria.search:
            # utf8mb4_unicode_ci makes LIKE case-insensitive.
            pattern = like_pattern(criteria.search)
            clauses.append("(name LIKE %s OR email LIKE %s OR roll_number LIKE %s OR employee_id LIKE %s)")
            params.extend([pattern] * 4)

        where = " AND ".join(clauses)
        order = "name ASC" if order_by_name else "created_at DESC, user_id DESC"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE {where} ORDER BY {order}", tuple(params))
            return [_to_user(r) for r in fetchall(cur)]

    def role_overview(self) -> Sequence[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT role, COUNT(*) AS total, SUM(CASE WHEN is_active=1 THEN 1 ELSE 0 END) AS active
                FROM users
                GROUP BY role
                ORDER BY role
                """
            )
            return [
                {"role": r["role"], "count": int(r["total"]), "active": int(r["active"] or 0)}
                for r in fetchall(cur)
            ]
