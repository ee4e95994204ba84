from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .access.guard import AccessGuard
from .access.tokens import TokenService
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .common.datetime_utils import now_local
from .core.constants import DEFAULT_TOKEN_MAX_AGE
from .database.connection import DBConfig, DatabaseConnection
from .timetable.mysql_timetable_repository import MySQLTimetableRepository
from .timetable.repository import TimetableRepository
from .timetable.service import TimetableService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Container:
    users_repo: UserRepository
    timetable_repo: TimetableRepository
    attendance_repo: AttendanceRepository

    tokens: TokenService
    guard: AccessGuard

    auth_service: AuthService
    user_service: UserService
    timetable_service: TimetableService
    attendance_service: AttendanceService

    conn: Optional[DatabaseConnection] = None


def wire_container(
    *,
    users_repo: UserRepository,
    timetable_repo: TimetableRepository,
    attendance_repo: AttendanceRepository,
    tokens: TokenService,
    conn: Optional[DatabaseConnection] = None,
    clock: Callable[[], datetime] = now_local,
) -> Container:
    return Container(
        users_repo=users_repo,
        timetable_repo=timetable_repo,
        attendance_repo=attendance_repo,
        tokens=tokens,
        guard=AccessGuard(tokens, users_repo),
        auth_service=AuthService(users_repo, tokens, clock=clock),
        user_service=UserService(users_repo),
        timetable_service=TimetableService(timetable_repo, users_repo),
        attendance_service=AttendanceService(attendance_repo, users_repo, clock=clock),
        conn=conn,
    )


def build_container(*, db_config: dict, secret_key: str, token_max_age: int = DEFAULT_TOKEN_MAX_AGE) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
    )
    conn = DatabaseConnection.get_instance(config)

    return wire_container(
        users_repo=MySQLUserRepository(conn),
        timetable_repo=MySQLTimetableRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        tokens=TokenService(secret_key, max_age=token_max_age),
        conn=conn,
    )
