from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import isoformat
from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: a person using the system.

    Note: Plain data object (no DB access code). ``password_hash`` never
    leaves the process; use :meth:`to_public` for outbound payloads.
    """

    user_id: int
    name: str
    email: str
    password_hash: str
    role: Role
    branch: Optional[str] = None
    semester: Optional[int] = None
    roll_number: Optional[str] = None
    employee_id: Optional[str] = None
    department: Optional[str] = None
    is_active: bool = True
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_public(self) -> dict:
        data = {
            "id": self.user_id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "isActive": self.is_active,
            "lastLogin": isoformat(self.last_login),
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }
        if self.role == Role.STUDENT:
            data.update(branch=self.branch, semester=self.semester, rollNumber=self.roll_number)
        elif self.role == Role.TEACHER:
            data.update(employeeId=self.employee_id, department=self.department)
        return data


@dataclass(frozen=True)
class NewUser:
    """Validated input for creating a user."""

    name: str
    email: str
    password_hash: str
    role: Role
    branch: Optional[str] = None
    semester: Optional[int] = None
    roll_number: Optional[str] = None
    employee_id: Optional[str] = None
    department: Optional[str] = None


@dataclass(frozen=True)
class UserFilter:
    role: Optional[Role] = None
    branch: Optional[str] = None
    semester: Optional[int] = None
    department: Optional[str] = None
    is_active: Optional[bool] = None
    search: Optional[str] = None
