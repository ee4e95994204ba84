from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role
from ..users.model import User


@dataclass(frozen=True)
class Principal:
    """The authenticated caller of one request (no credential material)."""

    user_id: int
    name: str
    email: str
    role: Role
    branch: Optional[str] = None
    semester: Optional[int] = None
    roll_number: Optional[str] = None
    employee_id: Optional[str] = None
    department: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(
            user_id=user.user_id,
            name=user.name,
            email=user.email,
            role=user.role,
            branch=user.branch,
            semester=user.semester,
            roll_number=user.roll_number,
            employee_id=user.employee_id,
            department=user.department,
        )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_teacher(self) -> bool:
        return self.role == Role.TEACHER

    @property
    def is_student(self) -> bool:
        return self.role == Role.STUDENT
