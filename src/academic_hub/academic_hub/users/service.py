from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Mapping, Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..access.policy import authorize
from ..access.principal import Principal
from ..access.tokens import TokenService
from ..common.datetime_utils import now_local
from ..common.validators import (
    parse_bool,
    require_email,
    require_enum,
    require_min_length,
    require_non_empty,
    require_semester,
)
from ..core.constants import MIN_PASSWORD_LENGTH
from ..core.enums import Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from .model import NewUser, User, UserFilter
from .repository import UserRepository

logger = logging.getLogger(__name__)

_ROLE_FIELDS = ("branch", "semester", "roll_number", "employee_id", "department")
_ADMIN_FIELDS = ("name", "email", "role", "is_active") + _ROLE_FIELDS


def role_specific_fields(role: Role, values: Mapping[str, Any]) -> dict:
    """Validate the fields a role requires; clear the ones it must not carry."""
    fields: dict = dict.fromkeys(_ROLE_FIELDS)

    if role == Role.STUDENT:
        if not values.get("branch") or values.get("semester") in (None, "") or not values.get("roll_number"):
            raise ValidationError("Branch, semester, and roll number are required for students")
        fields.update(
            branch=require_non_empty(values["branch"], "Branch"),
            semester=require_semester(values["semester"]),
            roll_number=require_non_empty(values["roll_number"], "Roll number"),
        )
    elif role == Role.TEACHER:
        if not values.get("employee_id") or not values.get("department"):
            raise ValidationError("Employee ID and department are required for teachers")
        fields.update(
            employee_id=require_non_empty(values["employee_id"], "Employee ID"),
            department=require_non_empty(values["department"], "Department"),
        )

    return fields


def _ensure_email_free(users: UserRepository, email: str, *, owner_id: Optional[int] = None) -> None:
    # Best-effort pre-check; the unique index is the real guarantee.
    existing = users.get_by_email(email)
    if existing and existing.user_id != owner_id:
        raise ConflictError("User with this email already exists")


def _create_account(users: UserRepository, *, name, email, password, role: Role, **extra) -> User:
    name = require_non_empty(name, "Name")
    email = require_email(email)
    require_min_length(password or "", "Password", MIN_PASSWORD_LENGTH)
    fields = role_specific_fields(role, extra)

    _ensure_email_free(users, email)

    user_id = users.create_user(
        NewUser(
            name=name,
            email=email,
            password_hash=generate_password_hash(password),
            role=role,
            **fields,
        )
    )
    created = users.get_by_id(user_id)
    if not created:
        raise NotFoundError("User not found")
    return created


@dataclass(frozen=True)
class LoginResult:
    user: User
    token: str


class AuthService:
    """Use cases: register, login, current identity."""

    def __init__(self, users: UserRepository, tokens: TokenService, *, clock: Callable = now_local):
        self._users = users
        self._tokens = tokens
        self._clock = clock

    def register(self, *, name, email, password, role: Any = Role.STUDENT, **extra) -> LoginResult:
        role = require_enum(Role, role or Role.STUDENT, "Role")
        if role == Role.ADMIN:
            raise ValidationError("Admin accounts cannot be self-registered")

        user = _create_account(self._users, name=name, email=email, password=password, role=role, **extra)
        logger.info("Registered %s account user_id=%s", role.value, user.user_id)
        return LoginResult(user=user, token=self._tokens.issue(user.user_id))

    def login(self, email: str, password: str) -> LoginResult:
        if not email or not password:
            raise ValidationError("Email and password are required")

        user = self._users.get_by_email(str(email).strip().lower())
        if not user:
            logger.warning("Login failed: unknown email")
            raise AuthenticationError("Invalid email or password")
        if not user.is_active:
            raise AuthenticationError("Account is deactivated. Please contact administrator.")

        try:
            ok = check_password_hash(user.password_hash, password)
        except ValueError:
            # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
            ok = False

        if not ok:
            logger.warning("Login failed for user_id=%s", user.user_id)
            raise AuthenticationError("Invalid email or password")

        when = self._clock()
        self._users.set_last_login(user.user_id, when=when)
        return LoginResult(user=replace(user, last_login=when), token=self._tokens.issue(user.user_id))

    def me(self, current_user: Principal) -> User:
        user = self._users.get_by_id(current_user.user_id)
        if not user:
            raise NotFoundError("User not found")
        return user


class UserService:
    """Use cases: identity queries and account management."""

    def __init__(self, users: UserRepository):
        self._users = users

    def list_users(self, current_user: Principal, criteria: UserFilter) -> Sequence[User]:
        authorize(current_user, Role.ADMIN)
        return self._users.list_users(criteria)

    def list_students(
        self, current_user: Principal, *, branch: Optional[str] = None, semester: Optional[int] = None
    ) -> Sequence[User]:
        authorize(current_user, Role.TEACHER, Role.ADMIN)
        criteria = UserFilter(role=Role.STUDENT, is_active=True, branch=branch, semester=semester)
        return self._users.list_users(criteria, order_by_name=True)

    def list_teachers(self, current_user: Principal, *, department: Optional[str] = None) -> Sequence[User]:
        authorize(current_user, Role.ADMIN)
        criteria = UserFilter(role=Role.TEACHER, is_active=True, department=department)
        return self._users.list_users(criteria, order_by_name=True)

    def get_user(self, current_user: Principal, user_id: int) -> User:
        if not current_user.is_admin and current_user.user_id != int(user_id):
            raise AuthorizationError("Access denied")
        return self._require(user_id)

    def create_user(self, current_user: Principal, *, name, email, password, role: Any, **extra) -> User:
        authorize(current_user, Role.ADMIN)
        role = require_enum(Role, role or Role.STUDENT, "Role")
        user = _create_account(self._users, name=name, email=email, password=password, role=role, **extra)
        logger.info("Admin %s created %s user_id=%s", current_user.user_id, role.value, user.user_id)
        return user

    def update_user(self, current_user: Principal, user_id: int, changes: Mapping[str, Any]) -> User:
        """Self may change name/email; admin may change every field. Empty values are ignored."""
        user = self._require(user_id)
        is_self = current_user.user_id == user.user_id
        if not is_self and not current_user.is_admin:
            raise AuthorizationError("Access denied")

        allowed = _ADMIN_FIELDS if current_user.is_admin else ("name", "email")
        wanted = {k: v for k, v in changes.items() if k in allowed and v not in (None, "")}

        updated = user
        if "name" in wanted:
            updated = replace(updated, name=require_non_empty(wanted["name"], "Name"))
        if "email" in wanted:
            email = require_email(wanted["email"])
            if email != user.email:
                _ensure_email_free(self._users, email, owner_id=user.user_id)
            updated = replace(updated, email=email)
        if "is_active" in wanted:
            updated = replace(updated, is_active=bool(parse_bool(wanted["is_active"])))

        if current_user.is_admin and any(k in wanted for k in ("role",) + _ROLE_FIELDS):
            role = require_enum(Role, wanted.get("role", user.role), "Role")
            merged = {k: wanted.get(k, getattr(user, k)) for k in _ROLE_FIELDS}
            updated = replace(updated, role=role, **role_specific_fields(role, merged))

        self._users.update_user(updated)
        return self._require(user.user_id)

    def update_profile(self, current_user: Principal, *, name: Any = None, email: Any = None) -> User:
        return self.update_user(current_user, current_user.user_id, {"name": name, "email": email})

    def deactivate_user(self, current_user: Principal, user_id: int) -> None:
        authorize(current_user, Role.ADMIN)
        user = self._require(user_id)
        if user.user_id == current_user.user_id:
            raise ValidationError("You cannot delete your own account")

        self._users.update_user(replace(user, is_active=False))
        logger.info("Admin %s deactivated user_id=%s", current_user.user_id, user.user_id)

    def overview(self, current_user: Principal) -> dict:
        authorize(current_user, Role.ADMIN)
        role_stats = list(self._users.role_overview())
        return {
            "totalUsers": sum(r["count"] for r in role_stats),
            "activeUsers": sum(r["active"] for r in role_stats),
            "roleStats": role_stats,
        }

    def _require(self, user_id: int) -> User:
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("User not found")
        return user

