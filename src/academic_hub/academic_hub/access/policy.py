"""Role and scope rules shared by services and the request guard."""

from __future__ import annotations

from typing import Optional, Tuple

from ..core.enums import Role
from ..core.exceptions import AuthorizationError
from .principal import Principal


def authorize(principal: Principal, *roles: Role) -> None:
    if roles and principal.role not in roles:
        required = " or ".join(r.value for r in roles)
        raise AuthorizationError(f"Access denied. Required role: {required}")


def scope_class_filters(
    principal: Principal, branch: Optional[str], semester: Optional[int]
) -> Tuple[Optional[str], Optional[int]]:
    """Students only ever see their own branch and semester; requested values are ignored."""
    if principal.is_student:
        return principal.branch, principal.semester
    return branch, semester
