"""Bearer-token authentication for Flask views."""

from __future__ import annotations

from functools import wraps
from typing import Optional

from flask import request

from ..core.enums import Role
from ..core.exceptions import AuthenticationError
from ..users.repository import UserRepository
from .policy import authorize
from .principal import Principal
from .tokens import TokenService


def bearer_token(header: Optional[str]) -> Optional[str]:
    if not header:
        return None
    scheme, _, value = header.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()


class AccessGuard:
    def __init__(self, tokens: TokenService, users: UserRepository):
        self._tokens = tokens
        self._users = users

    def authenticate(self, authorization: Optional[str]) -> Principal:
        token = bearer_token(authorization)
        if not token:
            raise AuthenticationError("Access denied. No token provided.")

        user_id = self._tokens.verify(token)
        user = self._users.get_by_id(user_id)
        if not user or not user.is_active:
            raise AuthenticationError("Invalid token or user not found.")
        return Principal.from_user(user)

    def requires(self, *roles: Role):
        """Authenticate the request, check roles, pass ``current_user`` to the view."""

        def decorator(view):
            @wraps(view)
            def wrapper(*args, **kwargs):
                principal = self.authenticate(request.headers.get("Authorization"))
                authorize(principal, *roles)
                return view(*args, current_user=principal, **kwargs)

            return wrapper

        return decorator
