from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import NewUser, User, UserFilter


class UserRepository(Protocol):
    """Repository interface for User.

    Note (DIP): the service layer depends on this interface, not on a concrete DB.
    Implementations raise ConflictError when a unique field (email, roll
    number, employee id) is already taken.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def create_user(self, new_user: NewUser) -> int:
        raise NotImplementedError

    def update_user(self, user: User) -> None:
        """Persist every mutable field of ``user``."""

        raise NotImplementedError

    def set_last_login(self, user_id: int, *, when: datetime) -> None:
        raise NotImplementedError

    def list_users(self, criteria: UserFilter, *, order_by_name: bool = False) -> Sequence[User]:
        """Newest first unless ``order_by_name``."""

        raise NotImplementedError

    def role_overview(self) -> Sequence[dict]:
        """Per-role ``{role, count, active}`` rows."""

        raise NotImplementedError
