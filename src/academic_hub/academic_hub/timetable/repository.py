from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import NewTimetableEntry, SlotKey, TimetableEntry, TimetableFilter


class TimetableRepository(Protocol):
    """Implementations raise ConflictError when a write would put two active
    entries on the same SlotKey."""

    def get_by_id(self, entry_id: int) -> Optional[TimetableEntry]:
        raise NotImplementedError

    def find_active_in_slot(self, key: SlotKey, *, exclude_id: Optional[int] = None) -> Optional[TimetableEntry]:
        raise NotImplementedError

    def create_entry(self, entry: NewTimetableEntry) -> int:
        raise NotImplementedError

    def update_entry(self, entry: TimetableEntry) -> None:
        raise NotImplementedError

    def list_active(self, criteria: TimetableFilter) -> Sequence[TimetableEntry]:
        """Active entries only, Monday first, then by start time."""

        raise NotImplementedError
