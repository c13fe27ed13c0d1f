from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence

from .model import User


class UserRepository(Protocol):
    """Read-only repository interface for users.

    Note (DIP): services depend on this interface, never on a concrete DB.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_many(self, user_ids: Iterable[int]) -> dict[int, User]:
        raise NotImplementedError

    def search_ids_by_name(self, name: str) -> Sequence[int]:
        """Ids of users whose full name or email contains `name` (case-insensitive)."""

        raise NotImplementedError
