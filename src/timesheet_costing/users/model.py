from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: User.

    Owned by the authentication subsystem; referenced here for ownership checks,
    name search and hourly rates.
    """

    user_id: int
    full_name: str
    email: str
    role: Role
    hourly_rate: Optional[float] = None
    is_active: bool = True
