from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import PRIVILEGED_ROLES, Role


@dataclass(frozen=True)
class User:
    """Domain entity: a restaurant employee.

    Plain data object; account management lives outside this package.
    """

    user_id: int
    restaurant_id: int
    name: str
    role: Role
    is_active: bool = True

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES
