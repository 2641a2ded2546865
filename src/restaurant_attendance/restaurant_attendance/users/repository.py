from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import User


class UserRepository(Protocol):
    """Repository interface for User.

    Note (DIP): services depend on this interface, not on a concrete database.
    Every lookup is scoped to one restaurant.
    """

    def get_for_restaurant(self, restaurant_id: int, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def list_active_for_restaurant(self, restaurant_id: int) -> Sequence[User]:
        raise NotImplementedError
