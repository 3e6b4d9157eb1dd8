"""Identity collaborator: who, if anyone, is signed in."""

from abc import ABC, abstractmethod
from typing import Optional

from .models import User


class Identity(ABC):
    @abstractmethod
    def current_user(self) -> Optional[User]:
        """Return the authenticated shopper, or None when signed out."""
        pass


class StaticIdentity(Identity):
    def __init__(self, user: Optional[User] = None):
        self._user = user

    def current_user(self) -> Optional[User]:
        return self._user

    def sign_in(self, user: User) -> None:
        self._user = user

    def sign_out(self) -> None:
        self._user = None
