"""Explicit per-request identity passed into user-scoped operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from researchquest.domain.errors import NotAuthenticatedError


@dataclass(frozen=True)
class CurrentUser:
    id: str
    display_name: str = ""
    email: str = ""


@dataclass(frozen=True)
class SessionContext:
    """Who is acting. ``user=None`` means nobody is signed in."""

    user: Optional[CurrentUser] = None

    @classmethod
    def for_user(cls, user_id: str, display_name: str = "", email: str = "") -> "SessionContext":
        return cls(user=CurrentUser(id=user_id, display_name=display_name, email=email))

    @classmethod
    def anonymous(cls) -> "SessionContext":
        return cls(user=None)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and bool(self.user.id)

    def require_user(self) -> CurrentUser:
        if self.user is None or not self.user.id:
            raise NotAuthenticatedError()
        return self.user
