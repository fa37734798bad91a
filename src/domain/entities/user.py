"""Caller identity passed from the API layer into use cases."""

from dataclasses import dataclass
from typing import Literal

UserRole = Literal["user", "admin"]


@dataclass(frozen=True)
class UserContext:
    """Authenticated caller."""

    id: int
    role: UserRole = "user"
    tier: str = "free"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def rate_limit_tier(self) -> str:
        """Tier used for rate limits: admins get their own rules."""
        return "admin" if self.is_admin else (self.tier or "free")
