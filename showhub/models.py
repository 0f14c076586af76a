from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class Role(str, Enum):
    MEMBER = "Member"
    MODERATOR = "Moderator"
    ADMIN = "Admin"

    @classmethod
    def parse(cls, value: Any) -> Optional["Role"]:
        """Map a stored role string onto the enum; unknown values yield None."""
        try:
            return cls(str(value or "").strip())
        except ValueError:
            return None


class ProductStatus(str, Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"


class VoteKind(str, Enum):
    UPVOTES = "upvotes"
    DOWNVOTES = "downvotes"

    @property
    def counter_field(self) -> str:
        return f"{self.value}Count"


@dataclass(frozen=True)
class Identity:
    """Decoded bearer-token claims attached to an authenticated request."""

    email: str
    claims: Dict[str, Any]
