"""Role model and access checks for authenticated callers.

The HTTP layer resolves a bearer token into a :class:`RequestPrincipal`
(see ``app.dependencies``); services receive that principal explicitly and
only ever inspect the already-validated ``(user_id, role)`` pair.
"""

import enum
import uuid
from dataclasses import dataclass
from typing import FrozenSet, Optional

from app.core.exceptions import UnauthorizedError


class Role(str, enum.Enum):
    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"


@dataclass(frozen=True)
class RequestPrincipal:
    """Identity and role of the caller of a request."""

    user_id: uuid.UUID
    role: Role = Role.USER

    @property
    def is_moderator(self) -> bool:
        """Moderators and admins share moderation rights."""
        return self.role in (Role.MODERATOR, Role.ADMIN)

    def owns(self, user_id: uuid.UUID) -> bool:
        return self.user_id == user_id


@dataclass(frozen=True)
class RoleRequirement:
    """Which roles may pass the gate. ``roles=None`` admits every caller."""

    roles: Optional[FrozenSet[Role]] = None

    @classmethod
    def any(cls) -> "RoleRequirement":
        return cls(roles=None)

    @classmethod
    def one_of(cls, *roles: Role) -> "RoleRequirement":
        if not roles:
            raise ValueError("one_of() needs at least one role")
        return cls(roles=frozenset(roles))

    def allows(self, role: Role) -> bool:
        return self.roles is None or role in self.roles


AUTHENTICATED = RoleRequirement.any()
MODERATION = RoleRequirement.one_of(Role.MODERATOR, Role.ADMIN)
ADMIN_ONLY = RoleRequirement.one_of(Role.ADMIN)


def check_access(principal: RequestPrincipal, requirement: RoleRequirement) -> RequestPrincipal:
    """Return the principal if its role satisfies ``requirement``.

    Raises:
        UnauthorizedError: if the role is not admitted
    """
    if not requirement.allows(principal.role):
        raise UnauthorizedError()
    return principal
