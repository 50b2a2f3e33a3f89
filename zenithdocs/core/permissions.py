"""
Roles, capabilities and the authenticated identity.

Every guard goes through ``has_capability`` so there is a single place that
decides what a role may do.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from zenithdocs.core.exceptions import ForbiddenError


class Role(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class Capability(str, enum.Enum):
    ADMINISTER = "administer"
    ACCESS_ANY_USER_RESOURCE = "access_any_user_resource"
    CHANGE_ROLES = "change_roles"


_ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.USER: frozenset(),
    Role.ADMIN: frozenset(
        {
            Capability.ADMINISTER,
            Capability.ACCESS_ANY_USER_RESOURCE,
            Capability.CHANGE_ROLES,
        }
    ),
}


@dataclass(frozen=True)
class Identity:
    """Authenticated caller: subject id and the role currently stored for it."""

    subject_id: str
    role: Role


def has_capability(identity: Identity, capability: Capability) -> bool:
    return capability in _ROLE_CAPABILITIES.get(identity.role, frozenset())


def ensure_capability(identity: Identity, capability: Capability, message: str | None = None) -> None:
    if not has_capability(identity, capability):
        raise ForbiddenError(message)


def ensure_self_or_admin(identity: Identity, owner_id: str) -> None:
    """Allow the resource owner, or anyone allowed to reach any user's resources."""
    if identity.subject_id == owner_id:
        return
    ensure_capability(identity, Capability.ACCESS_ANY_USER_RESOURCE)
