"""Roles and the navigation capabilities they unlock."""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    USER = "user"
    SUPERVISOR = "supervisor"
    MANAGER = "manager"


class Capability(str, Enum):
    TIME_TRACKING = "time_tracking"
    PROJECTS = "projects"
    ANALYTICS = "analytics"
    MANAGEMENT = "management"


BASE_CAPABILITIES = (Capability.TIME_TRACKING, Capability.PROJECTS)


def capabilities_for(role: Role | str | None) -> tuple[Capability, ...]:
    """Return the ordered navigation capabilities for ``role``.

    ``None`` means nobody is signed in, which yields no capabilities at all.
    Unknown role strings raise ``ValueError``.
    """

    if role is None:
        return ()
    role = Role(role)
    capabilities = list(BASE_CAPABILITIES)
    if role in (Role.SUPERVISOR, Role.MANAGER):
        capabilities.append(Capability.ANALYTICS)
    if role is Role.MANAGER:
        capabilities.append(Capability.MANAGEMENT)
    return tuple(capabilities)


def has_capability(role: Role | str | None, capability: Capability) -> bool:
    return capability in capabilities_for(role)
