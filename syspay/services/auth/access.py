"""Access-control statements and role grants.

A permission request is a mapping of resource -> actions, e.g.
`{"payment": ["create"]}`; it is granted only when the role holds every
listed action.
"""

from typing import Mapping, Sequence

STATEMENTS: dict[str, tuple[str, ...]] = {
    "user": ("create", "list", "set-role", "ban", "impersonate", "delete", "set-password", "get", "update"),
    "session": ("list", "revoke", "delete"),
    "payment": ("create", "list", "listAll", "update"),
}

ADMIN_ROLE = "admin"
USER_ROLE = "user"

ROLES: dict[str, dict[str, frozenset[str]]] = {
    # Everything.
    ADMIN_ROLE: {resource: frozenset(actions) for resource, actions in STATEMENTS.items()},
    # Own charges only.
    USER_ROLE: {"payment": frozenset({"list"})},
}


def role_has_permissions(role: str | None, permissions: Mapping[str, Sequence[str]]) -> bool:
    """True when `role` is known and grants every requested action."""

    grants = ROLES.get(role or "")
    if grants is None or not permissions:
        return False
    for resource, actions in permissions.items():
        allowed = grants.get(resource, frozenset())
        if not set(actions) <= allowed:
            return False
    return True
