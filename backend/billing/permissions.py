"""
Shop roles and the capabilities each one grants.

WHY: The UserShop edge is the sole source of authorization truth. A role is
checked against a capability, never compared by name in service code, so the
policy lives in exactly one place.

POLICY:
- OWNER: read, write, delete, manage roles
- EDITOR: read, write
- VIEWER: read
"""


class ShopRole:
    OWNER = "OWNER"
    EDITOR = "EDITOR"
    VIEWER = "VIEWER"

    ALL = (OWNER, EDITOR, VIEWER)


class Capability:
    READ = "READ"
    WRITE = "WRITE"
    DELETE = "DELETE"
    MANAGE_ROLES = "MANAGE_ROLES"


ROLE_CAPABILITIES = {
    ShopRole.OWNER: frozenset({
        Capability.READ,
        Capability.WRITE,
        Capability.DELETE,
        Capability.MANAGE_ROLES,
    }),
    ShopRole.EDITOR: frozenset({
        Capability.READ,
        Capability.WRITE,
    }),
    ShopRole.VIEWER: frozenset({
        Capability.READ,
    }),
}


def role_allows(role: str, capability: str) -> bool:
    """Fail closed: unknown roles grant nothing."""
    return capability in ROLE_CAPABILITIES.get(role, frozenset())


def normalize_role(role) -> str | None:
    if not isinstance(role, str):
        return None
    value = role.strip().upper()
    return value if value in ShopRole.ALL else None
