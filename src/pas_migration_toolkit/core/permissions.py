"""
Bitmask permission decoding.

ACL entries carry their grant as an integer bitmask whose meaning depends on
the kind of object the entry is attached to. This module maps object type
names onto permission families, holds one flag table per family and decodes
bitmasks into ordered flag names.
"""

from enum import Enum
from functools import reduce
from typing import Dict, FrozenSet, Optional, Tuple


class PermissionFamily(str, Enum):
    """Equivalence classes of object types that share one flag table."""

    SECRET = "Secret"
    SET = "Set"
    FOLDER = "Folder"
    SYSTEM = "System"
    ACCOUNT = "Account"
    DATABASE = "Database"


# Object type aliases seen in queries, ACL calls and set definitions
FAMILY_ALIASES: Dict[str, PermissionFamily] = {
    "Secret": PermissionFamily.SECRET,
    "DataVault": PermissionFamily.SECRET,
    "Set": PermissionFamily.SET,
    "Collection": PermissionFamily.SET,
    "Collections": PermissionFamily.SET,
    "ManualBucket": PermissionFamily.SET,
    "SqlDynamic": PermissionFamily.SET,
    "Phantom": PermissionFamily.FOLDER,
    "Folder": PermissionFamily.FOLDER,
    "System": PermissionFamily.SYSTEM,
    "Server": PermissionFamily.SYSTEM,
    "Account": PermissionFamily.ACCOUNT,
    "VaultAccount": PermissionFamily.ACCOUNT,
    "Local": PermissionFamily.ACCOUNT,
    "Domain": PermissionFamily.ACCOUNT,
    "Cloud": PermissionFamily.ACCOUNT,
    "Database": PermissionFamily.DATABASE,
    "VaultDatabase": PermissionFamily.DATABASE,
}

# ACL table used by the tenant for each family
ACL_TABLES: Dict[PermissionFamily, str] = {
    PermissionFamily.SECRET: "DataVault",
    PermissionFamily.SET: "Collections",
    PermissionFamily.FOLDER: "Collections",
    PermissionFamily.SYSTEM: "Server",
    PermissionFamily.ACCOUNT: "VaultAccount",
    PermissionFamily.DATABASE: "VaultDatabase",
}

_SET_FLAGS = {
    "Grant": 1,
    "View": 4,
    "Edit": 8,
    "AddMember": 16,
    "RemoveMember": 32,
    "Delete": 64,
    "ManageMembers": 128,
}

FLAG_TABLES: Dict[PermissionFamily, Dict[str, int]] = {
    PermissionFamily.SECRET: {
        "Grant": 1,
        "View": 4,
        "Edit": 8,
        "Delete": 64,
        "Retrieve": 65536,
    },
    PermissionFamily.SET: dict(_SET_FLAGS),
    PermissionFamily.FOLDER: dict(_SET_FLAGS, Retrieve=65536),
    PermissionFamily.SYSTEM: {
        "Grant": 1,
        "View": 4,
        "Edit": 8,
        "Delete": 64,
        "ManageSession": 128,
        "AgentAuth": 65536,
        "OfflineRescue": 131072,
        "AddAccount": 262144,
        "UnlockAccount": 524288,
        "RequestZoneRole": 1048576,
    },
    PermissionFamily.ACCOUNT: {
        "Grant": 1,
        "View": 4,
        "Edit": 8,
        "Delete": 64,
        "Login": 128,
        "Naked": 256,
        "Checkout": 65536,
        "UpdatePassword": 131072,
        "FileTransfer": 262144,
        "WorkspaceLogin": 524288,
        "RotatePassword": 1048576,
        "UnlockAccount": 2097152,
    },
    PermissionFamily.DATABASE: {
        "Grant": 1,
        "View": 4,
        "Edit": 8,
        "Delete": 64,
        "AddAccount": 262144,
    },
}

# Grant value forced onto entries of the built-in "Super" principal type
SUPER_ROLE_GRANT = 4


def family_for(object_type: str) -> Optional[PermissionFamily]:
    """Return the permission family for an object type alias, or None if unmapped."""
    if isinstance(object_type, PermissionFamily):
        return object_type
    return FAMILY_ALIASES.get(object_type)


def acl_table_for(object_type: str) -> str:
    """
    Return the ACL table name for an object type.

    Raises:
        ValueError: If the object type is not a known alias
    """
    family = family_for(object_type)
    if family is None:
        raise ValueError(f"No ACL table mapped for object type: {object_type}")
    return ACL_TABLES[family]


def flag_table(object_type: str) -> Dict[str, int]:
    """Return the {flag: bit} table for an object type; unmapped types get an empty table."""
    family = family_for(object_type)
    if family is None:
        return {}
    return FLAG_TABLES[family]


def decode(object_type: str, bitmask: int) -> Tuple[str, ...]:
    """
    Decode a grant bitmask into flag names ordered lexically.

    Args:
        object_type: Object type name or alias (e.g. 'DataVault', 'ManualBucket')
        bitmask: Grant value as reported by the tenant

    Returns:
        Tuple of flag names whose bits are set
    """
    table = flag_table(object_type)
    return tuple(name for name in sorted(table) if bitmask & table[name])


def full_control_mask(family: PermissionFamily) -> int:
    """OR of every flag in a family's table."""
    return reduce(lambda acc, bit: acc | bit, FLAG_TABLES[family].values(), 0)


# Grants that mark a user as owner of a set (253) or folder (65789)
OWNER_GRANTS: FrozenSet[int] = frozenset({
    full_control_mask(PermissionFamily.SET),
    full_control_mask(PermissionFamily.FOLDER),
})
