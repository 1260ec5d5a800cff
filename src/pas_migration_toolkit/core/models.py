"""
Domain records materialized from tenant query results.

Records are snapshots of remote state at fetch time. They are built by
DomainObjectFactory and only changed afterwards by their own lifecycle
operations (secret retrieval/export, account checkout/checkin).
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from . import permissions

ROOT_PARENT_PATH = "."
NO_OWNER = "No owners found"
MULTIPLE_OWNERS = "Multiple potential owners found"


class PrincipalType(str, Enum):
    USER = "User"
    GROUP = "Group"
    ROLE = "Role"


class SecretType(str, Enum):
    TEXT = "Text"
    FILE = "File"


class ContentState(str, Enum):
    """Lifecycle of a secret's content: UNRETRIEVED -> RETRIEVED -> EXPORTED."""

    UNRETRIEVED = "Unretrieved"
    RETRIEVED = "Retrieved"
    EXPORTED = "Exported"


class AccountType(str, Enum):
    LOCAL = "Local"
    DOMAIN = "Domain"
    DATABASE = "Database"
    CLOUD = "Cloud"


class SetKind(str, Enum):
    MANUAL = "ManualBucket"
    PHANTOM = "Phantom"
    DYNAMIC = "SqlDynamic"


class MigrationSource(str, Enum):
    ACCOUNT = "Account"
    SECRET = "Secret"
    EXTERNAL = "ExternalCredential"


@dataclass(frozen=True)
class Principal:
    id: str
    name: str
    type: str


@dataclass(frozen=True)
class PermissionGrant:
    """A decoded grant. ``flags`` is always ``permissions.decode(object_type, grant)``."""

    object_type: str
    grant: int
    grant_binary: str
    flags: Tuple[str, ...]

    @classmethod
    def from_bitmask(cls, object_type: str, grant: int) -> "PermissionGrant":
        grant = int(grant)
        return cls(
            object_type=object_type,
            grant=grant,
            grant_binary=format(grant, "b"),
            flags=permissions.decode(object_type, grant),
        )

    @property
    def grant_string(self) -> str:
        return ", ".join(self.flags)


@dataclass(frozen=True)
class AccessEntry:
    principal: Principal
    permission: PermissionGrant
    is_inherited: bool
    source_object_id: str


@dataclass(frozen=True)
class UserApprover:
    id: str
    name: str
    display_name: Optional[str] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class RoleApprover:
    id: str
    name: str


@dataclass(frozen=True)
class ManagerFallbackApprover:
    """Approval goes to the requestor's manager, with an optional backup approver."""

    backup: Optional[Union[UserApprover, RoleApprover]] = None
    no_manager_action: Optional[str] = None


WorkflowApprover = Union[UserApprover, RoleApprover, ManagerFallbackApprover]


@dataclass
class SecretRecord:
    id: str
    name: str
    type: SecretType
    parent_path: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    last_retrieved_at: Optional[datetime] = None
    folder_id: Optional[str] = None
    access_entries: List[AccessEntry] = field(default_factory=list)
    workflow_enabled: bool = False
    approvers: Optional[List[WorkflowApprover]] = None
    file_name: Optional[str] = None
    file_size: Optional[str] = None
    text_content: Optional[str] = field(default=None, repr=False)
    file_download_handle: Optional[str] = field(default=None, repr=False)
    content_state: ContentState = ContentState.UNRETRIEVED

    @property
    def is_root_level(self) -> bool:
        return self.parent_path == ROOT_PARENT_PATH


@dataclass(frozen=True)
class AccountSource:
    """
    Where an account lives. Meaning depends on ``kind``: a host for Local
    accounts, a domain for Domain accounts, a database for Database accounts
    and a cloud provider for Cloud accounts. ``source_class`` carries the
    host OS class, database engine class or cloud provider type.
    """

    kind: AccountType
    source_id: str
    source_name: Optional[str] = None
    source_class: Optional[str] = None


@dataclass
class CheckoutState:
    checkout_id: str
    password: str = field(repr=False)
    checked_out_at: Optional[datetime] = None


@dataclass
class VaultRecord:
    id: str
    type: Optional[str]
    name: Optional[str]
    url: Optional[str] = None
    username: Optional[str] = None
    sync_interval: Optional[int] = None
    last_sync_at: Optional[datetime] = None


@dataclass
class AccountRecord:
    id: str
    account_type: AccountType
    source: AccountSource
    username: str
    is_managed: bool = False
    health_state: Optional[str] = None
    last_health_check_at: Optional[datetime] = None
    description: Optional[str] = None
    access_entries: List[AccessEntry] = field(default_factory=list)
    workflow_enabled: bool = False
    approvers: Optional[List[WorkflowApprover]] = None
    hosting_vault: Optional[VaultRecord] = None
    checkout_state: Optional[CheckoutState] = None

    @property
    def display_name(self) -> str:
        return f"{self.source.source_name}\\{self.username}"


@dataclass(frozen=True)
class SetMember:
    name: Optional[str]
    type: str
    id: str


@dataclass
class SetRecord:
    id: str
    set_kind: SetKind
    object_type: str
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    own_access_entries: List[AccessEntry] = field(default_factory=list)
    member_access_entries: Optional[List[AccessEntry]] = None
    member_ids: List[str] = field(default_factory=list)
    members: List[SetMember] = field(default_factory=list)
    potential_owner: str = NO_OWNER


@dataclass
class ZoneRole:
    name: str
    zone: Optional[str] = None
    description: Optional[str] = None


@dataclass
class SystemRecord:
    id: str
    name: str
    fqdn: Optional[str] = None
    computer_class: Optional[str] = None
    operating_system: Optional[str] = None
    session_type: Optional[str] = None
    description: Optional[str] = None
    zone_role_workflow_enabled: bool = False
    zone_roles: Optional[List[ZoneRole]] = None
    zone_role_approvers: Optional[List[WorkflowApprover]] = None
    access_entries: List[AccessEntry] = field(default_factory=list)
    local_accounts: Optional[List[AccountRecord]] = None


@dataclass(frozen=True)
class RoleMember:
    id: str
    name: str
    type: str


@dataclass(frozen=True)
class RightGrant:
    path: str
    description: Optional[str] = None


@dataclass
class RoleRecord:
    id: str
    name: str
    description: Optional[str] = None
    members: List[RoleMember] = field(default_factory=list)
    assigned_rights: List[RightGrant] = field(default_factory=list)


@dataclass(frozen=True)
class ExternalCredential:
    """A credential coming from outside the tenant, e.g. a CSV export."""

    target: str
    username: str
    password: Optional[str] = field(default=None, repr=False)
    name: Optional[str] = None
    folder: Optional[str] = None
    template_name: Optional[str] = None


@dataclass(frozen=True)
class MigrationPermission:
    principal_type: str
    principal_name: str
    is_inherited: bool
    permissions: str
    level: str


@dataclass
class MigratedCredentialRecord:
    secret_template_name: Optional[str]
    secret_name: str
    target: Optional[str]
    username: Optional[str]
    source_id: Optional[str]
    source_kind: MigrationSource
    password: Optional[str] = field(default=None, repr=False)
    folder: Optional[str] = None
    permissions: List[MigrationPermission] = field(default_factory=list)
    folder_permissions: List[MigrationPermission] = field(default_factory=list)
    set_permissions: List[MigrationPermission] = field(default_factory=list)
    member_of_sets: List[SetRecord] = field(default_factory=list)
    has_conflicts: bool = False

    def to_dict(self, include_password: bool = False) -> Dict[str, Any]:
        """Serializable form; member sets are reduced to id and name."""
        data = {
            'secret_template_name': self.secret_template_name,
            'secret_name': self.secret_name,
            'target': self.target,
            'username': self.username,
            'folder': self.folder,
            'source_id': self.source_id,
            'source_kind': self.source_kind.value,
            'permissions': [asdict(p) for p in self.permissions],
            'folder_permissions': [asdict(p) for p in self.folder_permissions],
            'set_permissions': [asdict(p) for p in self.set_permissions],
            'member_of_sets': [{'id': s.id, 'name': s.name} for s in self.member_of_sets],
            'has_conflicts': self.has_conflicts,
        }
        if include_password:
            data['password'] = self.password
        return data
