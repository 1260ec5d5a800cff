"""
Domain object construction from query rows.

Each constructor fills a record's own fields from the row first, then its
ACL, then any nested objects the row points at (hosting vault, workflow
approvers, zone roles). Optional values missing from the row stay None.
"""

import logging
from typing import Any, Dict, List, Optional

from ..shared.api_client import PlatformAPIClient
from . import queries
from .access import AccessEntryResolver
from .conversions import blank_to_none, parse_platform_date, to_bool, to_optional_int
from .models import (
    ROOT_PARENT_PATH,
    AccountRecord,
    AccountSource,
    AccountType,
    ManagerFallbackApprover,
    PrincipalType,
    RightGrant,
    RoleApprover,
    RoleMember,
    RoleRecord,
    SecretRecord,
    SecretType,
    SetKind,
    SetRecord,
    SystemRecord,
    UserApprover,
    VaultRecord,
    WorkflowApprover,
    ZoneRole,
)
from .permissions import family_for
from .principals import Found, PrincipalResolver
from .sets import SetMembershipResolver, determine_owner

_SOURCE_ID_COLUMNS = {AccountType(kind): column for column, kind in queries.ACCOUNT_SOURCE_COLUMNS}
_SOURCE_CLASS_COLUMNS = {
    AccountType.LOCAL: 'ComputerClass',
    AccountType.DATABASE: 'DatabaseClass',
    AccountType.CLOUD: 'CloudProviderType',
}
MANAGER_APPROVER_TYPE = "Manager"


def classify_account_type(row: Dict[str, Any]) -> AccountType:
    """
    Determine an account's subtype from which source id column is populated.

    Raises:
        ValueError: If no source id column is populated
    """
    for column, kind in queries.ACCOUNT_SOURCE_COLUMNS:
        if blank_to_none(row.get(column)) is not None:
            return AccountType(kind)
    raise ValueError(f"Cannot determine account type for account {row.get('ID')}")


def result_rows(result: Any) -> List[Dict[str, Any]]:
    """Normalize list results and ``{'Results': [{'Row': ...}]}`` results to a row list."""
    if not result:
        return []
    if isinstance(result, list):
        return result
    return [entry.get('Row', entry) for entry in result.get('Results', [])]


class DomainObjectFactory:
    """Builds fully populated records from query rows."""

    SECRET_APPROVERS_ENDPOINT = "ServerManage/GetSecretApprovers"
    ACCOUNT_APPROVERS_ENDPOINT = "ServerManage/GetAccountApprovers"
    ZONE_ROLES_ENDPOINT = "ZoneRoleWorkflow/GetRoles"
    ZONE_ROLE_APPROVERS_ENDPOINT = "ZoneRoleWorkflow/GetApprovers"
    ROLE_MEMBERS_ENDPOINT = "SaasManage/GetRoleMembers"
    ROLE_RIGHTS_ENDPOINT = "core/GetAssignedAdministrativeRights"

    def __init__(self, client: PlatformAPIClient,
                 access_resolver: Optional[AccessEntryResolver] = None,
                 set_resolver: Optional[SetMembershipResolver] = None,
                 principal_resolver: Optional[PrincipalResolver] = None,
                 logger: Optional[logging.Logger] = None):
        self.client = client
        self.logger = logger or logging.getLogger(__name__)
        self.access_resolver = access_resolver or AccessEntryResolver(client, logger=self.logger)
        self.set_resolver = set_resolver or SetMembershipResolver(client, logger=self.logger)
        self.principal_resolver = principal_resolver or PrincipalResolver(client, logger=self.logger)
        self._vault_cache: Dict[str, Optional[VaultRecord]] = {}

    # Secrets

    def secret_from_row(self, row: Dict[str, Any]) -> SecretRecord:
        self.client.ensure_connected()
        secret = SecretRecord(
            id=row['ID'],
            name=row['SecretName'],
            type=SecretType(row['Type']),
            parent_path=blank_to_none(row.get('ParentPath')) or ROOT_PARENT_PATH,
            description=blank_to_none(row.get('Description')),
            created_at=parse_platform_date(row.get('Created')),
            modified_at=parse_platform_date(row.get('WhenContentsReplaced')),
            last_retrieved_at=parse_platform_date(row.get('LastRetrieved')),
            folder_id=blank_to_none(row.get('FolderId')),
            workflow_enabled=to_bool(row.get('WorkflowEnabled')),
            file_name=blank_to_none(row.get('SecretFileName')),
            file_size=blank_to_none(row.get('SecretFileSize')),
        )
        secret.access_entries = self.access_resolver.get_row_access('DataVault', secret.id)
        if secret.workflow_enabled:
            secret.approvers = self.get_approvers(self.SECRET_APPROVERS_ENDPOINT, secret.id)
        return secret

    def get_secrets(self, name: Optional[str] = None, exact: bool = False) -> List[SecretRecord]:
        conditions = [queries.match('DataVault.SecretName', name, exact)] if name else []
        rows = self.client.query_rows(queries.build_query(queries.SECRET_QUERY, conditions))
        self.logger.info(f"Building {len(rows)} secrets")
        return [self.secret_from_row(row) for row in rows]

    # Accounts

    def account_from_row(self, row: Dict[str, Any], account_type: Optional[AccountType] = None) -> AccountRecord:
        """
        Build an account. ``account_type`` overrides classification from the row.
        """
        self.client.ensure_connected()
        kind = AccountType(account_type) if account_type else classify_account_type(row)
        class_column = _SOURCE_CLASS_COLUMNS.get(kind)
        source = AccountSource(
            kind=kind,
            source_id=row.get(_SOURCE_ID_COLUMNS[kind]),
            source_name=blank_to_none(row.get('Name')),
            source_class=blank_to_none(row.get(class_column)) if class_column else None,
        )
        account = AccountRecord(
            id=row['ID'],
            account_type=kind,
            source=source,
            username=row['User'],
            is_managed=to_bool(row.get('IsManaged')),
            health_state=blank_to_none(row.get('Healthy')),
            last_health_check_at=parse_platform_date(row.get('LastHealthCheck')),
            description=blank_to_none(row.get('Description')),
            workflow_enabled=to_bool(row.get('WorkflowEnabled')),
        )
        account.access_entries = self.access_resolver.get_row_access('VaultAccount', account.id)
        if account.workflow_enabled:
            account.approvers = self.get_approvers(self.ACCOUNT_APPROVERS_ENDPOINT, account.id)
        vault_id = blank_to_none(row.get('VaultId'))
        if vault_id:
            account.hosting_vault = self.get_vault(vault_id)
        return account

    def get_accounts(self, account_type: Optional[AccountType] = None, username: Optional[str] = None,
                     source_name: Optional[str] = None) -> List[AccountRecord]:
        conditions = []
        if account_type:
            conditions.append(f"VaultAccount.{_SOURCE_ID_COLUMNS[AccountType(account_type)]} IS NOT NULL")
        if username:
            conditions.append(queries.like('VaultAccount.User', username))
        if source_name:
            conditions.append(queries.like('VaultAccount.Name', source_name))
        rows = self.client.query_rows(queries.build_query(queries.ACCOUNT_QUERY, conditions))
        self.logger.info(f"Building {len(rows)} accounts")
        return [self.account_from_row(row, account_type) for row in rows]

    # Vaults

    def vault_from_row(self, row: Dict[str, Any]) -> VaultRecord:
        return VaultRecord(
            id=row['ID'],
            type=blank_to_none(row.get('VaultType')),
            name=blank_to_none(row.get('VaultName')),
            url=blank_to_none(row.get('Url')),
            username=blank_to_none(row.get('UserName')),
            sync_interval=to_optional_int(row.get('SyncInterval')),
            last_sync_at=parse_platform_date(row.get('LastSync')),
        )

    def get_vault(self, vault_id: str) -> Optional[VaultRecord]:
        """Fetch one vault by id, cached per factory."""
        if vault_id not in self._vault_cache:
            rows = self.client.query_rows(
                queries.build_query(queries.VAULT_QUERY, [queries.equals('ID', vault_id)]))
            if not rows:
                self.logger.warning(f"Vault {vault_id} referenced by an account was not found")
            self._vault_cache[vault_id] = self.vault_from_row(rows[0]) if rows else None
        return self._vault_cache[vault_id]

    def get_vaults(self, name: Optional[str] = None) -> List[VaultRecord]:
        conditions = [queries.like('VaultName', name)] if name else []
        rows = self.client.query_rows(queries.build_query(queries.VAULT_QUERY, conditions))
        return [self.vault_from_row(row) for row in rows]

    # Sets

    def set_from_row(self, row: Dict[str, Any], resolve_members: bool = True) -> SetRecord:
        self.client.ensure_connected()
        kind = SetKind(row['CollectionType'])
        set_record = SetRecord(
            id=row['ID'],
            set_kind=kind,
            object_type=row.get('ObjectType'),
            name=row['Name'],
            description=blank_to_none(row.get('Description')),
            created_at=parse_platform_date(row.get('WhenCreated')),
        )
        set_record.own_access_entries = self.access_resolver.get_row_access(kind.value, set_record.id)
        if family_for(set_record.object_type) is not None:
            set_record.member_access_entries = self.access_resolver.get_collection_access(
                set_record.object_type, set_record.id)
        if resolve_members:
            self.set_resolver.get_members(set_record)
        set_record.potential_owner = determine_owner(set_record)
        return set_record

    def get_sets(self, set_kind: Optional[SetKind] = None, object_type: Optional[str] = None,
                 name: Optional[str] = None, resolve_members: bool = True) -> List[SetRecord]:
        conditions = []
        if set_kind:
            conditions.append(queries.equals('CollectionType', SetKind(set_kind).value))
        if object_type:
            conditions.append(queries.equals('ObjectType', object_type))
        if name:
            conditions.append(queries.like('Name', name))
        rows = self.client.query_rows(queries.build_query(queries.SET_QUERY, conditions))
        self.logger.info(f"Building {len(rows)} sets")
        return [self.set_from_row(row, resolve_members=resolve_members) for row in rows]

    # Systems

    def system_from_row(self, row: Dict[str, Any]) -> SystemRecord:
        self.client.ensure_connected()
        system = SystemRecord(
            id=row['ID'],
            name=row['Name'],
            fqdn=blank_to_none(row.get('FQDN')),
            computer_class=blank_to_none(row.get('ComputerClass')),
            operating_system=blank_to_none(row.get('OperatingSystem')),
            session_type=blank_to_none(row.get('SessionType')),
            description=blank_to_none(row.get('Description')),
            zone_role_workflow_enabled=to_bool(row.get('ZoneRoleWorkflowEnabled')),
        )
        system.access_entries = self.access_resolver.get_row_access('Server', system.id)
        if system.zone_role_workflow_enabled:
            system.zone_roles = self.get_zone_roles(system.id)
            system.zone_role_approvers = self.get_approvers(self.ZONE_ROLE_APPROVERS_ENDPOINT, system.id)
        return system

    def get_systems(self, name: Optional[str] = None) -> List[SystemRecord]:
        conditions = [queries.like('Name', name)] if name else []
        rows = self.client.query_rows(queries.build_query(queries.SYSTEM_QUERY, conditions))
        self.logger.info(f"Building {len(rows)} systems")
        return [self.system_from_row(row) for row in rows]

    def get_zone_roles(self, system_id: str) -> List[ZoneRole]:
        result = self.client.invoke(self.ZONE_ROLES_ENDPOINT, {'ResourceId': system_id})
        return [
            ZoneRole(name=row['Name'], zone=blank_to_none(row.get('ZoneDn')),
                     description=blank_to_none(row.get('Description')))
            for row in result_rows(result)
        ]

    def load_system_accounts(self, system: SystemRecord) -> List[AccountRecord]:
        """Fetch the system's local accounts and attach them to the record."""
        sql = queries.build_query(queries.ACCOUNT_QUERY, [queries.equals('VaultAccount.Host', system.id)])
        rows = self.client.query_rows(sql)
        system.local_accounts = [self.account_from_row(row, AccountType.LOCAL) for row in rows]
        return system.local_accounts

    # Roles

    def role_from_row(self, row: Dict[str, Any]) -> RoleRecord:
        self.client.ensure_connected()
        role = RoleRecord(id=row['ID'], name=row['Name'], description=blank_to_none(row.get('Description')))
        members = self.client.invoke(self.ROLE_MEMBERS_ENDPOINT, {'Name': role.id})
        role.members = [
            RoleMember(id=member['Guid'], name=member['Name'], type=member['Type'])
            for member in result_rows(members)
        ]
        rights = self.client.invoke(self.ROLE_RIGHTS_ENDPOINT, {'Role': role.id})
        role.assigned_rights = [
            RightGrant(path=right['Path'], description=blank_to_none(right.get('Description')))
            for right in result_rows(rights)
        ]
        return role

    def get_roles(self, name: Optional[str] = None) -> List[RoleRecord]:
        conditions = [queries.like('Name', name)] if name else []
        rows = self.client.query_rows(queries.build_query(queries.ROLE_QUERY, conditions))
        return [self.role_from_row(row) for row in rows]

    # Workflow approvers

    def get_approvers(self, endpoint: str, object_id: str) -> List[WorkflowApprover]:
        result = self.client.invoke(endpoint, {'ID': object_id})
        return [self.build_approver(raw) for raw in result_rows(result)]

    def build_approver(self, raw: Dict[str, Any]) -> WorkflowApprover:
        """
        Build one approver from its raw form.

        Raises:
            ValueError: If the approver type is not User, Role or Manager
        """
        approver_type = raw.get('Type')
        if approver_type == MANAGER_APPROVER_TYPE:
            backup = None
            if raw.get('BackupApprover'):
                backup = self.build_approver(raw['BackupApprover'])
                if isinstance(backup, ManagerFallbackApprover):
                    self.logger.warning("Ignoring manager fallback configured as its own backup approver")
                    backup = None
            return ManagerFallbackApprover(backup=backup, no_manager_action=raw.get('NoManagerAction'))
        if approver_type == PrincipalType.ROLE.value:
            return RoleApprover(id=raw['ID'], name=raw.get('Name') or self._principal_name(PrincipalType.ROLE, raw['ID']))
        if approver_type == PrincipalType.USER.value:
            return UserApprover(
                id=raw['ID'],
                name=raw.get('Name') or self._principal_name(PrincipalType.USER, raw['ID']),
                display_name=blank_to_none(raw.get('DisplayName')),
                email=blank_to_none(raw.get('Email')),
            )
        raise ValueError(f"Unsupported workflow approver type: {approver_type}")

    def _principal_name(self, principal_type: PrincipalType, principal_id: str) -> str:
        result = self.principal_resolver.find_by_id(principal_type, principal_id)
        if isinstance(result, Found):
            return result.principal.name
        self.logger.warning(f"Could not resolve {principal_type.value} approver {principal_id}; using id as name")
        return principal_id
