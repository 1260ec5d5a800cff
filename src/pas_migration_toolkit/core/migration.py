"""
Credential migration records.

Flattens an account, a secret or an external credential plus every
permission that reaches it (its own ACL, its folder's member ACL and the
member ACLs of the sets it belongs to) into one MigratedCredentialRecord.
An object in more than one set has no single target folder, which is
reported as a conflict.
"""

import logging
from typing import Iterable, List, Optional

from .access import AccessEntryResolver
from .models import (
    AccessEntry,
    AccountRecord,
    AccountType,
    ExternalCredential,
    MigratedCredentialRecord,
    MigrationPermission,
    MigrationSource,
    SecretRecord,
    SetKind,
    SetRecord,
)
from .sets import SetBank, SetMembershipResolver

OWNER = "Owner"
VIEW = "View"
EDIT = "Edit"
LIST = "List"

LOCAL_TEMPLATES = {
    "Windows": "Windows Account",
    "Unix": "Unix Account (SSH)",
    "CiscoIOS": "Cisco Account (SSH)",
    "JuniperJunos": "Juniper Account (SSH)",
}

DATABASE_TEMPLATES = {
    "SQLServer": "SQL Server Account",
    "Oracle": "Oracle Account",
    "SAPAse": "SAP Account",
}

SUBTYPE_TEMPLATES = {
    AccountType.DOMAIN: "Active Directory Account",
    AccountType.CLOUD: "Amazon IAM Console Password",
}


def classify_permission(decoded: str) -> str:
    """Map a decoded grant string onto one of the four migration levels."""
    if "Grant" in decoded or "Owner" in decoded:
        return OWNER
    if "Checkout" in decoded or "Retrieve" in decoded or "Naked" in decoded:
        return VIEW
    if "Edit" in decoded:
        return EDIT
    return LIST


def to_migration_permission(entry: AccessEntry) -> MigrationPermission:
    decoded = entry.permission.grant_string
    return MigrationPermission(
        principal_type=entry.principal.type,
        principal_name=entry.principal.name,
        is_inherited=entry.is_inherited,
        permissions=decoded,
        level=classify_permission(decoded),
    )


def template_for_account(account: AccountRecord) -> Optional[str]:
    """Secret template for an account; None when the combination is unmapped."""
    if account.account_type == AccountType.LOCAL:
        return LOCAL_TEMPLATES.get(account.source.source_class)
    if account.account_type == AccountType.DATABASE:
        return DATABASE_TEMPLATES.get(account.source.source_class)
    return SUBTYPE_TEMPLATES.get(account.account_type)


def determine_conflicts(record: MigratedCredentialRecord) -> bool:
    record.has_conflicts = len(record.member_of_sets) > 1
    return record.has_conflicts


class CredentialMigrationMapper:
    """
    Builds migration records.

    Args:
        access_resolver: Used for folder and set member ACLs
        set_resolver: Used for per-set membership checks when no SetBank is given
        candidate_sets: Sets to test membership against
        set_bank: Precomputed membership index; preferred when present
    """

    def __init__(self, access_resolver: AccessEntryResolver, set_resolver: SetMembershipResolver,
                 candidate_sets: Iterable[SetRecord] = (), set_bank: Optional[SetBank] = None,
                 logger: Optional[logging.Logger] = None):
        self.access_resolver = access_resolver
        self.set_resolver = set_resolver
        self.candidate_sets = [s for s in candidate_sets if s.set_kind == SetKind.MANUAL]
        self.set_bank = set_bank
        self.logger = logger or logging.getLogger(__name__)

    def from_account(self, account: AccountRecord) -> MigratedCredentialRecord:
        record = MigratedCredentialRecord(
            secret_template_name=template_for_account(account),
            secret_name=account.display_name,
            target=account.source.source_name,
            username=account.username,
            password=account.checkout_state.password if account.checkout_state else None,
            source_id=account.id,
            source_kind=MigrationSource.ACCOUNT,
            permissions=[to_migration_permission(e) for e in account.access_entries],
        )
        if record.secret_template_name is None:
            self.logger.warning(f"No secret template mapped for account {account.display_name} "
                                f"({account.account_type.value}/{account.source.source_class})")
        self.resolve_memberships(record, 'VaultAccount', account.id)
        return record

    def from_secret(self, secret: SecretRecord) -> MigratedCredentialRecord:
        record = MigratedCredentialRecord(
            secret_template_name=None,
            secret_name=secret.name,
            target=None,
            username=None,
            password=secret.text_content,
            folder=None if secret.is_root_level else secret.parent_path,
            source_id=secret.id,
            source_kind=MigrationSource.SECRET,
            permissions=[to_migration_permission(e) for e in secret.access_entries],
        )
        if secret.folder_id:
            folder_entries = self.access_resolver.get_collection_access('DataVault', secret.folder_id)
            record.folder_permissions = [to_migration_permission(e) for e in folder_entries]
        self.resolve_memberships(record, 'DataVault', secret.id)
        return record

    def from_external_credential(self, credential: ExternalCredential) -> MigratedCredentialRecord:
        record = MigratedCredentialRecord(
            secret_template_name=credential.template_name,
            secret_name=credential.name or f"{credential.target}\\{credential.username}",
            target=credential.target,
            username=credential.username,
            password=credential.password,
            folder=credential.folder,
            source_id=None,
            source_kind=MigrationSource.EXTERNAL,
        )
        determine_conflicts(record)
        return record

    def resolve_memberships(self, record: MigratedCredentialRecord, table: str, object_id: str) -> None:
        """Fill set memberships and set permissions, then recompute conflicts."""
        record.member_of_sets = self.get_set_memberships(table, object_id)
        record.set_permissions = []
        for set_record in record.member_of_sets:
            entries = set_record.member_access_entries
            if entries is None:
                entries = self.access_resolver.get_collection_access(set_record.object_type, set_record.id)
            record.set_permissions.extend(to_migration_permission(e) for e in entries)
        if record.folder is None and len(record.member_of_sets) == 1:
            record.folder = record.member_of_sets[0].name
        determine_conflicts(record)

    def get_set_memberships(self, table: str, object_id: str) -> List[SetRecord]:
        """Manual sets of the matching object type that contain the object."""
        candidates = [s for s in self.candidate_sets if s.object_type == table]
        if self.set_bank is not None:
            containing = set(self.set_bank.sets_containing(object_id))
            return [s for s in candidates if s.id in containing]
        return [s for s in candidates if self.set_resolver.is_member(s.id, table, object_id)]
