"""
SQL text for the tenant data store.

The tenant accepts a SQL dialect over its own tables; queries are built
here as plain strings and forwarded unchanged by the API client.
"""

from typing import Iterable, Optional

SECRET_QUERY = (
    "SELECT DataVault.ID, DataVault.SecretName, DataVault.Type, DataVault.ParentPath, "
    "DataVault.Description, DataVault.Created, DataVault.WhenContentsReplaced, "
    "DataVault.LastRetrieved, DataVault.FolderId, DataVault.SecretFileName, "
    "DataVault.SecretFileSize, DataVault.WorkflowEnabled "
    "FROM DataVault"
)

ACCOUNT_QUERY = (
    "SELECT VaultAccount.ID, VaultAccount.Host, VaultAccount.DomainID, VaultAccount.DatabaseID, "
    "VaultAccount.CloudProviderID, VaultAccount.User, VaultAccount.Name, VaultAccount.IsManaged, "
    "VaultAccount.Healthy, VaultAccount.LastHealthCheck, VaultAccount.Description, "
    "VaultAccount.WorkflowEnabled, VaultAccount.VaultId, Server.ComputerClass, "
    "VaultDatabase.DatabaseClass, CloudProviders.Type AS CloudProviderType "
    "FROM VaultAccount "
    "LEFT JOIN Server ON VaultAccount.Host = Server.ID "
    "LEFT JOIN VaultDatabase ON VaultAccount.DatabaseID = VaultDatabase.ID "
    "LEFT JOIN CloudProviders ON VaultAccount.CloudProviderID = CloudProviders.ID"
)

SET_QUERY = "SELECT ID, Name, Description, CollectionType, ObjectType, WhenCreated FROM Sets"

SYSTEM_QUERY = (
    "SELECT ID, Name, FQDN, ComputerClass, OperatingSystem, SessionType, Description, "
    "ZoneRoleWorkflowEnabled FROM Server"
)

VAULT_QUERY = "SELECT ID, VaultType, VaultName, Url, UserName, SyncInterval, LastSync FROM Vault"

ROLE_QUERY = "SELECT ID, Name, Description FROM Role"

USER_QUERY = "SELECT ID, Username AS Name FROM User"

GROUP_QUERY = "SELECT InternalName AS ID, SystemName AS Name FROM DSGroups"

# Column holding the account's source id, in classification order
ACCOUNT_SOURCE_COLUMNS = (
    ("Host", "Local"),
    ("DomainID", "Domain"),
    ("DatabaseID", "Database"),
    ("CloudProviderID", "Cloud"),
)

# Display-name lookups for set members, keyed by member table
MEMBER_NAME_QUERIES = {
    "DataVault": "SELECT SecretName AS Name FROM DataVault",
    "VaultAccount": "SELECT Name AS ParentName, User FROM VaultAccount",
    "Server": "SELECT Name FROM Server",
    "VaultDatabase": "SELECT Name FROM VaultDatabase",
    "VaultDomain": "SELECT Name FROM VaultDomain",
}


def sql_quote(value: str) -> str:
    """Quote a literal for the tenant SQL dialect."""
    return "'" + str(value).replace("'", "''") + "'"


def equals(column: str, value: str) -> str:
    return f"{column} = {sql_quote(value)}"


def like(column: str, value: str) -> str:
    return f"{column} LIKE {sql_quote('%' + value + '%')}"


def match(column: str, value: str, exact: bool) -> str:
    return equals(column, value) if exact else like(column, value)


def build_query(base: str, conditions: Iterable[Optional[str]] = ()) -> str:
    """Append the non-empty conditions to ``base`` as an AND-ed WHERE clause."""
    clauses = [c for c in conditions if c]
    if not clauses:
        return base
    return f"{base} WHERE {' AND '.join(clauses)}"
