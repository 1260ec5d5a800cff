"""
Access entry resolution.

Fetches ACL rows for an object from the tenant and converts them into
AccessEntry records, dropping the global-root and support-access noise the
tenant always reports.
"""

import logging
from typing import Any, Dict, List, Optional

from ..shared.api_client import PlatformAPIClient
from ..shared.exceptions import AccessEntryError
from . import permissions
from .conversions import to_bool
from .models import AccessEntry, PermissionGrant, Principal

GLOBAL_ROOT_TYPE = "GlobalRoot"
SUPPORT_PRINCIPAL_NAME = "Technical Support Access"
SUPER_PRINCIPAL_TYPE = "Super"


class AccessEntryResolver:
    """Builds AccessEntry lists from the row and collection ACL endpoints."""

    ROW_ACES_ENDPOINT = "Acl/GetRowAces"
    COLLECTION_ACES_ENDPOINT = "Acl/GetCollectionAces"

    def __init__(self, client: PlatformAPIClient, logger: Optional[logging.Logger] = None):
        self.client = client
        self.logger = logger or logging.getLogger(__name__)

    def get_row_access(self, object_type: str, object_id: str) -> List[AccessEntry]:
        """
        Return the object's own ACL.

        Args:
            object_type: Object type or alias (e.g. 'DataVault', 'ManualBucket')
            object_id: Object UUID

        Raises:
            ValueError: If the object type has no ACL table
            AccessEntryError: If any row cannot be converted
        """
        table = permissions.acl_table_for(object_type)
        payload = {'RowKey': object_id, 'Table': table, 'ReduceSysadmin': True}
        return self._resolve(self.ROW_ACES_ENDPOINT, payload, object_type, object_id)

    def get_collection_access(self, object_type: str, set_id: str) -> List[AccessEntry]:
        """
        Return the ACL a set grants on its members.

        Args:
            object_type: Type of the set's members; decides the flag table
            set_id: Set UUID

        Raises:
            ValueError: If the object type has no ACL table
            AccessEntryError: If any row cannot be converted
        """
        table = permissions.acl_table_for(object_type)
        payload = {'ID': set_id, 'Table': table, 'ReduceSysadmin': True}
        return self._resolve(self.COLLECTION_ACES_ENDPOINT, payload, object_type, set_id)

    def _resolve(self, endpoint: str, payload: Dict[str, Any], object_type: str,
                 object_id: str) -> List[AccessEntry]:
        self.client.ensure_connected()
        result = self.client.invoke(endpoint, payload) or []
        entries = []
        for row in result:
            if self._is_hidden(row):
                continue
            entries.append(self.build_entry(object_type, object_id, row))
        self.logger.debug(f"Resolved {len(entries)} access entries for {object_type} {object_id}")
        return entries

    @staticmethod
    def _is_hidden(row: Dict[str, Any]) -> bool:
        return row.get('Type') == GLOBAL_ROOT_TYPE or row.get('PrincipalName') == SUPPORT_PRINCIPAL_NAME

    def build_entry(self, object_type: str, object_id: str, row: Dict[str, Any]) -> AccessEntry:
        """
        Convert one ACL row.

        Raises:
            AccessEntryError: Chained to the exception that stopped the conversion
        """
        permission = None
        try:
            grant = row.get('Grant')
            if row.get('PrincipalType') == SUPER_PRINCIPAL_TYPE:
                grant = permissions.SUPER_ROLE_GRANT
            permission = PermissionGrant.from_bitmask(object_type, grant)
            principal = Principal(
                id=row['PrincipalId'],
                name=row['PrincipalName'],
                type=row['PrincipalType'],
            )
            return AccessEntry(
                principal=principal,
                permission=permission,
                is_inherited=to_bool(row.get('Inherited')),
                source_object_id=object_id,
            )
        except (KeyError, TypeError, ValueError) as e:
            message = f"Could not build access entry for {object_type} {object_id}: {e}"
            self.logger.error(f"{message} (row: {row})")
            raise AccessEntryError(row, permission, message) from e
