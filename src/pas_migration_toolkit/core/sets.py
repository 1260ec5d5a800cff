"""
Set membership resolution and the SetBank membership index.

Sets come in three kinds. Manual sets list their members through the
generic collection endpoint, folders (phantom sets) through the secrets and
folders listing, and dynamic sets are computed server-side so their members
are never resolved here.
"""

import json
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

from ..shared.api_client import PlatformAPIClient
from ..shared.exceptions import SetBankBuildError
from . import permissions, queries
from .models import MULTIPLE_OWNERS, NO_OWNER, PrincipalType, SetKind, SetMember, SetRecord

DEFAULT_SETBANK_WORKERS = 12
SETBANK_FORMAT_VERSION = 1


def determine_owner(set_record: SetRecord) -> str:
    """
    Infer the owner of a set from its own ACL.

    A user holding a full-control grant is a potential owner. Returns the
    user's name when there is exactly one, otherwise a sentinel string.
    """
    owners = [
        entry.principal.name
        for entry in set_record.own_access_entries
        if entry.principal.type == PrincipalType.USER.value
        and entry.permission.grant in permissions.OWNER_GRANTS
    ]
    if not owners:
        return NO_OWNER
    if len(owners) > 1:
        return MULTIPLE_OWNERS
    return owners[0]


class SetMembershipResolver:
    """Resolves member ids and display names for sets."""

    GET_MEMBERS_ENDPOINT = "Collection/GetMembers"
    IS_MEMBER_ENDPOINT = "Collection/IsMember"
    FOLDER_MEMBERS_ENDPOINT = "ServerManage/GetSecretsAndFolders"

    def __init__(self, client: PlatformAPIClient, logger: Optional[logging.Logger] = None):
        self.client = client
        self.logger = logger or logging.getLogger(__name__)

    def get_members(self, set_record: SetRecord) -> None:
        """Fill ``member_ids`` and ``members`` on the set in place."""
        self.client.ensure_connected()
        if set_record.set_kind == SetKind.DYNAMIC:
            self.logger.debug(f"Skipping member resolution for dynamic set {set_record.name}")
            return

        rows = self.get_member_rows(set_record)
        set_record.member_ids = [row['Key'] for row in rows]
        set_record.members = [
            SetMember(
                name=row.get('Name') or self.resolve_member_name(row['Table'], row['Key']),
                type=row['Table'],
                id=row['Key'],
            )
            for row in rows
        ]
        self.logger.info(f"Resolved {len(set_record.members)} members for set {set_record.name}")

    def get_member_rows(self, set_record: SetRecord) -> List[Dict[str, str]]:
        """Return member rows as ``{'Key', 'Table'[, 'Name']}`` dictionaries."""
        if set_record.set_kind == SetKind.PHANTOM:
            return self._get_folder_member_rows(set_record.id)
        return self.client.invoke(self.GET_MEMBERS_ENDPOINT, {'ID': set_record.id}) or []

    def get_member_ids(self, set_id: str) -> List[str]:
        """Raw member ids of a manual set, without name resolution."""
        rows = self.client.invoke(self.GET_MEMBERS_ENDPOINT, {'ID': set_id}) or []
        return [row['Key'] for row in rows]

    def _get_folder_member_rows(self, folder_id: str) -> List[Dict[str, str]]:
        result = self.client.invoke(self.FOLDER_MEMBERS_ENDPOINT, {'Parent': folder_id}) or {}
        rows = []
        for entry in result.get('Results', []):
            row = entry.get('Row', {})
            if row.get('Type') == 'Folder':
                continue
            rows.append({'Key': row['ID'], 'Table': 'DataVault', 'Name': row.get('SecretName')})
        return rows

    def resolve_member_name(self, table: str, member_id: str) -> Optional[str]:
        """
        Look up the display name of a member.

        Accounts are named ``ParentName\\Username``. Unknown tables and
        vanished members return None.
        """
        base = queries.MEMBER_NAME_QUERIES.get(table)
        if base is None:
            self.logger.warning(f"No name lookup for member table {table} ({member_id})")
            return None
        rows = self.client.query_rows(queries.build_query(base, [queries.equals('ID', member_id)]))
        if not rows:
            self.logger.warning(f"Member {member_id} not found in {table}")
            return None
        row = rows[0]
        if table == 'VaultAccount':
            return f"{row.get('ParentName')}\\{row.get('User')}"
        return row.get('Name')

    def is_member(self, set_id: str, table: str, object_id: str) -> bool:
        self.client.ensure_connected()
        result = self.client.invoke(self.IS_MEMBER_ENDPOINT, {'ID': set_id, 'Table': table, 'Key': object_id})
        return bool(result)


class SetBank:
    """
    Precomputed ``{set_id: [member_id]}`` index for manual sets.

    Answers "which sets contain this object" without one remote membership
    check per set.
    """

    def __init__(self, members: Optional[Dict[str, List[str]]] = None, created_at: Optional[datetime] = None):
        self.members: Dict[str, List[str]] = dict(members or {})
        self.created_at = created_at or datetime.now()
        self._reverse: Optional[Dict[str, List[str]]] = None

    def __len__(self) -> int:
        return len(self.members)

    def __contains__(self, set_id: str) -> bool:
        return set_id in self.members

    def get(self, set_id: str) -> List[str]:
        return self.members.get(set_id, [])

    def sets_containing(self, object_id: str) -> List[str]:
        if self._reverse is None:
            reverse: Dict[str, List[str]] = {}
            for set_id, member_ids in self.members.items():
                for member_id in member_ids:
                    reverse.setdefault(member_id, []).append(set_id)
            self._reverse = reverse
        return list(self._reverse.get(object_id, []))

    @classmethod
    def build(cls, resolver: SetMembershipResolver, sets: Iterable[SetRecord],
              max_workers: int = DEFAULT_SETBANK_WORKERS,
              on_progress: Optional[Callable[[str], None]] = None,
              logger: Optional[logging.Logger] = None) -> "SetBank":
        """
        Fetch member ids for every manual set with a bounded worker pool.

        All fetches are dispatched, then all are collected. If any fetch
        failed, SetBankBuildError is raised after the pool drains and no bank
        is returned.

        Args:
            resolver: Resolver used for the member calls
            sets: Candidate sets; only manual sets are fetched
            max_workers: Worker pool size
            on_progress: Called with each set id once its fetch completes
        """
        logger = logger or logging.getLogger(__name__)
        resolver.client.ensure_connected()
        manual_sets = [s for s in sets if s.set_kind == SetKind.MANUAL]
        logger.info(f"Building SetBank for {len(manual_sets)} manual sets with {max_workers} workers")

        members: Dict[str, List[str]] = {}
        failures: Dict[str, Exception] = {}
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {executor.submit(resolver.get_member_ids, s.id): s.id for s in manual_sets}
            for future in as_completed(futures):
                set_id = futures[future]
                try:
                    members[set_id] = future.result()
                except Exception as e:
                    logger.error(f"Failed to fetch members for set {set_id}: {e}")
                    failures[set_id] = e
                if on_progress:
                    on_progress(set_id)

        if failures:
            raise SetBankBuildError(failures)
        return cls(members)

    def save(self, path: Union[str, Path]) -> Path:
        """Write the whole bank to a JSON snapshot."""
        file_path = Path(path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            'version': SETBANK_FORMAT_VERSION,
            'created_at': self.created_at.isoformat(),
            'members': self.members,
        }
        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
        return file_path

    @classmethod
    def load(cls, path: Union[str, Path]) -> "SetBank":
        """
        Read a snapshot written by ``save``.

        Raises:
            FileNotFoundError: If the snapshot does not exist
            ValueError: If the snapshot format is not recognized
        """
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if data.get('version') != SETBANK_FORMAT_VERSION or not isinstance(data.get('members'), dict):
            raise ValueError(f"Unrecognized SetBank snapshot: {path}")
        created_at = datetime.fromisoformat(data['created_at']) if data.get('created_at') else None
        return cls(data['members'], created_at=created_at)
