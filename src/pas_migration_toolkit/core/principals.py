"""
Principal lookup by name or id.

Lookups return one of three result types instead of a sentinel value, so
callers branch explicitly on zero or multiple matches.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

from ..shared.api_client import PlatformAPIClient
from . import queries
from .models import Principal, PrincipalType


@dataclass(frozen=True)
class Found:
    principal: Principal


@dataclass(frozen=True)
class NotFound:
    query: str


@dataclass(frozen=True)
class Ambiguous:
    query: str
    candidates: Tuple[Principal, ...]


LookupResult = Union[Found, NotFound, Ambiguous]

_LOOKUPS = {
    PrincipalType.USER: (queries.USER_QUERY, "Username", "ID"),
    PrincipalType.ROLE: (queries.ROLE_QUERY, "Name", "ID"),
    PrincipalType.GROUP: (queries.GROUP_QUERY, "SystemName", "InternalName"),
}


class PrincipalResolver:
    """Looks up users, roles and directory groups; caches lookups by id."""

    def __init__(self, client: PlatformAPIClient, logger: Optional[logging.Logger] = None):
        self.client = client
        self.logger = logger or logging.getLogger(__name__)
        self._by_id: Dict[Tuple[PrincipalType, str], LookupResult] = {}

    def find_user(self, name: str, exact: bool = False) -> LookupResult:
        return self.find(PrincipalType.USER, name, exact)

    def find_role(self, name: str, exact: bool = False) -> LookupResult:
        return self.find(PrincipalType.ROLE, name, exact)

    def find_group(self, name: str, exact: bool = False) -> LookupResult:
        return self.find(PrincipalType.GROUP, name, exact)

    def find(self, principal_type: PrincipalType, name: str, exact: bool = False) -> LookupResult:
        """Find a principal by name, using LIKE matching unless ``exact``."""
        base, name_column, _ = _LOOKUPS[principal_type]
        sql = queries.build_query(base, [queries.match(name_column, name, exact)])
        return self._run(principal_type, sql)

    def find_by_id(self, principal_type: PrincipalType, principal_id: str) -> LookupResult:
        key = (principal_type, principal_id)
        if key not in self._by_id:
            base, _, id_column = _LOOKUPS[principal_type]
            sql = queries.build_query(base, [queries.equals(id_column, principal_id)])
            self._by_id[key] = self._run(principal_type, sql)
        return self._by_id[key]

    def _run(self, principal_type: PrincipalType, sql: str) -> LookupResult:
        self.client.ensure_connected()
        rows = self.client.query_rows(sql)
        candidates: List[Principal] = [
            Principal(id=row.get('ID'), name=row.get('Name'), type=principal_type.value)
            for row in rows
        ]
        if not candidates:
            self.logger.warning(f"No {principal_type.value} found for query: {sql}")
            return NotFound(sql)
        if len(candidates) > 1:
            self.logger.warning(f"{len(candidates)} {principal_type.value} matches for query: {sql}")
            return Ambiguous(sql, tuple(candidates))
        return Found(candidates[0])
