"""
Core functionality for the PAS migration toolkit.

This package turns tenant query rows into domain records, resolves their
permissions and set memberships, and flattens them into migration records.
"""

from .access import AccessEntryResolver
from .factory import DomainObjectFactory, classify_account_type
from .metrics import MetricsAggregator
from .migration import CredentialMigrationMapper, classify_permission
from .permissions import decode
from .principals import Ambiguous, Found, NotFound, PrincipalResolver
from .sets import SetBank, SetMembershipResolver, determine_owner

__all__ = [
    'AccessEntryResolver',
    'DomainObjectFactory',
    'classify_account_type',
    'MetricsAggregator',
    'CredentialMigrationMapper',
    'classify_permission',
    'decode',
    'PrincipalResolver',
    'Found',
    'NotFound',
    'Ambiguous',
    'SetBank',
    'SetMembershipResolver',
    'determine_owner',
]
