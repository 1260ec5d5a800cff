"""
PAS Migration Toolkit

A tool for exporting and migrating credentials out of a Privileged Access
Service tenant.
"""

__version__ = "1.0.0"

from .core import (
    AccessEntryResolver,
    CredentialMigrationMapper,
    DomainObjectFactory,
    MetricsAggregator,
    SetBank,
    SetMembershipResolver,
)
from .shared import PlatformAPIClient, create_api_client
from .shared.logging import setup_logging

__all__ = [
    "PlatformAPIClient",
    "create_api_client",
    "setup_logging",
    "AccessEntryResolver",
    "DomainObjectFactory",
    "SetMembershipResolver",
    "SetBank",
    "CredentialMigrationMapper",
    "MetricsAggregator",
]
