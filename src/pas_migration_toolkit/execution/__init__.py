"""
Execution functions for the PAS migration toolkit.

This module contains the bulk operations driven by the CLI.
"""

from .export_operations import (
    execute_metrics_report,
    execute_migration_export,
    execute_secret_export,
    execute_setbank_build,
)
from .utils import OperationSummary, create_progress_bar

__all__ = [
    "create_progress_bar",
    "OperationSummary",
    "execute_secret_export",
    "execute_setbank_build",
    "execute_migration_export",
    "execute_metrics_report",
]
