"""
Shared utilities and global state management.

This module contains the tenant API client, the exception hierarchy, logging
setup and file utilities used across the PAS migration toolkit.
"""

from .api_client import PlatformAPIClient, create_api_client
from .exceptions import (
    AccessEntryError,
    PlatformConnectionError,
    PlatformError,
    RemoteCallError,
    SecretStateError,
    SetBankBuildError,
)
from .file_utils import get_output_file_path
from .globals import (
    load_global_output_directory,
    save_global_output_directory,
    set_global_output_directory,
)

__all__ = [
    "load_global_output_directory",
    "save_global_output_directory",
    "set_global_output_directory",
    "get_output_file_path",
    "PlatformAPIClient",
    "create_api_client",
    "PlatformError",
    "PlatformConnectionError",
    "RemoteCallError",
    "AccessEntryError",
    "SecretStateError",
    "SetBankBuildError",
]
