"""
Exception hierarchy for the PAS migration toolkit.

Every failure raised by the toolkit derives from PlatformError so callers
running bulk operations can isolate per-item failures with a single except
clause while still letting programming errors propagate.
"""

from typing import Any, Dict, Optional


class PlatformError(Exception):
    """Base class for all toolkit errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class PlatformConnectionError(PlatformError):
    """Raised when no valid or active tenant session is available."""


class RemoteCallError(PlatformError):
    """
    Raised when a remote call fails at the transport or application level.

    Attributes:
        endpoint: The API endpoint that was called
        payload: The JSON body that was sent
        message: Failure description (server message or transport error)
        status_code: HTTP status code when one was received
    """

    def __init__(self, endpoint: str, payload: Optional[Dict[str, Any]], message: str,
                 status_code: Optional[int] = None):
        self.endpoint = endpoint
        self.payload = payload
        self.status_code = status_code
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.endpoint}: {self.message}"


class AccessEntryError(PlatformError):
    """
    Raised when a single ACL row cannot be turned into an AccessEntry.

    Attributes:
        raw_row: The row as returned by the server
        partial_permission: The PermissionGrant built before the failure, if any
    """

    def __init__(self, raw_row: Dict[str, Any], partial_permission: Any, message: str):
        self.raw_row = raw_row
        self.partial_permission = partial_permission
        super().__init__(message)


class SecretStateError(PlatformError):
    """Raised when a secret content operation is invoked out of order."""


class SetBankBuildError(PlatformError):
    """
    Raised when one or more member fetches fail while building a SetBank.

    Attributes:
        failures: Mapping of set id to the exception raised for it
    """

    def __init__(self, failures: Dict[str, Exception]):
        self.failures = failures
        failed = ", ".join(sorted(failures))
        super().__init__(f"Failed to fetch members for {len(failures)} set(s): {failed}")
