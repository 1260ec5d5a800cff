"""
Account lifecycle actions: checkout, checkin, management and passwords.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from ..shared.api_client import PlatformAPIClient
from .models import AccountRecord, CheckoutState

CHECKOUT_ENDPOINT = "ServerManage/CheckoutPassword"
CHECKIN_ENDPOINT = "ServerManage/CheckinPassword"
UPDATE_ACCOUNT_ENDPOINT = "ServerManage/UpdateAccount"
UPDATE_PASSWORD_ENDPOINT = "ServerManage/UpdatePassword"
CHECK_HEALTH_ENDPOINT = "ServerManage/CheckAccountHealth"

logger = logging.getLogger(__name__)


def check_out(client: PlatformAPIClient, account: AccountRecord,
              lifetime: Optional[int] = None) -> CheckoutState:
    """
    Check out the account's password.

    Args:
        lifetime: Checkout lifetime in minutes; tenant default when None

    Raises:
        ValueError: If the account is already checked out by this record
    """
    client.ensure_connected()
    if account.checkout_state is not None:
        raise ValueError(f"Account {account.display_name} is already checked out")
    payload = {'ID': account.id}
    if lifetime is not None:
        payload['Lifetime'] = lifetime
    result = client.invoke(CHECKOUT_ENDPOINT, payload) or {}
    account.checkout_state = CheckoutState(
        checkout_id=result['COID'],
        password=result['Password'],
        checked_out_at=datetime.now(timezone.utc),
    )
    logger.info(f"Checked out password for {account.display_name}")
    return account.checkout_state


def check_in(client: PlatformAPIClient, account: AccountRecord) -> None:
    """
    Return a checked-out password.

    Raises:
        ValueError: If the account is not checked out
    """
    client.ensure_connected()
    if account.checkout_state is None:
        raise ValueError(f"Account {account.display_name} is not checked out")
    client.invoke(CHECKIN_ENDPOINT, {'ID': account.checkout_state.checkout_id})
    account.checkout_state = None
    logger.info(f"Checked in password for {account.display_name}")


def set_managed(client: PlatformAPIClient, account: AccountRecord, managed: bool) -> None:
    client.ensure_connected()
    client.invoke(UPDATE_ACCOUNT_ENDPOINT, {'ID': account.id, 'User': account.username, 'IsManaged': managed})
    account.is_managed = managed
    logger.info(f"Set {account.display_name} managed={managed}")


def manage(client: PlatformAPIClient, account: AccountRecord) -> None:
    set_managed(client, account, True)


def unmanage(client: PlatformAPIClient, account: AccountRecord) -> None:
    set_managed(client, account, False)


def update_password(client: PlatformAPIClient, account: AccountRecord, password: str) -> None:
    client.ensure_connected()
    if not password:
        raise ValueError("Password cannot be empty")
    client.invoke(UPDATE_PASSWORD_ENDPOINT, {'ID': account.id, 'Password': password})
    logger.info(f"Updated password for {account.display_name}")


def verify_password(client: PlatformAPIClient, account: AccountRecord) -> Optional[str]:
    """Run a health check and store the reported state on the account."""
    client.ensure_connected()
    result = client.invoke(CHECK_HEALTH_ENDPOINT, {'ID': account.id})
    account.health_state = result if isinstance(result, str) else (result or {}).get('Healthy')
    account.last_health_check_at = datetime.now(timezone.utc)
    return account.health_state
