"""
Tests for account lifecycle actions.
"""

import pytest

from conftest import FakePlatformClient
from pas_migration_toolkit.core import account_actions
from pas_migration_toolkit.core.models import AccountRecord, AccountSource, AccountType


@pytest.fixture
def account():
    return AccountRecord(
        id='a1',
        account_type=AccountType.LOCAL,
        source=AccountSource(kind=AccountType.LOCAL, source_id='h1', source_name='host01'),
        username='root',
    )


@pytest.fixture
def client():
    return FakePlatformClient({
        "ServerManage/CheckoutPassword": {'COID': 'co-1', 'Password': 'Secr3t!'},
        "ServerManage/CheckinPassword": True,
        "ServerManage/UpdateAccount": True,
        "ServerManage/UpdatePassword": True,
        "ServerManage/CheckAccountHealth": {'Healthy': 'OK'},
    })


class TestCheckoutCheckin:
    """Test cases for check_out and check_in."""

    def test_check_out(self, client, account):
        state = account_actions.check_out(client, account, lifetime=30)

        assert state.checkout_id == 'co-1'
        assert state.password == 'Secr3t!'
        assert account.checkout_state is state
        assert client.calls_to("ServerManage/CheckoutPassword") == [{'ID': 'a1', 'Lifetime': 30}]

    def test_double_checkout(self, client, account):
        account_actions.check_out(client, account)
        with pytest.raises(ValueError, match="already checked out"):
            account_actions.check_out(client, account)

    def test_check_in(self, client, account):
        account_actions.check_out(client, account)

        account_actions.check_in(client, account)

        assert account.checkout_state is None
        assert client.calls_to("ServerManage/CheckinPassword") == [{'ID': 'co-1'}]

    def test_check_in_without_checkout(self, client, account):
        with pytest.raises(ValueError, match="not checked out"):
            account_actions.check_in(client, account)


class TestManagement:
    """Test cases for management and password actions."""

    def test_manage_and_unmanage(self, client, account):
        account_actions.manage(client, account)
        assert account.is_managed is True

        account_actions.unmanage(client, account)
        assert account.is_managed is False
        assert [p['IsManaged'] for p in client.calls_to("ServerManage/UpdateAccount")] == [True, False]

    def test_update_password(self, client, account):
        account_actions.update_password(client, account, 'n3w')
        assert client.calls_to("ServerManage/UpdatePassword") == [{'ID': 'a1', 'Password': 'n3w'}]

    def test_update_password_rejects_empty(self, client, account):
        with pytest.raises(ValueError, match="cannot be empty"):
            account_actions.update_password(client, account, '')
        assert client.calls == []

    def test_verify_password(self, client, account):
        assert account_actions.verify_password(client, account) == 'OK'
        assert account.health_state == 'OK'
        assert account.last_health_check_at is not None
