"""
Tests for credential migration records.
"""

import pytest

from conftest import FakePlatformClient, ace
from pas_migration_toolkit.core.access import AccessEntryResolver
from pas_migration_toolkit.core.migration import (
    EDIT,
    LIST,
    OWNER,
    VIEW,
    CredentialMigrationMapper,
    classify_permission,
    template_for_account,
)
from pas_migration_toolkit.core.models import (
    AccountRecord,
    AccountSource,
    AccountType,
    CheckoutState,
    ExternalCredential,
    MigrationSource,
    SecretRecord,
    SecretType,
    SetKind,
    SetRecord,
)
from pas_migration_toolkit.core.sets import SetBank, SetMembershipResolver

MEMBERSHIP = {'set-a': {'a1', 'a2'}, 'set-b': {'a2'}, 'set-s': {'s1'}}


def is_member(payload):
    return payload['Key'] in MEMBERSHIP.get(payload['ID'], set())


def account(account_id, kind=AccountType.LOCAL, source_class="Unix"):
    return AccountRecord(
        id=account_id,
        account_type=kind,
        source=AccountSource(kind=kind, source_id="src", source_name="host01", source_class=source_class),
        username="root",
    )


def candidate_sets():
    return [
        SetRecord(id='set-a', set_kind=SetKind.MANUAL, object_type='VaultAccount', name='Linux roots',
                  member_access_entries=[]),
        SetRecord(id='set-b', set_kind=SetKind.MANUAL, object_type='VaultAccount', name='Prod'),
        SetRecord(id='set-s', set_kind=SetKind.MANUAL, object_type='DataVault', name='Keys'),
        SetRecord(id='set-d', set_kind=SetKind.DYNAMIC, object_type='VaultAccount', name='All accounts'),
    ]


@pytest.mark.parametrize("decoded,level", [
    ("Grant, View", OWNER),
    ("Checkout, View", VIEW),
    ("Retrieve, View", VIEW),
    ("Edit, View", EDIT),
    ("View", LIST),
    ("", LIST),
])
def test_classify_permission(decoded, level):
    assert classify_permission(decoded) == level


class TestTemplates:
    """Test cases for template_for_account."""

    def test_local_unix(self):
        assert template_for_account(account('a1')) == "Unix Account (SSH)"

    def test_database(self):
        assert template_for_account(account('a1', AccountType.DATABASE, "Oracle")) == "Oracle Account"

    def test_domain(self):
        assert template_for_account(account('a1', AccountType.DOMAIN, None)) == "Active Directory Account"

    def test_unmapped(self):
        assert template_for_account(account('a1', AccountType.LOCAL, "Mainframe")) is None


class TestCredentialMigrationMapper:
    """Test cases for CredentialMigrationMapper."""

    def setup_method(self):
        self.client = FakePlatformClient({
            "Collection/IsMember": is_member,
            "Acl/GetCollectionAces": [ace("ops", 65536 + 8, principal_type="Role")],
        })
        self.access = AccessEntryResolver(self.client)
        self.sets = SetMembershipResolver(self.client)

    def mapper(self, set_bank=None):
        return CredentialMigrationMapper(self.access, self.sets, candidate_sets(), set_bank=set_bank)

    def test_dynamic_sets_are_not_candidates(self):
        assert [s.id for s in self.mapper().candidate_sets] == ['set-a', 'set-b', 'set-s']

    def test_account_in_one_set(self):
        acct = account('a1')
        acct.checkout_state = CheckoutState(checkout_id='co1', password='hunter2')

        record = self.mapper().from_account(acct)

        assert record.source_kind == MigrationSource.ACCOUNT
        assert record.secret_name == "host01\\root"
        assert record.password == 'hunter2'
        assert [s.id for s in record.member_of_sets] == ['set-a']
        assert record.folder == 'Linux roots'
        assert record.has_conflicts is False
        # set-a carries its member ACL already, so no remote call is needed
        assert self.client.calls_to("Acl/GetCollectionAces") == []

    def test_account_in_two_sets_conflicts(self):
        record = self.mapper().from_account(account('a2'))

        assert sorted(s.id for s in record.member_of_sets) == ['set-a', 'set-b']
        assert record.has_conflicts is True
        assert record.folder is None
        assert [p.level for p in record.set_permissions] == [VIEW]

    def test_set_bank_and_membership_checks_agree(self):
        bank = SetBank({set_id: sorted(ids) for set_id, ids in MEMBERSHIP.items()})

        for account_id in ('a1', 'a2', 'a3'):
            with_checks = self.mapper().from_account(account(account_id))
            self.client.calls.clear()
            with_bank = self.mapper(bank).from_account(account(account_id))

            assert [s.id for s in with_bank.member_of_sets] == [s.id for s in with_checks.member_of_sets]
            assert with_bank.has_conflicts == with_checks.has_conflicts
            assert self.client.calls_to("Collection/IsMember") == []

    def test_secret_with_folder(self):
        secret = SecretRecord(id='s1', name='api-key', type=SecretType.TEXT, parent_path='Apps/Prod',
                              folder_id='f1', text_content='s3cr3t')

        record = self.mapper().from_secret(secret)

        assert record.folder == 'Apps/Prod'
        assert record.password == 's3cr3t'
        assert record.secret_template_name is None
        assert record.folder_permissions[0].principal_name == 'ops'
        assert self.client.calls_to("Acl/GetCollectionAces")[0] == {
            'ID': 'f1', 'Table': 'DataVault', 'ReduceSysadmin': True
        }
        assert [s.id for s in record.member_of_sets] == ['set-s']

    def test_external_credential(self):
        credential = ExternalCredential(target='10.0.0.5', username='admin', password='pw',
                                        template_name='Unix Account (SSH)')

        record = self.mapper().from_external_credential(credential)

        assert record.secret_name == "10.0.0.5\\admin"
        assert record.source_kind == MigrationSource.EXTERNAL
        assert record.has_conflicts is False
        assert self.client.calls == []

    def test_to_dict_hides_password_by_default(self):
        record = self.mapper().from_account(account('a1'))

        data = record.to_dict()

        assert 'password' not in data
        assert data['member_of_sets'] == [{'id': 'set-a', 'name': 'Linux roots'}]
        assert data['source_kind'] == 'Account'
        assert 'password' in record.to_dict(include_password=True)
