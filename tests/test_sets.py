"""
Tests for set membership resolution and the SetBank index.
"""

import json
import threading

import pytest

from conftest import FakePlatformClient
from pas_migration_toolkit.core.models import SetKind, SetRecord
from pas_migration_toolkit.core.sets import SetBank, SetMembershipResolver
from pas_migration_toolkit.shared.exceptions import RemoteCallError, SetBankBuildError


def make_set(set_id, kind=SetKind.MANUAL, object_type="DataVault", name=None):
    return SetRecord(id=set_id, set_kind=kind, object_type=object_type, name=name or set_id)


class TestSetMembershipResolver:
    """Test cases for SetMembershipResolver."""

    def setup_method(self):
        self.client = FakePlatformClient()
        self.resolver = SetMembershipResolver(self.client)

    def test_manual_set_members(self):
        self.client.responses["Collection/GetMembers"] = [
            {'Key': 's1', 'Table': 'DataVault'},
            {'Key': 's2', 'Table': 'DataVault'},
        ]
        self.client.query_responses = [
            ("ID = 's1'", [{'Name': 'first'}]),
            ("ID = 's2'", [{'Name': 'second'}]),
        ]
        set_record = make_set("set1")

        self.resolver.get_members(set_record)

        assert set_record.member_ids == ['s1', 's2']
        assert [m.name for m in set_record.members] == ['first', 'second']
        assert all(m.type == 'DataVault' for m in set_record.members)

    def test_dynamic_set_is_not_resolved(self):
        set_record = make_set("dyn", kind=SetKind.DYNAMIC)

        self.resolver.get_members(set_record)

        assert set_record.member_ids == []
        assert self.client.calls == []

    def test_folder_members_skip_subfolders(self):
        self.client.responses["ServerManage/GetSecretsAndFolders"] = {
            'Results': [
                {'Row': {'ID': 'f2', 'Type': 'Folder', 'SecretName': 'nested'}},
                {'Row': {'ID': 's9', 'Type': 'Text', 'SecretName': 'api-token'}},
            ]
        }
        folder = make_set("f1", kind=SetKind.PHANTOM)

        self.resolver.get_members(folder)

        assert folder.member_ids == ['s9']
        assert folder.members[0].name == 'api-token'
        assert self.client.calls_to("ServerManage/GetSecretsAndFolders") == [{'Parent': 'f1'}]
        assert self.client.executed_sql == []

    def test_vanished_member_has_no_name(self):
        self.client.responses["Collection/GetMembers"] = [{'Key': 'gone', 'Table': 'Server'}]
        set_record = make_set("set1", object_type="Server")

        self.resolver.get_members(set_record)

        assert set_record.members[0].name is None

    def test_unknown_member_table(self):
        assert self.resolver.resolve_member_name('Widget', 'w1') is None
        assert self.client.executed_sql == []

    def test_is_member(self):
        self.client.responses["Collection/IsMember"] = lambda payload: payload['Key'] == 'a1'

        assert self.resolver.is_member('set1', 'VaultAccount', 'a1') is True
        assert self.resolver.is_member('set1', 'VaultAccount', 'a2') is False
        assert self.client.calls_to("Collection/IsMember")[0] == {'ID': 'set1', 'Table': 'VaultAccount', 'Key': 'a1'}


class TestSetBank:
    """Test cases for SetBank."""

    def test_build_covers_manual_sets_only(self):
        members = {'m1': [{'Key': 'a'}, {'Key': 'b'}], 'm2': [{'Key': 'b'}]}
        client = FakePlatformClient({"Collection/GetMembers": lambda payload: members[payload['ID']]})
        resolver = SetMembershipResolver(client)
        sets = [make_set('m1'), make_set('m2'), make_set('d1', kind=SetKind.DYNAMIC),
                make_set('f1', kind=SetKind.PHANTOM)]
        progress = []

        bank = SetBank.build(resolver, sets, max_workers=2, on_progress=progress.append)

        assert len(bank) == 2
        assert 'd1' not in bank
        assert bank.get('m1') == ['a', 'b']
        assert sorted(bank.sets_containing('b')) == ['m1', 'm2']
        assert bank.sets_containing('zzz') == []
        assert sorted(progress) == ['m1', 'm2']

    def test_build_fails_when_any_fetch_fails(self):
        def members(payload):
            if payload['ID'] == 'bad':
                return RemoteCallError("Collection/GetMembers", payload, "boom")
            return [{'Key': 'x'}]

        client = FakePlatformClient({"Collection/GetMembers": members})
        resolver = SetMembershipResolver(client)
        sets = [make_set('good1'), make_set('bad'), make_set('good2')]

        with pytest.raises(SetBankBuildError) as exc_info:
            SetBank.build(resolver, sets, max_workers=3)

        assert list(exc_info.value.failures) == ['bad']
        assert len(client.calls_to("Collection/GetMembers")) == 3

    def test_build_uses_worker_threads(self):
        seen = set()
        lock = threading.Lock()

        def members(payload):
            with lock:
                seen.add(threading.current_thread().name)
            return []

        client = FakePlatformClient({"Collection/GetMembers": members})
        SetBank.build(SetMembershipResolver(client), [make_set(f"s{i}") for i in range(4)], max_workers=2)

        assert threading.main_thread().name not in seen

    def test_save_and_load(self, tmp_path):
        bank = SetBank({'m1': ['a', 'b']})
        path = bank.save(tmp_path / "snapshots" / "setbank.json")

        loaded = SetBank.load(path)

        assert loaded.members == {'m1': ['a', 'b']}
        assert loaded.created_at == bank.created_at
        assert loaded.sets_containing('a') == ['m1']

    def test_load_rejects_unknown_format(self, tmp_path):
        path = tmp_path / "setbank.json"
        path.write_text(json.dumps({'version': 99, 'members': {}}))

        with pytest.raises(ValueError, match="Unrecognized SetBank snapshot"):
            SetBank.load(path)
