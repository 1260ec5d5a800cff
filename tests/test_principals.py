"""
Tests for PrincipalResolver.
"""

from conftest import FakePlatformClient
from pas_migration_toolkit.core.models import PrincipalType
from pas_migration_toolkit.core.principals import Ambiguous, Found, NotFound, PrincipalResolver


class TestPrincipalResolver:
    """Test cases for PrincipalResolver."""

    def test_found(self):
        client = FakePlatformClient(query_responses=[("FROM User", [{'ID': 'u1', 'Name': 'alice'}])])

        result = PrincipalResolver(client).find_user("alice", exact=True)

        assert isinstance(result, Found)
        assert result.principal.name == 'alice'
        assert result.principal.type == 'User'
        assert "Username = 'alice'" in client.executed_sql[0]

    def test_not_found(self):
        result = PrincipalResolver(FakePlatformClient()).find_role("nobody")

        assert isinstance(result, NotFound)
        assert "Name LIKE '%nobody%'" in result.query

    def test_ambiguous(self):
        rows = [{'ID': 'g1', 'Name': 'admins'}, {'ID': 'g2', 'Name': 'admins-eu'}]
        client = FakePlatformClient(query_responses=[("FROM DSGroups", rows)])

        result = PrincipalResolver(client).find_group("admins")

        assert isinstance(result, Ambiguous)
        assert [p.id for p in result.candidates] == ['g1', 'g2']

    def test_find_by_id_is_cached(self):
        client = FakePlatformClient(query_responses=[("FROM Role", [{'ID': 'r1', 'Name': 'Ops'}])])
        resolver = PrincipalResolver(client)

        first = resolver.find_by_id(PrincipalType.ROLE, 'r1')
        second = resolver.find_by_id(PrincipalType.ROLE, 'r1')

        assert first == second
        assert len(client.executed_sql) == 1

    def test_quotes_are_escaped(self):
        client = FakePlatformClient()
        PrincipalResolver(client).find_user("o'brien", exact=True)
        assert "'o''brien'" in client.executed_sql[0]
