"""
Shared fixtures for the PAS migration toolkit tests.
"""

import pytest

from pas_migration_toolkit.shared.exceptions import PlatformConnectionError


class FakePlatformClient:
    """
    Stand-in for PlatformAPIClient.

    ``responses`` maps an endpoint to a value, an exception to raise, or a
    callable taking the payload. ``query_responses`` is a list of
    ``(sql_fragment, rows)`` pairs; the first fragment found in the SQL wins.
    """

    def __init__(self, responses=None, query_responses=None, downloads=None):
        self.responses = dict(responses or {})
        self.query_responses = list(query_responses or [])
        self.downloads = dict(downloads or {})
        self.calls = []
        self.executed_sql = []
        self.connected = True
        self.host = "https://tenant.example.com"

    def ensure_connected(self):
        if not self.connected:
            raise PlatformConnectionError("No active session")

    def invoke(self, endpoint, payload=None, timeout=None):
        self.ensure_connected()
        self.calls.append((endpoint, payload))
        response = self.responses.get(endpoint)
        if callable(response):
            response = response(payload)
        if isinstance(response, Exception):
            raise response
        return response

    def query_rows(self, sql):
        self.ensure_connected()
        self.executed_sql.append(sql)
        for fragment, rows in self.query_responses:
            if fragment in sql:
                return rows(sql) if callable(rows) else rows
        return []

    def download(self, url, timeout=None):
        self.ensure_connected()
        return self.downloads[url]

    def calls_to(self, endpoint):
        return [payload for called, payload in self.calls if called == endpoint]


def ace(name, grant, principal_type="User", ace_type="Row", principal_id=None, inherited=False):
    """Build a raw ACL row as returned by the tenant."""
    return {
        'Type': ace_type,
        'PrincipalType': principal_type,
        'PrincipalName': name,
        'PrincipalId': principal_id or f"id-{name}",
        'Grant': grant,
        'Inherited': inherited,
    }


@pytest.fixture
def fake_client():
    return FakePlatformClient()
