"""
API Client for a Privileged Access Service tenant.

This module provides the HTTP client used by every other part of the toolkit
to talk to the tenant. All remote operations are JSON POST calls that return
an envelope of the form ``{"success": bool, "Result": ..., "Message": ...}``;
the client unwraps that envelope and turns failures into RemoteCallError.

Key Features:
- Bearer token or session cookie authentication (token optionally kept in the OS keyring)
- Configurable timeout management (default: 60 seconds)
- Environment file configuration support
- SQL query front-end with fixed pagination arguments
- Last-error side channel for operator inspection

Example Usage:
    # Create client from environment file
    client = create_api_client(env_file='tenant.env')

    # Run a query against the tenant data store
    rows = client.query_rows("SELECT ID, SecretName FROM DataVault")

    # Make a generic call
    result = client.invoke('Collection/GetMembers', {'ID': 'set-uuid'})

    # Clean up
    client.close()
"""

import os
import logging
from typing import Dict, Any, List, Optional
from pathlib import Path

import keyring
from keyring.errors import KeyringError
import requests
from requests.exceptions import RequestException, Timeout

from .exceptions import PlatformConnectionError, RemoteCallError


class PlatformAPIClient:
    """
    HTTP client for tenant API interactions.

    The client is the explicit connection context of the toolkit: every core
    component receives an instance instead of reading ambient session state,
    so several tenants can be served by independent clients side by side.

    Attributes:
        host (str): The base URL of the tenant
        bearer_token (Optional[str]): OAuth2 bearer token
        session_cookie (Optional[str]): Interactive login cookie
        timeout (int): Request timeout in seconds
        session (requests.Session): HTTP session for connection reuse
        last_error (Optional[RemoteCallError]): Most recent remote failure
        logger (logging.Logger): Logger instance for operation tracking
    """

    DEFAULT_TIMEOUT = 60
    QUERY_ENDPOINT = "Redrock/query"
    WHOAMI_ENDPOINT = "Security/whoami"
    QUERY_PAGE_SIZE = 10000
    KEYRING_SERVICE = "pas-migration-toolkit"
    SESSION_COOKIE_NAME = ".ASPXAUTH"

    def __init__(self, host: Optional[str] = None, bearer_token: Optional[str] = None,
                 session_cookie: Optional[str] = None, env_file: Optional[str] = None,
                 logger: Optional[logging.Logger] = None, timeout: Optional[int] = None):
        """
        Initialize the tenant API client.

        Configuration can be provided directly via parameters or loaded from an
        environment file. Environment variables are used as fallback for missing
        parameters, and the OS keyring is consulted last for the bearer token.

        Args:
            host: Tenant URL or hostname (e.g., 'acme.my.centrify.net')
            bearer_token: OAuth2 bearer token
            session_cookie: Session cookie from an interactive login
            env_file: Path to environment file containing PAS_* settings
            logger: Logger instance for logging operations
            timeout: Request timeout in seconds
        Raises:
            ValueError: If required configuration parameters are missing
            FileNotFoundError: If the specified environment file doesn't exist
        """
        self.logger = logger or logging.getLogger(__name__)
        self.log_file_path = None
        self.last_error: Optional[RemoteCallError] = None
        self._closed = False

        config: Dict[str, str] = {}
        if env_file:
            config = self._load_env_config(env_file)

        self.host = host or config.get('PAS_HOST') or os.getenv('PAS_HOST')
        self.bearer_token = bearer_token or config.get('PAS_BEARER_TOKEN') or os.getenv('PAS_BEARER_TOKEN')
        self.session_cookie = (session_cookie or config.get('PAS_SESSION_COOKIE')
                               or os.getenv('PAS_SESSION_COOKIE'))
        self.log_file_path = config.get('PAS_LOG_FILE_PATH') or os.getenv('PAS_LOG_FILE_PATH')
        configured_timeout = config.get('PAS_TIMEOUT') or os.getenv('PAS_TIMEOUT')
        self.timeout = timeout or (int(configured_timeout) if configured_timeout else self.DEFAULT_TIMEOUT)

        if not self.host:
            raise ValueError("Host URL is required. Set PAS_HOST environment variable or provide host parameter.")
        self.host = self._normalize_host(self.host)

        if not self.bearer_token and not self.session_cookie:
            self.bearer_token = self._load_keyring_token()
        self._validate_configuration()

        self.session = requests.Session()
        self._setup_default_headers()
        self.logger.info(f"API Client initialized for host: {self.host}")

    @staticmethod
    def _normalize_host(host: str) -> str:
        host = host.strip().rstrip('/')
        if not host.startswith(('http://', 'https://')):
            host = f"https://{host}"
        return host

    def _validate_configuration(self) -> None:
        """
        Validate that credentials are present.

        Raises:
            ValueError: If neither a bearer token nor a session cookie is available
        """
        if not self.bearer_token and not self.session_cookie:
            raise ValueError(
                "Credentials are required. Set PAS_BEARER_TOKEN or PAS_SESSION_COOKIE, "
                f"or store a token in the '{self.KEYRING_SERVICE}' keyring for {self.host}."
            )

    def _load_env_config(self, env_file: str) -> Dict[str, str]:
        """
        Load configuration from environment file.

        Args:
            env_file: Path to the environment file
        Returns:
            Dictionary of parsed settings
        Raises:
            FileNotFoundError: If the environment file doesn't exist
        """
        env_path = Path(env_file)
        if not env_path.exists():
            raise FileNotFoundError(f"Environment file not found: {env_file}")
        self.logger.info(f"Loading configuration from: {env_file}")
        return self._parse_env_file(env_path)

    def _parse_env_file(self, env_path: Path) -> Dict[str, str]:
        """
        Parse environment file and extract key-value pairs.

        Args:
            env_path: Path to the environment file

        Returns:
            Dictionary containing parsed configuration
        """
        config = {}
        try:
            with open(env_path, 'r', encoding='utf-8') as f:
                for line in f:
                    line = line.strip()
                    # Skip empty lines and comments
                    if line and not line.startswith('#') and '=' in line:
                        key, value = line.split('=', 1)
                        config[key.strip()] = value.strip().strip('"').strip("'")
        except UnicodeDecodeError as e:
            self.logger.error(f"Failed to decode environment file {env_path}: {e}")
            raise ValueError(f"Environment file {env_path} contains invalid encoding")

        return config

    def _load_keyring_token(self) -> Optional[str]:
        """Look up a stored bearer token for this host in the OS keyring."""
        try:
            token = keyring.get_password(self.KEYRING_SERVICE, self.host)
        except KeyringError as e:
            self.logger.warning(f"Could not read bearer token from keyring: {e}")
            return None
        if token:
            self.logger.info(f"Using bearer token from keyring for {self.host}")
        return token

    def store_token(self, token: str) -> None:
        """Persist the bearer token for this host in the OS keyring."""
        keyring.set_password(self.KEYRING_SERVICE, self.host, token)
        self.bearer_token = token
        self._setup_default_headers()
        self.logger.info(f"Stored bearer token in keyring for {self.host}")

    def _setup_default_headers(self) -> None:
        """Configure the session with the native-client and authentication headers."""
        self.session.headers.update({
            'accept': 'application/json',
            'content-type': 'application/json',
            'X-CENTRIFY-NATIVE-CLIENT': 'true',
        })
        if self.bearer_token:
            self.session.headers['Authorization'] = f"Bearer {self.bearer_token}"
        if self.session_cookie:
            self.session.cookies.set(self.SESSION_COOKIE_NAME, self.session_cookie)

    def is_connected(self) -> bool:
        """Return True while the client holds credentials and an open session."""
        return not self._closed and bool(self.bearer_token or self.session_cookie)

    def ensure_connected(self) -> None:
        """
        Check the session precondition of every public operation.

        Raises:
            PlatformConnectionError: If the session is closed or has no credentials
        """
        if not self.is_connected():
            raise PlatformConnectionError(f"No active session for {self.host}")

    def invoke(self, endpoint: str, payload: Optional[Dict[str, Any]] = None,
               timeout: Optional[int] = None) -> Any:
        """
        Call an API endpoint and unwrap the response envelope.

        Failures are never retried. Each one is stored in ``last_error`` and
        raised to the caller.

        Args:
            endpoint: The API endpoint (e.g., 'Acl/GetRowAces')
            payload: JSON body for the call
            timeout: Request timeout in seconds

        Returns:
            The envelope's ``Result`` value

        Raises:
            PlatformConnectionError: If there is no active session or it was rejected
            RemoteCallError: If the call fails or the envelope reports failure
        """
        self.ensure_connected()
        if not endpoint or not endpoint.strip():
            raise ValueError("Endpoint cannot be empty")

        timeout = timeout or self.timeout
        url = f"{self.host}/{endpoint.lstrip('/')}"
        body = payload if payload is not None else {}
        self.logger.info(f"Making POST request to: {url} (timeout: {timeout}s)")

        try:
            response = self.session.post(url, json=body, timeout=timeout)
        except Timeout as e:
            self.logger.error(f"Request timed out for POST {endpoint}")
            raise self._record_error(endpoint, body, f"Request timed out: {e}")
        except RequestException as e:
            self.logger.error(f"Failed to make POST request to {endpoint}: {e}")
            raise self._record_error(endpoint, body, str(e))

        if response.status_code == 401:
            self.logger.error(f"Session rejected by {self.host} for {endpoint}")
            raise PlatformConnectionError(f"Session rejected by {self.host} (HTTP 401)")
        if response.status_code >= 400:
            self.logger.error(f"Response status code: {response.status_code}")
            self.logger.error(f"Response content: {response.text}")
            raise self._record_error(endpoint, body, f"HTTP {response.status_code}: {response.text}",
                                     status_code=response.status_code)

        try:
            envelope = response.json()
        except ValueError:
            raise self._record_error(endpoint, body, "Response body is not valid JSON",
                                     status_code=response.status_code)

        if not isinstance(envelope, dict) or not envelope.get('success', False):
            message = envelope.get('Message') if isinstance(envelope, dict) else None
            raise self._record_error(endpoint, body, message or "Call reported failure",
                                     status_code=response.status_code)

        self.logger.debug(f"Successfully completed POST request to {endpoint}")
        return envelope.get('Result')

    def _record_error(self, endpoint: str, payload: Dict[str, Any], message: str,
                      status_code: Optional[int] = None) -> RemoteCallError:
        error = RemoteCallError(endpoint, payload, message, status_code=status_code)
        self.last_error = error
        return error

    def query_rows(self, sql: str) -> List[Dict[str, Any]]:
        """
        Run a SQL query against the tenant data store.

        Args:
            sql: Query text, forwarded as-is

        Returns:
            List of row dictionaries, empty if the query matched nothing
        """
        payload = {
            'Script': sql,
            'args': {
                'PageNumber': 1,
                'PageSize': self.QUERY_PAGE_SIZE,
                'Limit': self.QUERY_PAGE_SIZE,
                'SortBy': '',
                'direction': 'False',
                'Caching': -1,
            },
        }
        self.logger.debug(f"Running query: {sql}")
        result = self.invoke(self.QUERY_ENDPOINT, payload)
        if not result or not result.get('Results'):
            return []
        return [entry.get('Row', {}) for entry in result['Results']]

    def download(self, url: str, timeout: Optional[int] = None) -> bytes:
        """
        Download raw bytes from a URL issued by the tenant.

        Args:
            url: Absolute URL or path relative to the host
            timeout: Request timeout in seconds

        Returns:
            Response content
        """
        self.ensure_connected()
        timeout = timeout or self.timeout
        if not url.startswith(('http://', 'https://')):
            url = f"{self.host}/{url.lstrip('/')}"
        self.logger.info(f"Downloading content from: {url}")
        try:
            response = self.session.get(url, timeout=timeout)
            response.raise_for_status()
        except RequestException as e:
            self.logger.error(f"Failed to download {url}: {e}")
            raise self._record_error(url, None, str(e))
        return response.content

    def test_connection(self) -> bool:
        """
        Test the API connection by asking the tenant who we are.

        Returns:
            True if connection is successful, False otherwise
        """
        try:
            self.invoke(self.WHOAMI_ENDPOINT)
            self.logger.info("API connection test successful")
            return True
        except (RemoteCallError, PlatformConnectionError) as e:
            self.logger.error(f"API connection test failed: {e}")
            return False

    def get_log_file_path(self) -> Optional[str]:
        """
        Get the log file path from configuration.

        Returns:
            Log file path if configured, None otherwise
        """
        return self.log_file_path

    def close(self) -> None:
        """
        Close the HTTP session and clean up resources.

        After closing, every call fails with PlatformConnectionError.
        """
        if hasattr(self, 'session'):
            self.session.close()
            self._closed = True
            self.logger.info("API client session closed")


def create_api_client(env_file: Optional[str] = None,
                      host: Optional[str] = None,
                      bearer_token: Optional[str] = None,
                      session_cookie: Optional[str] = None,
                      logger: Optional[logging.Logger] = None,
                      timeout: Optional[int] = None) -> PlatformAPIClient:
    """
    Factory function to create a configured tenant API client.

    Parameters provided directly override values from the environment file
    or environment variables.

    Args:
        env_file: Path to environment file containing configuration
        host: Tenant URL (overrides env_file and environment variables)
        bearer_token: Bearer token (overrides env_file and environment variables)
        session_cookie: Session cookie (overrides env_file and environment variables)
        logger: Logger instance for operation tracking
        timeout: Request timeout in seconds
    Returns:
        Configured PlatformAPIClient instance
    """
    return PlatformAPIClient(
        host=host,
        bearer_token=bearer_token,
        session_cookie=session_cookie,
        env_file=env_file,
        logger=logger,
        timeout=timeout,
    )
