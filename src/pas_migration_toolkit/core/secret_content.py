"""
Secret content retrieval and export.

Content moves one way: UNRETRIEVED -> RETRIEVED -> EXPORTED. Retrieval
fills text content for Text secrets and a short-lived download URL for File
secrets; export writes the text, or downloads the bytes, under the secret's
parent path. Exports never overwrite an existing file.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from ..shared import file_utils
from ..shared.api_client import PlatformAPIClient
from ..shared.exceptions import SecretStateError
from .models import ROOT_PARENT_PATH, ContentState, SecretRecord, SecretType

RETRIEVE_CONTENTS_ENDPOINT = "ServerManage/RetrieveSecretContents"
DOWNLOAD_URL_ENDPOINT = "ServerManage/RequestSecretDownloadUrl"

logger = logging.getLogger(__name__)


def retrieve_secret(client: PlatformAPIClient, secret: SecretRecord) -> SecretRecord:
    """
    Fetch the secret's content handle.

    Raises:
        SecretStateError: If the secret was already exported
    """
    client.ensure_connected()
    if secret.content_state == ContentState.EXPORTED:
        raise SecretStateError(f"Secret {secret.name} ({secret.id}) has already been exported")

    if secret.type == SecretType.TEXT:
        result = client.invoke(RETRIEVE_CONTENTS_ENDPOINT, {'ID': secret.id}) or {}
        secret.text_content = result.get('SecretText')
    else:
        result = client.invoke(DOWNLOAD_URL_ENDPOINT, {'secretID': secret.id}) or {}
        secret.file_download_handle = result.get('Location')
        if not secret.file_download_handle:
            raise SecretStateError(f"No download location issued for secret {secret.name} ({secret.id})")

    secret.content_state = ContentState.RETRIEVED
    logger.info(f"Retrieved content for secret {secret.name} ({secret.id})")
    return secret


def secret_directory(base_directory: Union[str, Path], secret: SecretRecord) -> Path:
    """Directory a secret exports into: the base plus its parent path."""
    base = Path(base_directory)
    if secret.parent_path == ROOT_PARENT_PATH:
        return base
    parts = [p for p in secret.parent_path.replace('\\', '/').split('/') if p and p not in ('.', '..')]
    return base.joinpath(*parts)


def export_file_name(name: str) -> str:
    """
    Reduce a secret or file name to one path component.

    Separators become ``_`` so the name can never leave its directory.

    Raises:
        ValueError: If nothing usable is left, or the name is ``.`` or ``..``
    """
    component = (name or "").replace('/', '_').replace('\\', '_').strip()
    if component in ('', '.', '..'):
        raise ValueError(f"Cannot export under file name {name!r}")
    return component


def export_secret(client: PlatformAPIClient, secret: SecretRecord,
                  base_directory: Union[str, Path]) -> Optional[Path]:
    """
    Write a retrieved secret to disk.

    Text secrets go to ``<name>.txt`` and are skipped if that file exists.
    File secrets keep their file name; on a collision a random 8-character
    suffix is added before the extension.

    Returns:
        Path written, or None when a Text export was skipped

    Raises:
        SecretStateError: If the secret has not been retrieved
    """
    client.ensure_connected()
    if secret.content_state != ContentState.RETRIEVED:
        raise SecretStateError(
            f"Secret {secret.name} ({secret.id}) must be retrieved before export "
            f"(state: {secret.content_state.value})"
        )

    directory = file_utils.ensure_dir(secret_directory(base_directory, secret))

    if secret.type == SecretType.TEXT:
        target = directory / f"{export_file_name(secret.name)}.txt"
        if file_utils.file_exists(target):
            logger.info(f"Skipping export of {secret.name}: {target} already exists")
            return None
        file_utils.write_file(target, secret.text_content or "")
    else:
        target = file_utils.unique_file_path(directory / export_file_name(secret.file_name or secret.name))
        content = client.download(secret.file_download_handle)
        file_utils.write_file(target, content)

    secret.content_state = ContentState.EXPORTED
    logger.info(f"Exported secret {secret.name} to {target}")
    return target
