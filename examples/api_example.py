#!/usr/bin/env python3
"""
Example script demonstrating how to use the PAS Migration Toolkit as a library.

This script shows how to:
1. Create an API client
2. List secrets with their decoded permissions
3. Resolve the sets an account belongs to
4. Build a migration record for each account
"""

import json

from pas_migration_toolkit import (
    CredentialMigrationMapper,
    DomainObjectFactory,
    create_api_client,
    setup_logging,
)
from pas_migration_toolkit.core.models import SetKind
from pas_migration_toolkit.shared.exceptions import PlatformError


def main():
    """Example usage of the PAS Migration Toolkit."""

    logger = setup_logging(verbose=True, log_level="INFO")

    # Host and token can also be passed directly or read from the keyring
    client = create_api_client(env_file="tenant.env", logger=logger)

    try:
        if not client.test_connection():
            logger.error("Failed to connect to tenant")
            return

        factory = DomainObjectFactory(client, logger=logger)

        for secret in factory.get_secrets(name="backup"):
            print(f"{secret.parent_path}/{secret.name} ({secret.type.value})")
            for entry in secret.access_entries:
                print(f"  {entry.principal.type} {entry.principal.name}: {entry.permission.grant_string}")

        manual_sets = factory.get_sets(set_kind=SetKind.MANUAL, resolve_members=False)
        mapper = CredentialMigrationMapper(factory.access_resolver, factory.set_resolver,
                                           candidate_sets=manual_sets, logger=logger)

        for account in factory.get_accounts(username="svc_"):
            record = mapper.from_account(account)
            print(json.dumps(record.to_dict(), indent=2))
            if record.has_conflicts:
                names = ", ".join(s.name for s in record.member_of_sets)
                logger.warning(f"{account.display_name} is in several sets: {names}")

    except PlatformError as e:
        logger.error(f"Example failed: {e}")
    finally:
        client.close()


if __name__ == "__main__":
    main()
