"""
Bulk operation execution functions.

This module drives the toolkit's bulk operations: exporting secrets to
disk, producing migration records, building the SetBank snapshot and
reporting metrics. Each item is processed in isolation: a failure is
logged, recorded in the OperationSummary and the run moves on.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..core import queries
from ..core.factory import DomainObjectFactory
from ..core.metrics import MetricsAggregator
from ..core.migration import CredentialMigrationMapper
from ..core.models import MigratedCredentialRecord, SetKind
from ..core.secret_content import export_secret, retrieve_secret
from ..core.sets import DEFAULT_SETBANK_WORKERS, SetBank
from ..shared.api_client import PlatformAPIClient
from ..shared.exceptions import PlatformError
from ..shared.file_utils import get_output_directory, get_output_file_path
from .utils import OperationSummary, create_progress_bar

SETBANK_FILENAME = "setbank.json"
MIGRATION_FILENAME = "migration-records.json"
METRICS_FILENAME = "metrics.json"


def execute_secret_export(client: PlatformAPIClient, logger: logging.Logger, output_dir: Optional[str] = None,
                          name_filter: Optional[str] = None, quiet_mode: bool = False,
                          verbose_mode: bool = False) -> OperationSummary:
    """Retrieve and export every secret matching the filter.

    Args:
        client: Connected API client
        logger: Logger instance
        output_dir: Base export directory (defaults to the global output directory)
        name_filter: Optional LIKE filter on secret names
        quiet_mode: Suppress console output
        verbose_mode: Print per-secret progress instead of a progress bar

    Returns:
        OperationSummary of the run
    """
    client.ensure_connected()
    summary = OperationSummary("Secret export")
    base_directory = Path(output_dir) if output_dir else get_output_directory("secrets")
    factory = DomainObjectFactory(client, logger=logger)

    rows = client.query_rows(_secret_query(name_filter))
    logger.info(f"Exporting {len(rows)} secrets to {base_directory}")
    progress_bar = create_progress_bar(total=len(rows), desc="Exporting secrets", unit="secrets",
                                       disable=quiet_mode or verbose_mode)

    for row in rows:
        label = f"{row.get('SecretName')} ({row.get('ID')})"
        progress_bar.set_postfix(secret=row.get('SecretName'))
        try:
            secret = factory.secret_from_row(row)
            retrieve_secret(client, secret)
            target = export_secret(client, secret, base_directory)
            if target is None:
                summary.skipped += 1
            else:
                summary.successful += 1
            if verbose_mode:
                print(f"✅ {label} -> {target or 'skipped (already exported)'}")
        except (PlatformError, ValueError, KeyError, OSError) as e:
            logger.error(f"Failed to export secret {label}: {e}")
            summary.record_failure(label, e)
            if not quiet_mode:
                print(f"❌ Failed to export secret {label}: {e}")
        progress_bar.update(1)

    progress_bar.close()
    logger.info(summary.describe())
    return summary


def _secret_query(name_filter: Optional[str]) -> str:
    conditions = [queries.like('DataVault.SecretName', name_filter)] if name_filter else []
    return queries.build_query(queries.SECRET_QUERY, conditions)


def execute_setbank_build(client: PlatformAPIClient, logger: logging.Logger, output_file: Optional[str] = None,
                          max_workers: int = DEFAULT_SETBANK_WORKERS, quiet_mode: bool = False) -> Tuple[SetBank, Path]:
    """Build the SetBank for all manual sets and save the snapshot.

    Raises:
        SetBankBuildError: If any set's members could not be fetched
    """
    client.ensure_connected()
    factory = DomainObjectFactory(client, logger=logger)
    sets = factory.get_sets(set_kind=SetKind.MANUAL, resolve_members=False)

    progress_bar = create_progress_bar(total=len(sets), desc="Building SetBank", unit="sets", disable=quiet_mode)
    try:
        bank = SetBank.build(factory.set_resolver, sets, max_workers=max_workers,
                             on_progress=lambda _set_id: progress_bar.update(1), logger=logger)
    finally:
        progress_bar.close()

    output_path = get_output_file_path(SETBANK_FILENAME, custom_output_file=output_file, category="setbank")
    bank.save(output_path)
    logger.info(f"Saved SetBank with {len(bank)} sets to {output_path}")
    return bank, output_path


def execute_migration_export(client: PlatformAPIClient, logger: logging.Logger, output_file: Optional[str] = None,
                             setbank_file: Optional[str] = None, include_secrets: bool = True,
                             quiet_mode: bool = False) -> Tuple[OperationSummary, Path]:
    """Build migration records for every account (and optionally secret) and write them as JSON.

    Passwords are never written; records carry permissions and memberships only.
    """
    client.ensure_connected()
    summary = OperationSummary("Migration export")
    factory = DomainObjectFactory(client, logger=logger)

    set_bank = SetBank.load(setbank_file) if setbank_file else None
    candidate_sets = factory.get_sets(set_kind=SetKind.MANUAL, resolve_members=False)
    mapper = CredentialMigrationMapper(factory.access_resolver, factory.set_resolver,
                                       candidate_sets=candidate_sets, set_bank=set_bank, logger=logger)

    account_rows = client.query_rows(queries.ACCOUNT_QUERY)
    secret_rows = client.query_rows(queries.SECRET_QUERY) if include_secrets else []

    records: List[MigratedCredentialRecord] = []
    progress_bar = create_progress_bar(total=len(account_rows) + len(secret_rows),
                                       desc="Mapping credentials", unit="items", disable=quiet_mode)
    for row in account_rows:
        label = f"account {row.get('Name')}\\{row.get('User')} ({row.get('ID')})"
        try:
            records.append(mapper.from_account(factory.account_from_row(row)))
            summary.successful += 1
        except (PlatformError, ValueError, KeyError) as e:
            logger.error(f"Failed to map {label}: {e}")
            summary.record_failure(label, e)
        progress_bar.update(1)
    for row in secret_rows:
        label = f"secret {row.get('SecretName')} ({row.get('ID')})"
        try:
            records.append(mapper.from_secret(factory.secret_from_row(row)))
            summary.successful += 1
        except (PlatformError, ValueError, KeyError) as e:
            logger.error(f"Failed to map {label}: {e}")
            summary.record_failure(label, e)
        progress_bar.update(1)
    progress_bar.close()

    output_path = get_output_file_path(MIGRATION_FILENAME, custom_output_file=output_file, category="migration")
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump([r.to_dict() for r in records], f, indent=2, ensure_ascii=False)

    conflicts = sum(1 for r in records if r.has_conflicts)
    logger.info(f"{summary.describe()}; {conflicts} records with set conflicts written to {output_path}")
    return summary, output_path


def execute_metrics_report(client: PlatformAPIClient, logger: logging.Logger,
                           output_file: Optional[str] = None) -> Tuple[Dict[str, Any], Path]:
    """Fetch secrets, accounts, sets and systems and write their summary metrics."""
    client.ensure_connected()
    factory = DomainObjectFactory(client, logger=logger)
    aggregator = MetricsAggregator(
        secrets=factory.get_secrets(),
        accounts=factory.get_accounts(),
        sets=factory.get_sets(resolve_members=False),
        systems=factory.get_systems(),
    )
    report = aggregator.summary()
    output_path = get_output_file_path(METRICS_FILENAME, custom_output_file=output_file, category="metrics")
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(report, f, indent=2)
    logger.info(f"Metrics report written to {output_path}")
    return report, output_path
