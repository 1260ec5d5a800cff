"""
CLI main execution functions.

This module contains the click command group driving the bulk operations.
"""

import logging
import sys

import click

from ..core.sets import DEFAULT_SETBANK_WORKERS
from ..execution import (
    execute_metrics_report,
    execute_migration_export,
    execute_secret_export,
    execute_setbank_build,
)
from ..shared.api_client import create_api_client
from ..shared.exceptions import PlatformError
from ..shared.globals import load_global_output_directory, set_global_output_directory
from ..shared.logging import setup_logging

ENV_FILE_HELP = 'Path to environment file containing PAS_HOST and PAS_BEARER_TOKEN or PAS_SESSION_COOKIE'


def common_options(func):
    """Attach the options every tenant command shares."""
    func = click.option('--verbose', '-v', is_flag=True,
                        help='Enable verbose logging (overrides --log-level)')(func)
    func = click.option('--log-level', '-l',
                        type=click.Choice(['ERROR', 'WARNING', 'INFO', 'DEBUG'], case_sensitive=False),
                        default='ERROR', help='Set logging level (default: ERROR)')(func)
    func = click.option('--env-file', required=True,
                        type=click.Path(exists=True, file_okay=True, dir_okay=False, path_type=str),
                        help=ENV_FILE_HELP)(func)
    return func


def _connect(env_file, log_level, verbose):
    setup_logging(verbose=verbose, log_level=log_level)
    logger = logging.getLogger('pas_migration_toolkit')
    load_global_output_directory()
    try:
        client = create_api_client(env_file=env_file, logger=logger)
    except (ValueError, FileNotFoundError) as e:
        click.echo(f"❌ Configuration error: {e}", err=True)
        sys.exit(2)
    if client.get_log_file_path():
        setup_logging(verbose=verbose, log_level=log_level, log_file_path=client.get_log_file_path())
    return client, logger


def _report(summary):
    click.echo(summary.describe())
    for item, error in summary.errors:
        click.echo(f"  ❌ {item}: {error}", err=True)
    return 1 if summary.failed else 0


@click.group()
@click.version_option(version='1.0.0', prog_name='pas-migration-toolkit')
def cli():
    """
    PAS Migration Toolkit - export and migrate credentials from a Privileged Access Service tenant.

    Examples:

    \b
    pas-migration-toolkit export-secrets --env-file=tenant.env
    pas-migration-toolkit build-setbank --env-file=tenant.env --workers 12
    pas-migration-toolkit export-migration --env-file=tenant.env --setbank-file setbank.json
    """
    pass


@cli.command('export-secrets')
@common_options
@click.option('--output-dir', type=click.Path(file_okay=False, path_type=str), help='Base directory for exported secrets')
@click.option('--filter', 'name_filter', help='Only export secrets whose name contains this text')
@click.option('--quiet', '-q', is_flag=True, help='Suppress progress output')
def export_secrets(env_file, log_level, verbose, output_dir, name_filter, quiet):
    """Retrieve every secret and write it under its folder path."""
    client, logger = _connect(env_file, log_level, verbose)
    try:
        summary = execute_secret_export(client, logger, output_dir=output_dir, name_filter=name_filter,
                                        quiet_mode=quiet, verbose_mode=verbose)
    except PlatformError as e:
        click.echo(f"❌ Secret export failed: {e}", err=True)
        sys.exit(1)
    finally:
        client.close()
    sys.exit(_report(summary))


@cli.command('build-setbank')
@common_options
@click.option('--output-file', type=click.Path(dir_okay=False, path_type=str), help='SetBank snapshot path')
@click.option('--workers', type=click.IntRange(1, 64), default=DEFAULT_SETBANK_WORKERS, show_default=True,
              help='Number of parallel member fetches')
@click.option('--quiet', '-q', is_flag=True, help='Suppress progress output')
def build_setbank(env_file, log_level, verbose, output_file, workers, quiet):
    """Precompute manual set memberships and save them to a snapshot."""
    client, logger = _connect(env_file, log_level, verbose)
    try:
        bank, output_path = execute_setbank_build(client, logger, output_file=output_file,
                                                  max_workers=workers, quiet_mode=quiet)
    except PlatformError as e:
        click.echo(f"❌ SetBank build failed: {e}", err=True)
        sys.exit(1)
    finally:
        client.close()
    click.echo(f"✅ SetBank with {len(bank)} sets saved to {output_path}")


@cli.command('export-migration')
@common_options
@click.option('--output-file', type=click.Path(dir_okay=False, path_type=str), help='Migration JSON path')
@click.option('--setbank-file', type=click.Path(exists=True, dir_okay=False, path_type=str),
              help='SetBank snapshot to use instead of per-set membership checks')
@click.option('--no-secrets', is_flag=True, help='Only map accounts')
@click.option('--quiet', '-q', is_flag=True, help='Suppress progress output')
def export_migration(env_file, log_level, verbose, output_file, setbank_file, no_secrets, quiet):
    """Write migration records with resolved permissions for accounts and secrets."""
    client, logger = _connect(env_file, log_level, verbose)
    try:
        summary, output_path = execute_migration_export(client, logger, output_file=output_file,
                                                        setbank_file=setbank_file,
                                                        include_secrets=not no_secrets, quiet_mode=quiet)
    except (PlatformError, ValueError) as e:
        click.echo(f"❌ Migration export failed: {e}", err=True)
        sys.exit(1)
    finally:
        client.close()
    click.echo(f"Migration records written to {output_path}")
    sys.exit(_report(summary))


@cli.command('metrics')
@common_options
@click.option('--output-file', type=click.Path(dir_okay=False, path_type=str), help='Metrics JSON path')
def metrics(env_file, log_level, verbose, output_file):
    """Summarize secrets, accounts, sets and systems."""
    client, logger = _connect(env_file, log_level, verbose)
    try:
        _report_data, output_path = execute_metrics_report(client, logger, output_file=output_file)
    except PlatformError as e:
        click.echo(f"❌ Metrics report failed: {e}", err=True)
        sys.exit(1)
    finally:
        client.close()
    click.echo(f"✅ Metrics report written to {output_path}")


@cli.command('set-output-dir')
@click.argument('directory', type=click.Path(file_okay=False, path_type=str))
def set_output_dir(directory):
    """Persist the default output directory."""
    logger = logging.getLogger('pas_migration_toolkit')
    if not set_global_output_directory(directory, logger):
        click.echo(f"❌ Could not use {directory} as output directory", err=True)
        sys.exit(1)
    click.echo(f"✅ Output directory set to: {directory}")


def main():
    """Main CLI entry point."""
    return cli()


if __name__ == '__main__':
    sys.exit(main())
