#!/usr/bin/env python3
"""
Access-control test data seeding CLI.
Generates SQL insert scripts and seeds cards and users through the vendor API.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from acs_seed.application.provisioning import ProvisioningSettings
from acs_seed.application.services import ApplicationCoordinator
from acs_seed.config import SeedConfig
from acs_seed.domain.sqlgen import Dialect, GENERATORS
from acs_seed.exceptions import SeedAutomationError, ConfigurationError, format_error_message

SQL_ENTITIES = list(GENERATORS)

def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="acs-seed",
        description="Access-control test data seeding tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # SQL insert scripts
  python cli.py sql doors
  python cli.py sql all --count 500 --dialect mssql --output-dir ./sql

  # Cards through the vendor API (settings from .env)
  python cli.py cards
  python cli.py cards --provision-users --concurrency 5 --blacklist-count 3
        """
    )

    # Global options
    parser.add_argument(
        '--run-id',
        type=str,
        help='Specify a custom run ID (default: auto-generated)'
    )

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose output'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # SQL command
    sql_parser = subparsers.add_parser(
        'sql',
        help='Generate SQL bulk insert scripts'
    )
    sql_parser.add_argument(
        'entity',
        choices=SQL_ENTITIES + ['all'],
        help='Entity to generate'
    )
    sql_parser.add_argument(
        '--count',
        type=int,
        default=1000,
        help='Number of rows per entity (default: 1000)'
    )
    sql_parser.add_argument(
        '--dialect',
        choices=[d.value for d in Dialect],
        default=Dialect.MARIADB.value,
        help='Target database (default: mariadb)'
    )
    sql_parser.add_argument(
        '--output-dir',
        type=str,
        default='.',
        help='Directory for the generated .sql files (default: current directory)'
    )

    # Cards command
    cards_parser = subparsers.add_parser(
        'cards',
        help='Create cards through the vendor API'
    )
    cards_parser.add_argument(
        '--provision-users',
        action='store_true',
        help='Create one user per card and blacklist the first cards'
    )
    cards_parser.add_argument(
        '--concurrency',
        type=int,
        help='Maximum in-flight user creations (default: CONCURRENCY or 5)'
    )
    cards_parser.add_argument(
        '--blacklist-count',
        type=int,
        help='Number of created cards to blacklist (default: BLACKLIST_COUNT or 3)'
    )
    cards_parser.add_argument(
        '--batch-size',
        type=int,
        help='User ids served per next-user-id fetch (default: USER_ID_BATCH_SIZE or 5)'
    )

    return parser

def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        coordinator = ApplicationCoordinator(run_id=args.run_id)

        if args.command == 'sql':
            return handle_sql(coordinator, args)

        elif args.command == 'cards':
            return handle_cards(coordinator, args)

        else:
            print(f"Unknown command: {args.command}")
            return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 1
    except Exception as e:
        print(f"Error: {format_error_message(e)}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1

def handle_sql(coordinator: ApplicationCoordinator, args: argparse.Namespace) -> int:
    """Handle sql command."""
    if args.count < 1:
        print("--count must be at least 1")
        return 1

    entities = SQL_ENTITIES if args.entity == 'all' else [args.entity]
    report = coordinator.generate_sql(entities, args.count, Dialect(args.dialect), Path(args.output_dir))

    for path in report.written:
        print(f"Successfully wrote SQL to file {path}")
    for error in report.errors:
        print(f"  Error: {error}")

    return 0 if report.success else 1

def _settings_from_args(config: SeedConfig, args: argparse.Namespace) -> ProvisioningSettings:
    settings = ProvisioningSettings.from_config(config)
    if args.concurrency is not None:
        if args.concurrency < 1:
            raise ConfigurationError("--concurrency must be at least 1", "concurrency", args.concurrency)
        settings.concurrency = args.concurrency
    if args.blacklist_count is not None:
        if args.blacklist_count < 0:
            raise ConfigurationError("--blacklist-count must not be negative", "blacklist_count", args.blacklist_count)
        settings.blacklist_count = args.blacklist_count
    if args.batch_size is not None:
        if args.batch_size < 1:
            raise ConfigurationError("--batch-size must be at least 1", "batch_size", args.batch_size)
        settings.batch_limit = args.batch_size
    return settings

def handle_cards(coordinator: ApplicationCoordinator, args: argparse.Namespace) -> int:
    """Handle cards command. Partial per-card failures still exit 0."""
    try:
        config = SeedConfig.from_env()
        settings = _settings_from_args(config, args)
        report = coordinator.seed_cards(config, provision_users=args.provision_users, settings=settings)
    except SeedAutomationError as e:
        print(f"❌ {format_error_message(e)}")
        return 1

    print(f"✅ Created {len(report.cards)} cards")
    if args.verbose:
        for card in report.cards:
            print(f"  - {card.card_id} ({card.card_type.name}) id={card.id or '-'}")

    provisioning = report.provisioning
    if provisioning is not None:
        print(f"  Users created: {len(provisioning.created)}/{len(provisioning.outcomes)}")
        for outcome in provisioning.failed:
            print(f"  Error: card {outcome.card.card_id}: {outcome.error}")
        print(f"  Cards blacklisted: {len(provisioning.blacklisted)}")

    if report.warnings:
        print(f"⚠️  {len(report.warnings)} warning(s):")
        for warning in report.warnings:
            print(f"  Warning: {warning}")

    print(f"Log file: {coordinator.get_log_file()}")
    return 0

if __name__ == "__main__":
    sys.exit(main())
