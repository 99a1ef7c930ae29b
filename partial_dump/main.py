#!/usr/bin/env python3
"""
Partial Dump - CLI Entry Points
===============================
partial-dump dumps the rows of one table matching an SQL condition to
stdout, as a COPY block, INSERT or UPDATE statements.

partial-dump-manifest runs a manifest declared in a YAML file, writing one
.sql file per dump plus a master all.sql that restores them in order.
"""

import argparse
import logging
import os
import sys
from pathlib import Path

import yaml

from .config import ConfigLoader
from .connection import DatabaseConnection
from .dumper import get_partial_dump
from .errors import ConfigurationError
from .manifest import run_manifest
from .models import DumpOptions
from .utils import print_dry_run_info, setup_logging

EMPTY_RESULT_EXIT_CODE = 255

EXAMPLES = """\
The condition is everything after WHERE in the query, and may include
an ORDER BY clause.

examples:
  %(prog)s vehicles companyId=209
  %(prog)s day "date > '2015-01-01' AND vehicleId IN (
    SELECT id FROM vehicle WHERE companyId = 209
  )"
"""


def parse_substitution(pair: str) -> tuple[str, str]:
    """Parse a column=value substitution from the command line."""
    if '=' not in pair:
        raise argparse.ArgumentTypeError(
            f"invalid substitution '{pair}', should be of the form column=value"
        )
    column, value = pair.split('=', 1)
    return column.strip().lower(), value.strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Dump part of the data from a table as SQL on stdout.',
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('table', help='Table to dump from, may include a schema')
    parser.add_argument('condition', help='SQL condition selecting the rows to dump')

    dump_type = parser.add_mutually_exclusive_group()
    dump_type.add_argument(
        '--insert', dest='type', action='store_const', const='insert',
        help='Generate a single INSERT statement instead of a COPY statement'
    )
    dump_type.add_argument(
        '--inserts', dest='type', action='store_const', const='inserts',
        help='Generate one INSERT statement per row'
    )
    dump_type.add_argument(
        '--updates', dest='type', action='store_const', const='updates',
        help='UPDATE existing rows by id, rather than INSERT'
    )

    transaction = parser.add_mutually_exclusive_group()
    transaction.add_argument(
        '--transaction', dest='transaction', action='store_const', const='full',
        help='Wrap the dump in a transaction'
    )
    transaction.add_argument(
        '--begin-transaction', dest='transaction', action='store_const', const='begin',
        help='Generate a BEGIN but no COMMIT, for testing'
    )

    parser.add_argument(
        '--omit-id', action='store_true',
        help='Use database sequences for ids rather than declaring them'
    )
    parser.add_argument(
        '--omit-columns', nargs='+', metavar='COLUMN',
        help='Use default values for the given columns'
    )
    parser.add_argument(
        '--delete-first', action='store_true',
        help='Prepend a DELETE to the dump, for clear-and-restore behaviour'
    )
    parser.add_argument(
        '--columns', nargs='+', metavar='COLUMN',
        help='Dump only these columns (plus id)'
    )
    parser.add_argument(
        '--substitutions', nargs='+', metavar='COLUMN=VALUE', type=parse_substitution,
        help='Replace given columns with given values, e.g. companyId=1'
    )

    parser.add_argument('--db', required=True, help='Database to dump from')
    parser.add_argument('--host', help='Database server. Defaults to unix socket.')
    parser.add_argument(
        '--port', type=int, default=DatabaseConnection.DEFAULT_PORT,
        help=f'Database port (default: {DatabaseConnection.DEFAULT_PORT})'
    )
    parser.add_argument('--user', default=os.environ.get('USER'), help='Database user')
    parser.add_argument('--pass', dest='password', help='Database password')
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Print information to stderr'
    )
    return parser


def main(argv=None):
    """Dump part of a table to stdout."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging({'level': 'DEBUG' if args.verbose else 'WARNING'})

    # Conflicting options stop here, before connecting
    try:
        options = DumpOptions(
            type=args.type,
            omit_ids=args.omit_id,
            omit_columns=args.omit_columns,
            columns=args.columns,
            substitutions=dict(args.substitutions or []),
            delete_first=args.delete_first,
            transaction=args.transaction
        )
    except ConfigurationError as e:
        parser.error(str(e))

    try:
        with DatabaseConnection(
            database=args.db,
            host=args.host,
            port=args.port,
            user=args.user,
            password=args.password
        ) as conn:
            dump = get_partial_dump(conn, args.table, args.condition, options)
    except Exception as e:
        logging.error(f"Fatal error: {e}")
        sys.exit(1)

    if dump is None:
        print("Dump is empty!", file=sys.stderr)
        sys.exit(EMPTY_RESULT_EXIT_CODE)

    print(dump)


def manifest_main(argv=None):
    """Run a manifest declared in a YAML configuration file."""
    parser = argparse.ArgumentParser(
        description='Partial Dump - write a set of dumps and a master all.sql'
    )
    parser.add_argument(
        '-c', '--config',
        default='manifest.yaml',
        help='Path to configuration file (default: manifest.yaml)'
    )
    parser.add_argument(
        '-o', '--output',
        help='Directory for generated files (default: manifest directory setting, '
             'relative to the configuration file, else the configuration file directory)'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Show what would be dumped without connecting'
    )

    args = parser.parse_args(argv)

    # Load configuration
    try:
        config = ConfigLoader(args.config)
        manifest = config.get_manifest()
    except FileNotFoundError:
        print(f"Error: Configuration file '{args.config}' not found", file=sys.stderr)
        sys.exit(1)
    except yaml.YAMLError as e:
        print(f"Error: Invalid YAML in configuration file: {e}", file=sys.stderr)
        sys.exit(1)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    # Setup logging
    log_settings = config.get_logging_settings()
    if args.verbose:
        log_settings['level'] = 'DEBUG'
    setup_logging(log_settings)

    # Dry run mode
    if args.dry_run:
        logging.info("DRY RUN MODE - No data will be dumped")
        print_dry_run_info(manifest)
        sys.exit(0)

    # A relative manifest directory is taken relative to the configuration file
    config_dir = Path(args.config).resolve().parent
    directory = args.output or config_dir / (config.get_output_directory() or '')

    try:
        settings = config.get_connection_settings()
        with DatabaseConnection(
            database=settings['database'],
            host=settings.get('host'),
            port=settings.get('port', DatabaseConnection.DEFAULT_PORT),
            user=settings.get('user'),
            password=settings.get('password')
        ) as conn:
            stats = run_manifest(conn, manifest, directory, config.get_header())

        # Print summary
        logging.info("=" * 50)
        logging.info("MANIFEST COMPLETE")
        logging.info(f"Master file: {stats.master_path}")
        logging.info(f"Files: {len(stats.tables)}")
        logging.info(f"Total Rows: {stats.total_rows}")
        if stats.empty:
            logging.warning(f"No rows for: {', '.join(stats.empty)}")

    except Exception as e:
        logging.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
