"""
Argument parsing for the CLI interface.

Defines the scan / cull / history / restore subcommands. Options that fall
back to user configuration default to None here and are resolved by the
orchestrator, so command-line values always win over PHOTOCULL_* variables
and the config file.
"""

from __future__ import annotations

import argparse
from pathlib import Path

from ..config import DEFAULT_NEAR_THRESHOLD
from ..utils.exporters import EXPORT_FORMATS


def _restore_target(value: str):
    """argparse type for INDEX | last | all."""
    if value in ('last', 'all'):
        return value
    try:
        index = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a record index, 'last' or 'all', got {value!r}")
    if index < 0:
        raise argparse.ArgumentTypeError("record index must be >= 0")
    return index


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--history-file',
        type=Path,
        default=None,
        help='History log to append to / restore from. Default: ~/.photocull/history.jsonl'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Verbose output'
    )
    parser.add_argument(
        '--no-progress',
        action='store_true',
        help='Disable progress bars (useful for piping output)'
    )


def _add_scan_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        'directory',
        type=Path,
        help='Directory to scan for duplicate photos'
    )
    parser.add_argument(
        '-t', '--threshold',
        type=float,
        default=None,
        help=f'Near-duplicate threshold as normalized distance (0.0-1.0, lower=stricter). '
             f'Default: {DEFAULT_NEAR_THRESHOLD}'
    )
    parser.add_argument(
        '--exact-only',
        action='store_true',
        help='Only find exact duplicates (skip near-duplicate matching)'
    )
    parser.add_argument(
        '-r', '--no-recursive',
        action='store_true',
        help='Do not scan subdirectories'
    )
    parser.add_argument(
        '--max-depth',
        type=int,
        default=None,
        help='Maximum directory depth below the root (0 = root only)'
    )
    parser.add_argument(
        '--ext',
        nargs='+',
        metavar='EXT',
        default=None,
        help='Only scan these extensions (e.g. --ext .jpg .png)'
    )
    parser.add_argument(
        '--exclude',
        nargs='+',
        metavar='NAME',
        default=None,
        help='Also skip subdirectories with these names (added to the configured excluded_dirs, '
             'default: duplicates)'
    )
    parser.add_argument(
        '-w', '--workers',
        type=int,
        default=None,
        help='Number of parallel hashing workers. Default: CPU count'
    )
    parser.add_argument(
        '--no-cache',
        action='store_true',
        help='Disable the SQLite hash cache (hash every file fresh)'
    )
    parser.add_argument(
        '-e', '--export',
        type=Path,
        help='Export results to file'
    )
    parser.add_argument(
        '--export-format',
        choices=EXPORT_FORMATS,
        default='txt',
        help='Export format. Default: txt'
    )


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser with scan, cull, history and restore
        subcommands
    """
    parser = argparse.ArgumentParser(
        prog='photocull',
        description='Find, cull and restore duplicate photos',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s scan /path/to/photos
      Report exact and near duplicates (no changes)

  %(prog)s cull /path/to/photos --action move --quarantine ~/dupes
      Show what would be moved (dry run is the default)

  %(prog)s cull /path/to/photos --action move --quarantine ~/dupes --no-dry-run
      Move duplicates into quarantine and record them in the history log

  %(prog)s history
      List recorded culls

  %(prog)s restore last
      Move the most recent cull's files back to where they were
        """
    )

    subparsers = parser.add_subparsers(dest='command', metavar='COMMAND')
    subparsers.required = True

    scan_parser = subparsers.add_parser('scan', help='Scan a directory and report duplicates')
    _add_scan_options(scan_parser)
    _add_common_options(scan_parser)

    cull_parser = subparsers.add_parser('cull', help='Move or delete duplicates, keeping one per group')
    _add_scan_options(cull_parser)
    cull_parser.add_argument(
        '-a', '--action',
        choices=['move', 'delete'],
        required=True,
        help='What to do with culled files'
    )
    cull_parser.add_argument(
        '-q', '--quarantine',
        type=Path,
        default=None,
        help='Quarantine directory for --action move. Default: ~/.photocull/quarantine'
    )
    cull_parser.add_argument(
        '--preserve-structure',
        action='store_true',
        help='Mirror source folders inside the quarantine instead of flattening'
    )
    cull_parser.add_argument(
        '--no-dry-run',
        action='store_true',
        help='Actually perform the action (default is dry-run)'
    )
    cull_parser.add_argument(
        '-y', '--yes',
        action='store_true',
        help='Do not ask for confirmation'
    )
    _add_common_options(cull_parser)

    history_parser = subparsers.add_parser('history', help='List recorded culls')
    history_parser.add_argument(
        '-n', '--limit',
        type=int,
        default=None,
        help='Only show the most recent N records'
    )
    _add_common_options(history_parser)

    restore_parser = subparsers.add_parser('restore', help='Move quarantined files back')
    restore_parser.add_argument(
        'target',
        type=_restore_target,
        nargs='?',
        default='last',
        help="Record index, 'last' (default) or 'all'"
    )
    _add_common_options(restore_parser)

    return parser


def parse_arguments(argv=None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: List of argument strings (default: sys.argv)

    Examples:
        >>> args = parse_arguments(['scan', '/path/to/photos', '--threshold', '0.05'])
        >>> args.command, args.threshold
        ('scan', 0.05)
    """
    parser = create_parser()
    return parser.parse_args(argv)


__all__ = [
    'create_parser',
    'parse_arguments',
]
