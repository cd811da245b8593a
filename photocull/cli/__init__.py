"""
CLI package for photocull.

Command-line interface for scanning a photo library, culling duplicates
into quarantine (or deleting them), and restoring from the history log.

Public API:
- main: Entry point for CLI execution
- CLIOrchestrator: CLI workflow orchestration class
- print_duplicate_report: Function to display grouping results
"""

from __future__ import annotations

from typing import Optional

from .orchestrator import CLIOrchestrator, setup_logging
from .arg_parser import create_parser, parse_arguments
from .reporting import print_duplicate_report
from .interactive import confirm_action


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Returns:
        Exit code (0 success, 1 error, 2 unrecorded cull)

    Examples:
        >>> exit_code = main(['scan', '/path/to/photos'])
        >>> sys.exit(exit_code)
    """
    orchestrator = CLIOrchestrator(argv)
    return orchestrator.run()


__all__ = [
    'main',
    'CLIOrchestrator',
    'setup_logging',
    'create_parser',
    'parse_arguments',
    'print_duplicate_report',
    'confirm_action',
]
