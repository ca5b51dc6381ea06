"""CLI for risksurface.

Commands:
  risksurface projects
  risksurface analyze OWNER/NAME
  risksurface report OWNER/NAME [--section NAME ...] [--no-analyze]
                     [--with-metrics [--metrics-format json|prometheus]]
"""

from __future__ import annotations

import sys

from risksurface.cli._helpers import _out  # noqa: F401
from risksurface.cli._parser import build_parser
from risksurface.cli.commands import cmd_analyze, cmd_projects, cmd_report
from risksurface.config import ClientConfig
from risksurface.observability import setup_logging

_DISPATCH = {
    "projects": cmd_projects,
    "analyze": cmd_analyze,
    "report": cmd_report,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv if argv is not None else sys.argv[1:])

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.log_level or ClientConfig().log_level)
    return _DISPATCH[args.command](args)
