"""Argparse parser definition for the risksurface CLI."""

from __future__ import annotations

import argparse

from risksurface.sections import default_sections


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="risksurface",
        description="Derived repository risk metrics from an analysis backend",
    )
    parser.add_argument("--api-base", help="Backend base URL (default: $RISKSURFACE_API_BASE)")
    parser.add_argument("--log-level", help="Log level (default: $RISKSURFACE_LOG_LEVEL or INFO)")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("projects", help="List discovered repositories and their analysis state")

    p = sub.add_parser("analyze", help="Trigger analysis and wait (bounded) until ready")
    p.add_argument("project", help="Repository as owner/name")

    p = sub.add_parser("report", help="Select a project and load its analysis sections")
    p.add_argument("project", help="Repository as owner/name")
    p.add_argument("--section", action="append", choices=sorted(default_sections()),
                   help="Section to load (repeatable; default: all)")
    p.add_argument("--no-analyze", action="store_true",
                   help="Do not trigger analysis for projects that are not ready")
    p.add_argument("--with-metrics", action="store_true", help="Include client fetch counters")
    p.add_argument("--metrics-format", choices=["json", "prometheus"], default="json",
                   help="Counter format for --with-metrics (default: json)")

    return parser
