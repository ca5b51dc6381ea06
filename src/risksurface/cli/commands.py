"""CLI commands: project catalogue, analysis, section report."""

from __future__ import annotations

import argparse
import asyncio
from typing import Any

from risksurface import observability
from risksurface.cli._helpers import _config, _out
from risksurface.client import open_client
from risksurface.context import ProjectContextValidator
from risksurface.coordinator import ProjectSelectionCoordinator
from risksurface.errors import ServerRejection, TransportError
from risksurface.polling import wait_for_analysis
from risksurface.sections import SectionBoard, default_sections


def cmd_projects(args: argparse.Namespace) -> int:
    async def run() -> dict[str, Any]:
        async with open_client(_config(args)) as client:
            result = await client.list_projects()
        if not result.ok:
            return {"error": result.error}
        return {"projects": [p.to_dict() for p in result.data]}

    return _out(asyncio.run(run()))


def cmd_analyze(args: argparse.Namespace) -> int:
    async def run() -> dict[str, Any]:
        async with open_client(_config(args)) as client:
            try:
                await client.trigger_analysis(args.project)
            except ServerRejection as e:
                return {"error": f"rejected: {e}"}
            except TransportError as e:
                return {"error": str(e)}
            outcome = await wait_for_analysis(client, args.project)
        return {"project": args.project, "analysis": outcome.to_dict()}

    return _out(asyncio.run(run()))


def cmd_report(args: argparse.Namespace) -> int:
    async def run() -> dict[str, Any]:
        config = _config(args)
        async with open_client(config) as client:
            catalogue = await client.list_projects()
            coordinator = ProjectSelectionCoordinator(client, sections=())
            if catalogue.ok:
                coordinator.update_catalogue(catalogue.data)

            all_sections = default_sections()
            chosen = args.section or list(all_sections)
            board = SectionBoard(
                coordinator,
                client.fetcher,
                ProjectContextValidator(config),
                sections={name: all_sections[name] for name in chosen},
            )
            outcome = await board.select(args.project, analyze=not args.no_analyze)

        data: dict[str, Any] = {
            "selection": outcome.to_dict(),
            "sections": board.report(),
            "partial": board.failed_sections(),
        }
        if args.with_metrics:
            if args.metrics_format == "prometheus":
                data["metrics"] = observability.generate_metrics()
            else:
                data["metrics"] = observability.snapshot()
        return data

    try:
        return _out(asyncio.run(run()))
    except ValueError as e:
        return _out({"error": str(e)})
