#!/usr/bin/env python3
"""
vestlock Locking CLI Commands

- Project a vesting schedule (freed amounts and per-beneficiary shares)
- Deploy, fund and replay a scenario manifest against an in-memory ledger
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from vestlock.core.config import ConfigurationError, load_deployment
from vestlock.core.exceptions import LockingError
from vestlock.core.locking.deployment import deploy_locking_contract, run_scenario
from vestlock.core.locking.schedule import VestingCurve, VestingParameters

logger = logging.getLogger(__name__)
console = Console()


def _handle_cli_error(exc: Exception, exit_code: int = 1) -> None:
    """Centralized CLI error handler for consistent messaging/exit codes."""
    logger.error("CLI error: %s", exc, exc_info=True)
    console.print(f"[bold red]Error:[/] {exc}")
    sys.exit(exit_code)


def project_schedule(
    principal: int,
    params: VestingParameters,
    beneficiaries: int,
    points: int,
) -> list[dict[str, Any]]:
    """Sample the curve at evenly spaced timestamps from start to end."""
    curve = VestingCurve(params)
    timestamps = {params.start_time, params.cliff_end, params.end_time}
    points = max(points, 1)
    for i in range(points + 1):
        timestamps.add(params.start_time + params.locking_duration * i // points)
    if params.cliff_duration > 0:
        timestamps.add(params.cliff_end - 1)

    rows = []
    for ts in sorted(timestamps):
        freed = curve.freed_amount(principal, ts)
        rows.append({
            "timestamp": ts,
            "elapsed": ts - params.start_time,
            "phase": curve.phase_at(ts, funded=principal > 0).value,
            "freed": freed,
            "share": freed // beneficiaries,
            "dust": freed % beneficiaries,
        })
    return rows


@click.group()
def locking():
    """Token locking schedule and simulation commands."""
    pass


@locking.command("schedule")
@click.option("--principal", required=True, type=int, help="Locked principal in base units")
@click.option("--start", "start_time", default=0, type=int, help="Vesting start (Unix timestamp)")
@click.option("--duration", required=True, type=int, help="Locking duration in seconds")
@click.option("--cliff", default=0, type=int, help="Cliff duration in seconds")
@click.option("--beneficiaries", default=3, type=click.IntRange(min=1), help="Number of beneficiaries")
@click.option("--points", default=10, type=click.IntRange(min=1), help="Sample points across the duration")
@click.pass_context
def locking_schedule(
    ctx: click.Context,
    principal: int,
    start_time: int,
    duration: int,
    cliff: int,
    beneficiaries: int,
    points: int,
):
    """
    Project how much is freed over time.

    Example:
        vestlock locking schedule --principal 1000000 --duration 900 --cliff 500
    """
    try:
        params = VestingParameters(
            start_time=start_time,
            locking_duration=duration,
            cliff_duration=cliff,
        )
        rows = project_schedule(principal, params, beneficiaries, points)

        if ctx.obj.get("json_output"):
            click.echo(json.dumps(rows, indent=2))
            return

        table = Table(title="Vesting Projection", box=box.ROUNDED)
        table.add_column("Timestamp", justify="right")
        table.add_column("Elapsed", justify="right")
        table.add_column("Phase", style="cyan")
        table.add_column("Freed", justify="right", style="green")
        table.add_column("Per Beneficiary", justify="right")
        table.add_column("Dust", justify="right", style="dim")
        for row in rows:
            table.add_row(
                str(row["timestamp"]),
                str(row["elapsed"]),
                row["phase"],
                f"{row['freed']:,}",
                f"{row['share']:,}",
                str(row["dust"]),
            )
        console.print(table)
    except LockingError as exc:
        _handle_cli_error(exc)


@locking.command("simulate")
@click.argument("manifest", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def locking_simulate(ctx: click.Context, manifest: str):
    """
    Deploy, fund and replay a scenario manifest (YAML or JSON).

    Example:
        vestlock locking simulate deployments/three_beneficiaries.yaml
    """
    try:
        deployment = load_deployment(manifest)
        result = deploy_locking_contract(deployment)
        reports = run_scenario(result, deployment.steps)
        summary = result.summary()

        if ctx.obj.get("json_output"):
            click.echo(json.dumps({"steps": reports, "summary": summary}, indent=2, default=str))
            return

        steps_table = Table(title="Scenario Steps", box=box.ROUNDED)
        steps_table.add_column("#", justify="right")
        steps_table.add_column("Time", justify="right")
        steps_table.add_column("Action", style="cyan")
        steps_table.add_column("Result", justify="right")
        steps_table.add_column("Released", justify="right", style="green")
        steps_table.add_column("Withdrawn", justify="right", style="magenta")
        for report in reports:
            outcome = f"[red]{report['error']}[/]" if report["error"] else str(report["result"])
            steps_table.add_row(
                str(report["index"]),
                str(report["timestamp"]),
                report["action"],
                outcome,
                f"{report['released']:,}",
                f"{report['withdrawn']:,}",
            )
        console.print(steps_table)

        events_table = Table(title="Contract Events", box=box.SIMPLE)
        events_table.add_column("Time", justify="right")
        events_table.add_column("Event", style="cyan")
        events_table.add_column("Details")
        for event in summary["events"]:
            details = ", ".join(
                f"{key}={value}" for key, value in event.items() if key not in ("type", "timestamp")
            )
            events_table.add_row(str(event["timestamp"]), event["type"], details)
        console.print(events_table)

        contract_state = summary["contract"]
        table = Table(show_header=False, box=box.ROUNDED)
        table.add_row("[bold cyan]Contract", contract_state["address"])
        table.add_row("[bold cyan]Phase", summary["phase"])
        table.add_row("[bold green]Locked Principal", f"{contract_state['locked_principal']:,}")
        table.add_row("[bold green]Released", f"{contract_state['cumulative_released']:,}")
        table.add_row("[bold magenta]Withdrawn", f"{contract_state['cumulative_withdrawn']:,}")
        table.add_row("[bold yellow]Custody", f"{summary['custody_balance']:,}")
        table.add_row("[bold yellow]Withdrawable", f"{summary['withdrawable']:,}")
        for beneficiary, balance in summary["beneficiary_balances"].items():
            table.add_row(f"[dim]{beneficiary[:12]}...", f"{balance:,}")
        console.print(Panel(table, title="[bold green]Final State", border_style="green"))
    except (ConfigurationError, LockingError) as exc:
        _handle_cli_error(exc)
