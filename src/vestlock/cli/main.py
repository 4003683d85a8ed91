"""
Main CLI entry point for vestlock.
"""

from __future__ import annotations

import logging
import sys

import click

from vestlock import __version__
from vestlock.cli.locking_commands import locking
from vestlock.core.config import ConfigurationError, LockingConfig
from vestlock.core.logging_config import setup_logging

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(__version__, prog_name="vestlock")
@click.option("--json", "json_output", is_flag=True, help="Emit machine-readable JSON")
@click.option("--log-level", default=None, help="Override VESTLOCK_LOG_LEVEL")
@click.pass_context
def cli(ctx: click.Context, json_output: bool, log_level: str | None):
    """vestlock - token locking schedules and simulations."""
    try:
        config = LockingConfig.from_env()
    except ConfigurationError as exc:
        raise click.ClickException(str(exc))

    setup_logging(
        name="vestlock",
        log_file=config.log_file,
        level=log_level or config.log_level,
        environment=config.environment,
    )
    ctx.ensure_object(dict)
    ctx.obj["json_output"] = json_output
    ctx.obj["config"] = config


cli.add_command(locking)


def main():
    """Console script entry point."""
    return cli(obj={})


if __name__ == "__main__":
    sys.exit(main() or 0)
