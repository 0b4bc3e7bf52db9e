"""Click CLI definitions - main entry point."""

from __future__ import annotations

import logging
import sys

import click

from agentexecutors.commands.agent_cmd import agent_group
from agentexecutors.commands.config_cmd import config_group
from agentexecutors.config import load_config


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, debug: bool) -> None:
    """agentexecutors - Launch and resume coding agent CLIs."""
    level = logging.DEBUG if debug else load_config().logging.level
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


cli.add_command(agent_group, "agent")
cli.add_command(config_group, "config")


if __name__ == "__main__":
    cli()
