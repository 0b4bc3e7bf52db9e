"""CLI handlers for config commands."""

from __future__ import annotations

import json
import shlex

import click

from agentexecutors.config import DEFAULT_CONFIG_PATH, init_config, load_config, tomllib
from agentexecutors.models.agent import BaseCodingAgent, JbaiClient
from agentexecutors.models.profile import ExecutorProfileId

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
BOOL_FIELDS = frozenset({"dangerously_skip_permissions", "yolo", "auto_approve"})


@click.group("config")
def config_group():
    """Manage configuration."""
    pass


@config_group.command("init")
def config_init():
    """Create default configuration file."""
    path = init_config()
    click.echo(f"Configuration created at: {path}")


@config_group.command("show")
def config_show():
    """Show current configuration."""
    config = load_config()
    click.echo(f"Config file: {config.config_path}")
    click.echo(f"  Workspace root: {config.workspace_root}")
    click.echo(f"  Default profile: {config.default_profile}")
    click.echo(f"  Log level: {config.logging.level}")

    click.echo("\n  Executors:")
    for kind, variants in config.executors.items():
        click.echo(f"    {kind}: {', '.join(variants) or '-'}")


def _parse_bool(key: str, value: str) -> bool:
    if value.lower() not in ("true", "false"):
        raise click.BadParameter(f"{key} expects true or false, got: {value}")
    return value.lower() == "true"


def _executor_value(kind: BaseCodingAgent, field: str, value: str):
    if field == "client":
        if kind != BaseCodingAgent.JBAI:
            raise click.BadParameter(f"'client' only applies to JBAI profiles, not {kind.value}")
        try:
            return JbaiClient(value.upper()).value
        except ValueError:
            choices = ", ".join(c.value for c in JbaiClient)
            raise click.BadParameter(f"Unknown JB AI client {value!r} (one of {choices})")
    if field in BOOL_FIELDS:
        return _parse_bool(field, value)
    if field == "additional_params":
        try:
            return shlex.split(value)
        except ValueError as e:
            raise click.BadParameter(f"Cannot split additional_params: {e}")
    if field == "env":
        try:
            env = json.loads(value)
        except json.JSONDecodeError:
            env = None
        if not isinstance(env, dict):
            raise click.BadParameter('env expects a JSON object, e.g. {"JBAI_TOKEN": "..."}')
        return {str(k): str(v) for k, v in env.items()}
    return value


def coerce_setting(key: str, value: str) -> tuple[list[str], object]:
    """Validate a dotted config key and convert ``value`` to its TOML type.

    Returns the normalized key path, with executor kind and variant
    uppercased the way the loader reads them.
    """
    parts = key.split(".")
    if parts == ["general", "default_profile"]:
        try:
            return parts, str(ExecutorProfileId.parse(value))
        except ValueError:
            raise click.BadParameter(f"Unknown executor profile: {value}")
    if parts == ["general", "workspace_root"]:
        return parts, value
    if parts == ["logging", "level"]:
        if value.upper() not in LOG_LEVELS:
            raise click.BadParameter(f"Unknown log level: {value}")
        return parts, value.upper()
    if len(parts) == 4 and parts[0] == "executors":
        try:
            kind = BaseCodingAgent(parts[1].upper())
        except ValueError:
            raise click.BadParameter(f"Unknown executor: {parts[1]}")
        path = ["executors", kind.value, parts[2].upper(), parts[3]]
        return path, _executor_value(kind, parts[3], value)
    raise click.BadParameter(f"Unknown config key: {key}")


@config_group.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key: str, value: str):
    """Set a configuration value.

    Modifies the TOML config file. Key uses dot notation, e.g.:
    general.default_profile, logging.level, executors.JBAI.DEFAULT.client
    """
    import tomli_w

    path = DEFAULT_CONFIG_PATH
    if not path.exists():
        click.echo("No config file found. Run 'agentexecutors config init' first.", err=True)
        return

    parts, coerced = coerce_setting(key, value)

    with open(path, "rb") as f:
        data = tomllib.load(f)

    target = data
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = coerced

    with open(path, "wb") as f:
        tomli_w.dump(data, f)

    click.echo(f"Set {'.'.join(parts)} = {coerced!r}")
