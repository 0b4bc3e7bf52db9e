"""CLI handlers for agent commands."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import click

from agentexecutors.config import load_config
from agentexecutors.infra.approvals import AutoApprovalService
from agentexecutors.infra.executors.errors import ExecutorError
from agentexecutors.infra.executors.jbai import Jbai
from agentexecutors.infra.msg_store import MsgStore
from agentexecutors.infra.profiles import ExecutorConfigs
from agentexecutors.infra.subprocess_mgr import SpawnedChild, pipe_output
from agentexecutors.models.agent import ExecutionEnv
from agentexecutors.models.jbai_models import get_jbai_model_options
from agentexecutors.models.profile import ExecutorProfileId
from agentexecutors.models.request import (
    CodingAgentFollowUpRequest,
    CodingAgentInitialRequest,
)
from agentexecutors.services.execution_service import ExecutionService


def _run(coro):
    return asyncio.run(coro)


def _parse_profile(value: str) -> ExecutorProfileId:
    try:
        return ExecutorProfileId.parse(value)
    except ValueError as e:
        raise click.BadParameter(f"Unknown executor: {value}") from e


def _parse_env(pairs: tuple[str, ...]) -> ExecutionEnv:
    env: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep:
            raise click.BadParameter(f"Expected KEY=VALUE, got: {pair}")
        env[key] = value
    return ExecutionEnv(vars=env)


def _base_dir(base_dir: str | None) -> Path:
    if base_dir:
        return Path(base_dir).resolve()
    return load_config().resolved_workspace_root.resolve()


def _resolve_or_exit(profile: ExecutorProfileId):
    agent = ExecutorConfigs.get_cached().get_coding_agent(profile)
    if agent is None:
        click.echo(f"Unknown executor type: {profile}", err=True)
        sys.exit(1)
    return agent


async def _report(child: SpawnedChild, agent, worktree: Path) -> int:
    """Wait for the child, then print its normalized output."""
    store = MsgStore()
    code = await pipe_output(child, store)
    agent.normalize_logs(store, worktree)

    for entry in store.normalized_entries():
        label = entry.entry_type.value
        if entry.tool_name:
            label = f"{label}:{entry.tool_name}"
        click.echo(f"[{label}] {entry.content}")
    for line in store.stderr_lines():
        click.echo(line, err=True)
    if store.session_id:
        click.echo(f"Session: {store.session_id}")
    return code


_common_options = [
    click.option("--profile", "-p", default="", help="Executor profile, e.g. JBAI or JBAI:CODEX"),
    click.option("--model", "-m", default=None, help="Model override (JB AI profiles only)"),
    click.option("--working-dir", "-w", default=None, help="Directory relative to --cwd"),
    click.option("--cwd", "base_dir", default=None, type=click.Path(file_okay=False),
                 help="Base directory for the run (default: configured workspace root)"),
    click.option("--env", "-e", "env_pairs", multiple=True, help="Extra KEY=VALUE for the agent"),
]


def _with_common_options(func):
    for option in reversed(_common_options):
        func = option(func)
    return func


@click.group("agent")
def agent_group():
    """Run and inspect coding agents."""
    pass


@agent_group.command("run")
@click.argument("prompt")
@_with_common_options
def agent_run(prompt: str, profile: str, model: str | None, working_dir: str | None,
              base_dir: str | None, env_pairs: tuple[str, ...]):
    """Start a coding agent on PROMPT."""
    profile_id = _parse_profile(profile or load_config().default_profile)
    request = CodingAgentInitialRequest(
        prompt=prompt,
        executor_profile_id=profile_id,
        model_override=model,
        working_dir=working_dir,
    )
    env = _parse_env(env_pairs)

    async def _start() -> int:
        service = ExecutionService(AutoApprovalService())
        base = _base_dir(base_dir)
        try:
            child = await service.spawn_initial(request, base, env)
        except ExecutorError as e:
            click.echo(f"Error: {e}", err=True)
            return 1
        return await _report(child, service.resolve_agent(request), request.effective_dir(base))

    sys.exit(_run(_start()))


@agent_group.command("follow-up")
@click.argument("prompt")
@click.option("--session-id", "-s", required=True, help="Session id reported by the agent")
@_with_common_options
def agent_follow_up(prompt: str, session_id: str, profile: str, model: str | None,
                    working_dir: str | None, base_dir: str | None, env_pairs: tuple[str, ...]):
    """Continue an agent session with PROMPT."""
    request = CodingAgentFollowUpRequest(
        prompt=prompt,
        session_id=session_id,
        executor_profile_id=_parse_profile(profile or load_config().default_profile),
        model_override=model,
        working_dir=working_dir,
    )
    env = _parse_env(env_pairs)

    async def _follow_up() -> int:
        service = ExecutionService(AutoApprovalService())
        base = _base_dir(base_dir)
        try:
            child = await service.spawn_follow_up(request, base, env)
        except ExecutorError as e:
            click.echo(f"Error: {e}", err=True)
            return 1
        return await _report(child, service.resolve_agent(request), request.effective_dir(base))

    sys.exit(_run(_follow_up()))


@agent_group.command("availability")
@click.option("--profile", "-p", required=True, help="Executor profile")
def agent_availability(profile: str):
    """Show whether an agent appears installed and logged in."""
    agent = _resolve_or_exit(_parse_profile(profile))
    info = agent.get_availability_info()
    click.echo(f"{profile}: {info.kind.value}")
    if info.last_auth_timestamp is not None:
        click.echo(f"  Last auth: {info.last_auth_timestamp}")
    path = agent.default_mcp_config_path()
    click.echo(f"  MCP config: {path or 'unknown'}")


@agent_group.command("mcp-config")
@click.option("--profile", "-p", required=True, help="JB AI executor profile")
def agent_mcp_config(profile: str):
    """Print the MCP config merge instruction as JSON."""
    agent = _resolve_or_exit(_parse_profile(profile))
    if not isinstance(agent, Jbai):
        click.echo(f"MCP config fragments are only built for JBAI profiles, not {profile}", err=True)
        sys.exit(1)
    doc = agent.get_mcp_config().to_doc()
    doc["path"] = str(agent.default_mcp_config_path() or "")
    click.echo(json.dumps(doc, indent=2))


@agent_group.command("models")
@click.argument("client")
def agent_models(client: str):
    """List known models for a JB AI CLIENT (claude, codex, gemini, opencode)."""
    models = get_jbai_model_options(client)
    if not models:
        click.echo(f"No known models for client: {client}", err=True)
        return
    for name in models:
        click.echo(f"  {name}")


@agent_group.command("profiles")
def agent_profiles():
    """List configured executor profiles."""
    for profile_id in ExecutorConfigs.get_cached().list_profiles():
        click.echo(f"  {profile_id}")
