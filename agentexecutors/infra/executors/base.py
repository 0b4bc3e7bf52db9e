"""Coding agent executor protocol and helpers shared by the CLI drivers."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Protocol, runtime_checkable

from agentexecutors.infra.approvals import ExecutorApprovalService
from agentexecutors.infra.msg_store import MsgStore
from agentexecutors.infra.subprocess_mgr import SpawnedChild, SubprocessManager
from agentexecutors.models.agent import (
    AvailabilityInfo,
    BaseAgentCapability,
    CommandSpec,
    ExecutionEnv,
)
from agentexecutors.models.command import CmdOverrides
from agentexecutors.models.log_entry import NormalizedEntry

logger = logging.getLogger(__name__)

CONTEXT7_URL = "https://mcp.context7.com/mcp"

LineParser = Callable[[str, Path], tuple[NormalizedEntry | None, str | None]]


@runtime_checkable
class CodingAgentExecutor(Protocol):
    """Protocol every coding agent CLI driver satisfies.

    ``spawn`` returns once the process exists; output is consumed by the
    caller and later normalized through ``normalize_logs``.
    """

    def capabilities(self) -> list[BaseAgentCapability]:
        ...

    def use_approvals(self, approvals: ExecutorApprovalService) -> None:
        ...

    async def spawn(
        self, current_dir: Path, prompt: str, env: ExecutionEnv
    ) -> SpawnedChild:
        ...

    async def spawn_follow_up(
        self, current_dir: Path, prompt: str, session_id: str, env: ExecutionEnv
    ) -> SpawnedChild:
        ...

    def normalize_logs(self, msg_store: MsgStore, worktree_path: Path) -> None:
        ...

    def default_mcp_config_path(self) -> Path | None:
        ...

    def get_availability_info(self) -> AvailabilityInfo:
        ...

    def preconfigured_mcp(self) -> dict:
        ...


def home_dir() -> Path | None:
    """Return the user's home directory, or None if it cannot be resolved."""
    try:
        return Path.home()
    except RuntimeError:
        return None


def xdg_config_home() -> Path | None:
    if config := os.environ.get("XDG_CONFIG_HOME"):
        return Path(config)
    home = home_dir()
    return home / ".config" if home else None


def probe_availability(auth_file: Path | None, install_dir: Path | None) -> AvailabilityInfo:
    """Report login from ``auth_file`` mtime, else installation from ``install_dir``."""
    if auth_file is not None:
        try:
            mtime = auth_file.stat().st_mtime
        except OSError:
            pass
        else:
            return AvailabilityInfo.login_detected(int(mtime))

    if install_dir is not None and install_dir.exists():
        return AvailabilityInfo.installation_found()
    return AvailabilityInfo.not_found()


async def spawn_command(
    manager: SubprocessManager,
    spec: CommandSpec,
    cmd: CmdOverrides,
    env: ExecutionEnv,
) -> SpawnedChild:
    """Apply profile overrides and the run environment, then spawn."""
    spec = cmd.apply(spec)
    run_env = env.merged_with(spec.env)
    spec = CommandSpec(
        program=spec.program,
        args=spec.args,
        env=run_env.vars or None,
        cwd=spec.cwd,
    )
    logger.debug("Agent command: %s", spec.full_command)
    return await manager.spawn(spec)


def relativize(text: str, worktree_path: Path) -> str:
    """Strip the worktree prefix from absolute paths in ``text``."""
    prefix = str(worktree_path).rstrip("/") + "/"
    return text.replace(prefix, "")


def parse_json_line(line: str) -> dict | None:
    try:
        data = json.loads(line)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def normalize_stdout(msg_store: MsgStore, worktree_path: Path, parse_line: LineParser) -> None:
    """Run ``parse_line`` over new stdout lines and push the results back."""
    for line in msg_store.take_unnormalized_stdout():
        entry, session_id = parse_line(line, worktree_path)
        if session_id:
            msg_store.push_session_id(session_id)
        if entry is not None:
            msg_store.push_normalized(entry)
