"""OpenCode CLI executor."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from agentexecutors.infra.approvals import ExecutorApprovalService
from agentexecutors.infra.executors.base import (
    CONTEXT7_URL,
    home_dir,
    normalize_stdout,
    parse_json_line,
    probe_availability,
    relativize,
    spawn_command,
    xdg_config_home,
)
from agentexecutors.infra.msg_store import MsgStore
from agentexecutors.infra.subprocess_mgr import SpawnedChild, SubprocessManager
from agentexecutors.models.agent import (
    AppendPrompt,
    AvailabilityInfo,
    BaseAgentCapability,
    CommandSpec,
    ExecutionEnv,
)
from agentexecutors.models.command import CmdOverrides
from agentexecutors.models.log_entry import NormalizedEntry, NormalizedEntryType

logger = logging.getLogger(__name__)


def opencode_config_path() -> Path | None:
    config = xdg_config_home()
    return config / "opencode" / "opencode.json" if config else None


@dataclass
class Opencode:
    """Executor for the OpenCode CLI.

    Generates commands like:
        opencode run --format json [--model M] [--agent MODE] PROMPT
        opencode run ... --session SESSION PROMPT
    """

    append_prompt: AppendPrompt = field(default_factory=AppendPrompt)
    model: str | None = None
    mode: str | None = None
    auto_approve: bool = True
    cmd: CmdOverrides = field(default_factory=CmdOverrides)
    approvals: ExecutorApprovalService | None = field(
        default=None, init=False, repr=False, compare=False
    )

    def capabilities(self) -> list[BaseAgentCapability]:
        return [BaseAgentCapability.SESSION_FORK]

    def use_approvals(self, approvals: ExecutorApprovalService) -> None:
        self.approvals = approvals

    def _command(self, current_dir: Path, prompt: str, session_id: str | None) -> CommandSpec:
        args: list[str] = ["run", "--format", "json"]
        if self.model:
            args.extend(["--model", self.model])
        if self.mode:
            args.extend(["--agent", self.mode])
        if session_id:
            args.extend(["--session", session_id])
        args.append(self.append_prompt.combine_prompt(prompt))

        env = None
        if self.auto_approve:
            env = {"OPENCODE_PERMISSION": json.dumps({"edit": "allow", "bash": "allow"})}
        return CommandSpec(program="opencode", args=tuple(args), env=env, cwd=str(current_dir))

    async def spawn(
        self, current_dir: Path, prompt: str, env: ExecutionEnv
    ) -> SpawnedChild:
        spec = self._command(current_dir, prompt, None)
        return await spawn_command(SubprocessManager(), spec, self.cmd, env)

    async def spawn_follow_up(
        self, current_dir: Path, prompt: str, session_id: str, env: ExecutionEnv
    ) -> SpawnedChild:
        spec = self._command(current_dir, prompt, session_id)
        return await spawn_command(SubprocessManager(), spec, self.cmd, env)

    def normalize_logs(self, msg_store: MsgStore, worktree_path: Path) -> None:
        normalize_stdout(msg_store, worktree_path, parse_opencode_line)

    def default_mcp_config_path(self) -> Path | None:
        return opencode_config_path()

    def get_availability_info(self) -> AvailabilityInfo:
        home = home_dir()
        auth_file = home / ".local" / "share" / "opencode" / "auth.json" if home else None
        config_path = opencode_config_path()
        return probe_availability(auth_file, config_path.parent if config_path else None)

    def preconfigured_mcp(self) -> dict:
        return {"context7": {"type": "remote", "url": CONTEXT7_URL, "enabled": True}}

    def to_doc(self) -> dict:
        return {
            "append_prompt": self.append_prompt.text,
            "model": self.model,
            "mode": self.mode,
            "auto_approve": self.auto_approve,
            **self.cmd.to_doc(),
        }

    @classmethod
    def from_doc(cls, doc: dict) -> Opencode:
        return cls(
            append_prompt=AppendPrompt(doc.get("append_prompt")),
            model=doc.get("model"),
            mode=doc.get("mode"),
            auto_approve=doc.get("auto_approve", True),
            cmd=CmdOverrides.from_doc(doc),
        )


def parse_opencode_line(
    line: str, worktree_path: Path
) -> tuple[NormalizedEntry | None, str | None]:
    """Normalize one line of ``opencode run --format json`` output."""
    data = parse_json_line(line)
    if data is None:
        return NormalizedEntry(NormalizedEntryType.SYSTEM_MESSAGE, line), None

    session_id = data.get("sessionID")
    part = data.get("part", {})
    event_type = data.get("type")

    if event_type == "text":
        return NormalizedEntry(
            NormalizedEntryType.ASSISTANT_MESSAGE,
            relativize(part.get("text", ""), worktree_path),
        ), session_id

    if event_type == "tool_use":
        state = part.get("state", {})
        return NormalizedEntry(
            NormalizedEntryType.TOOL_USE,
            relativize(json.dumps(state.get("input", {})), worktree_path),
            tool_name=part.get("tool", ""),
        ), session_id

    if event_type == "error":
        error = data.get("error")
        if isinstance(error, dict):
            detail = error.get("data")
            message = detail.get("message") if isinstance(detail, dict) else None
            message = message or error.get("name", "")
        else:
            message = str(error or "")
        return NormalizedEntry(NormalizedEntryType.ERROR_MESSAGE, message), session_id

    return None, session_id
