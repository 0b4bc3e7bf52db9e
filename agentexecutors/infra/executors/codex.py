"""Codex CLI executor."""

from __future__ import annotations

import logging
import os
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


def codex_home() -> Path | None:
    """Codex's state directory: ``$CODEX_HOME`` or ``~/.codex``."""
    if override := os.environ.get("CODEX_HOME"):
        return Path(override)
    home = home_dir()
    return home / ".codex" if home else None


@dataclass
class Codex:
    """Executor for the Codex CLI in non-interactive ``exec`` mode.

    Generates commands like:
        codex exec --json [--model M] [--sandbox MODE] PROMPT
        codex exec --json ... resume SESSION PROMPT
    """

    append_prompt: AppendPrompt = field(default_factory=AppendPrompt)
    model: str | None = None
    sandbox: str | None = None
    cmd: CmdOverrides = field(default_factory=CmdOverrides)
    approvals: ExecutorApprovalService | None = field(
        default=None, init=False, repr=False, compare=False
    )

    @classmethod
    def new_with_overrides(
        cls, append_prompt: AppendPrompt, model: str | None, cmd: CmdOverrides
    ) -> Codex:
        return cls(append_prompt=append_prompt, model=model, cmd=cmd)

    def capabilities(self) -> list[BaseAgentCapability]:
        return [BaseAgentCapability.SESSION_FORK, BaseAgentCapability.SETUP_HELPER]

    def use_approvals(self, approvals: ExecutorApprovalService) -> None:
        self.approvals = approvals

    def _command(self, current_dir: Path, prompt: str, session_id: str | None) -> CommandSpec:
        args: list[str] = ["exec", "--json", "--skip-git-repo-check"]
        if self.model:
            args.extend(["--model", self.model])
        if self.sandbox:
            args.extend(["--sandbox", self.sandbox])
        if session_id:
            args.extend(["resume", session_id])
        args.append(self.append_prompt.combine_prompt(prompt))
        return CommandSpec(program="codex", args=tuple(args), cwd=str(current_dir))

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
        normalize_stdout(msg_store, worktree_path, parse_codex_line)

    def default_mcp_config_path(self) -> Path | None:
        home = codex_home()
        return home / "config.toml" if home else None

    def get_availability_info(self) -> AvailabilityInfo:
        home = codex_home()
        if home is None:
            return AvailabilityInfo.not_found()
        return probe_availability(home / "auth.json", home)

    def preconfigured_mcp(self) -> dict:
        return {"context7": {"url": CONTEXT7_URL}}

    def to_doc(self) -> dict:
        return {
            "append_prompt": self.append_prompt.text,
            "model": self.model,
            "sandbox": self.sandbox,
            **self.cmd.to_doc(),
        }

    @classmethod
    def from_doc(cls, doc: dict) -> Codex:
        return cls(
            append_prompt=AppendPrompt(doc.get("append_prompt")),
            model=doc.get("model"),
            sandbox=doc.get("sandbox"),
            cmd=CmdOverrides.from_doc(doc),
        )


def parse_codex_line(
    line: str, worktree_path: Path
) -> tuple[NormalizedEntry | None, str | None]:
    """Normalize one line of ``codex exec --json`` output."""
    data = parse_json_line(line)
    if data is None:
        return NormalizedEntry(NormalizedEntryType.SYSTEM_MESSAGE, line), None

    event_type = data.get("type")
    if event_type == "thread.started":
        return None, data.get("thread_id")

    if event_type in ("error", "turn.failed"):
        error = data.get("error")
        if isinstance(error, dict):
            error = error.get("message", "")
        message = data.get("message") or str(error or "")
        return NormalizedEntry(NormalizedEntryType.ERROR_MESSAGE, message), None

    if event_type != "item.completed":
        return None, None

    item = data.get("item", {})
    item_type = item.get("type")
    if item_type == "agent_message":
        return NormalizedEntry(
            NormalizedEntryType.ASSISTANT_MESSAGE,
            relativize(item.get("text", ""), worktree_path),
        ), None
    if item_type == "reasoning":
        return NormalizedEntry(NormalizedEntryType.THINKING, item.get("text", "")), None
    if item_type == "command_execution":
        return NormalizedEntry(
            NormalizedEntryType.TOOL_USE,
            relativize(item.get("command", ""), worktree_path),
            tool_name="shell",
            metadata={"exit_code": item.get("exit_code")},
        ), None
    if item_type == "file_change":
        paths = [relativize(c.get("path", ""), worktree_path) for c in item.get("changes", [])]
        return NormalizedEntry(
            NormalizedEntryType.TOOL_USE, ", ".join(paths), tool_name="edit"
        ), None
    return None, None
