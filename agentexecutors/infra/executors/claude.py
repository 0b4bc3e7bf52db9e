"""Claude Code CLI executor."""

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


@dataclass
class ClaudeCode:
    """Executor for the Claude Code CLI.

    Generates commands like:
        claude -p --verbose --output-format=stream-json [--model M] PROMPT
        claude -p ... --resume SESSION PROMPT
    """

    append_prompt: AppendPrompt = field(default_factory=AppendPrompt)
    model: str | None = None
    dangerously_skip_permissions: bool = True
    cmd: CmdOverrides = field(default_factory=CmdOverrides)
    approvals: ExecutorApprovalService | None = field(
        default=None, init=False, repr=False, compare=False
    )

    @classmethod
    def new_with_overrides(
        cls, append_prompt: AppendPrompt, model: str | None, cmd: CmdOverrides
    ) -> ClaudeCode:
        return cls(append_prompt=append_prompt, model=model, cmd=cmd)

    def capabilities(self) -> list[BaseAgentCapability]:
        return [BaseAgentCapability.SESSION_FORK]

    def use_approvals(self, approvals: ExecutorApprovalService) -> None:
        self.approvals = approvals

    def _command(self, current_dir: Path, prompt: str, session_id: str | None) -> CommandSpec:
        args: list[str] = ["-p", "--verbose", "--output-format=stream-json"]
        if self.dangerously_skip_permissions:
            args.extend(["--permission-mode", "bypassPermissions"])
        if self.model:
            args.extend(["--model", self.model])
        if session_id:
            args.extend(["--resume", session_id])
        args.append(self.append_prompt.combine_prompt(prompt))
        return CommandSpec(program="claude", args=tuple(args), cwd=str(current_dir))

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
        normalize_stdout(msg_store, worktree_path, parse_claude_line)

    def default_mcp_config_path(self) -> Path | None:
        home = home_dir()
        return home / ".claude.json" if home else None

    def get_availability_info(self) -> AvailabilityInfo:
        home = home_dir()
        if home is None:
            return AvailabilityInfo.not_found()
        return probe_availability(home / ".claude.json", home / ".claude")

    def preconfigured_mcp(self) -> dict:
        return {"context7": {"type": "http", "url": CONTEXT7_URL}}

    def to_doc(self) -> dict:
        return {
            "append_prompt": self.append_prompt.text,
            "model": self.model,
            "dangerously_skip_permissions": self.dangerously_skip_permissions,
            **self.cmd.to_doc(),
        }

    @classmethod
    def from_doc(cls, doc: dict) -> ClaudeCode:
        return cls(
            append_prompt=AppendPrompt(doc.get("append_prompt")),
            model=doc.get("model"),
            dangerously_skip_permissions=doc.get("dangerously_skip_permissions", True),
            cmd=CmdOverrides.from_doc(doc),
        )


def parse_claude_line(
    line: str, worktree_path: Path
) -> tuple[NormalizedEntry | None, str | None]:
    """Normalize one line of ``--output-format=stream-json`` output."""
    data = parse_json_line(line)
    if data is None:
        return NormalizedEntry(NormalizedEntryType.SYSTEM_MESSAGE, line), None

    session_id = data.get("session_id")
    event_type = data.get("type")

    if event_type == "system":
        subtype = data.get("subtype", "")
        return NormalizedEntry(
            NormalizedEntryType.SYSTEM_MESSAGE,
            f"System: {subtype}" if subtype else "System",
            metadata={"model": data.get("model", "")} if data.get("model") else {},
        ), session_id

    if event_type == "assistant":
        message = data.get("message")
        content = message.get("content", []) if isinstance(message, dict) else []
        if isinstance(content, str):
            content = [{"type": "text", "text": content}]
        content = [i for i in content if isinstance(i, dict)]
        for item in content:
            if item.get("type") == "tool_use":
                return NormalizedEntry(
                    NormalizedEntryType.TOOL_USE,
                    relativize(json.dumps(item.get("input", {})), worktree_path),
                    tool_name=item.get("name", ""),
                ), session_id
            if item.get("type") == "thinking":
                return NormalizedEntry(
                    NormalizedEntryType.THINKING, item.get("thinking", "")
                ), session_id
        text = "".join(i.get("text", "") for i in content if i.get("type") == "text")
        if text:
            return NormalizedEntry(
                NormalizedEntryType.ASSISTANT_MESSAGE, relativize(text, worktree_path)
            ), session_id
        return None, session_id

    if event_type == "result" and data.get("is_error"):
        return NormalizedEntry(
            NormalizedEntryType.ERROR_MESSAGE, str(data.get("result", ""))
        ), session_id

    return None, session_id
