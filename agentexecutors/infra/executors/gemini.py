"""Gemini CLI executor."""

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
class Gemini:
    """Executor for the Gemini CLI.

    Generates commands like:
        gemini --output-format stream-json [--model M] [--yolo] -p PROMPT
        gemini ... --resume SESSION -p PROMPT
    """

    append_prompt: AppendPrompt = field(default_factory=AppendPrompt)
    model: str | None = None
    yolo: bool | None = None
    cmd: CmdOverrides = field(default_factory=CmdOverrides)
    approvals: ExecutorApprovalService | None = field(
        default=None, init=False, repr=False, compare=False
    )

    def capabilities(self) -> list[BaseAgentCapability]:
        return [BaseAgentCapability.SESSION_FORK]

    def use_approvals(self, approvals: ExecutorApprovalService) -> None:
        self.approvals = approvals

    def _command(self, current_dir: Path, prompt: str, session_id: str | None) -> CommandSpec:
        args: list[str] = ["--output-format", "stream-json"]
        if self.model:
            args.extend(["--model", self.model])
        if self.yolo:
            args.append("--yolo")
        if session_id:
            args.extend(["--resume", session_id])
        args.extend(["-p", self.append_prompt.combine_prompt(prompt)])
        return CommandSpec(program="gemini", args=tuple(args), cwd=str(current_dir))

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
        normalize_stdout(msg_store, worktree_path, parse_gemini_line)

    def default_mcp_config_path(self) -> Path | None:
        home = home_dir()
        return home / ".gemini" / "settings.json" if home else None

    def get_availability_info(self) -> AvailabilityInfo:
        home = home_dir()
        if home is None:
            return AvailabilityInfo.not_found()
        return probe_availability(home / ".gemini" / "oauth_creds.json", home / ".gemini")

    def preconfigured_mcp(self) -> dict:
        return {"context7": {"httpUrl": CONTEXT7_URL}}

    def to_doc(self) -> dict:
        return {
            "append_prompt": self.append_prompt.text,
            "model": self.model,
            "yolo": self.yolo,
            **self.cmd.to_doc(),
        }

    @classmethod
    def from_doc(cls, doc: dict) -> Gemini:
        return cls(
            append_prompt=AppendPrompt(doc.get("append_prompt")),
            model=doc.get("model"),
            yolo=doc.get("yolo"),
            cmd=CmdOverrides.from_doc(doc),
        )


def parse_gemini_line(
    line: str, worktree_path: Path
) -> tuple[NormalizedEntry | None, str | None]:
    """Normalize one line of ``--output-format stream-json`` output."""
    data = parse_json_line(line)
    if data is None:
        return NormalizedEntry(NormalizedEntryType.SYSTEM_MESSAGE, line), None

    event_type = data.get("type")
    if event_type == "init":
        return NormalizedEntry(
            NormalizedEntryType.SYSTEM_MESSAGE, f"Model: {data.get('model', '')}"
        ), data.get("session_id")

    if event_type == "message" and data.get("role") == "assistant":
        return NormalizedEntry(
            NormalizedEntryType.ASSISTANT_MESSAGE,
            relativize(data.get("content", ""), worktree_path),
        ), None

    if event_type == "tool_use":
        return NormalizedEntry(
            NormalizedEntryType.TOOL_USE,
            relativize(json.dumps(data.get("parameters", {})), worktree_path),
            tool_name=data.get("tool_name", ""),
        ), None

    if event_type == "error":
        return NormalizedEntry(
            NormalizedEntryType.ERROR_MESSAGE, data.get("message", "")
        ), None

    return None, None
