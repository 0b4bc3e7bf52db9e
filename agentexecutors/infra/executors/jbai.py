"""JB AI meta-executor: runs one of several agent CLIs through jbai wrappers.

The ``client`` field selects the underlying CLI. The adapter swaps in the
``jbai-<client>`` wrapper as base command, keeps ``~/.jbai/token`` in sync
with the configured token and then delegates to the concrete executor.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from agentexecutors.infra.approvals import ExecutorApprovalService
from agentexecutors.infra.executors.base import (
    CodingAgentExecutor,
    home_dir,
    probe_availability,
)
from agentexecutors.infra.executors.claude import ClaudeCode
from agentexecutors.infra.executors.codex import Codex, codex_home
from agentexecutors.infra.executors.errors import (
    ExecutorError,
    ExecutorIoError,
    FollowUpNotSupported,
)
from agentexecutors.infra.executors.gemini import Gemini
from agentexecutors.infra.executors.opencode import Opencode, opencode_config_path
from agentexecutors.infra.msg_store import MsgStore
from agentexecutors.infra.subprocess_mgr import SpawnedChild
from agentexecutors.models.agent import (
    AppendPrompt,
    AvailabilityInfo,
    BaseAgentCapability,
    ExecutionEnv,
    JbaiClient,
)
from agentexecutors.models.command import CmdOverrides
from agentexecutors.models.mcp import McpConfig

logger = logging.getLogger(__name__)

TOKEN_ENV_VAR = "JBAI_TOKEN"
OPENCODE_SCHEMA_URL = "https://opencode.ai/config.json"


def jbai_dir() -> Path | None:
    home = home_dir()
    return home / ".jbai" if home else None


def token_file_path() -> Path | None:
    directory = jbai_dir()
    return directory / "token" if directory else None


@dataclass
class Jbai:
    """Meta-executor that delegates to the CLI selected by ``client``."""

    append_prompt: AppendPrompt = field(default_factory=AppendPrompt)
    client: JbaiClient = JbaiClient.CLAUDE
    model: str | None = None
    cmd: CmdOverrides = field(default_factory=CmdOverrides)
    _approvals: ExecutorApprovalService | None = field(
        default=None, init=False, repr=False, compare=False
    )

    def use_approvals(self, approvals: ExecutorApprovalService) -> None:
        """Attach the shared approval service. It can be set only once."""
        if self._approvals is approvals:
            return
        if self._approvals is not None:
            raise ExecutorError("Approval service already set for this executor")
        self._approvals = approvals

    @property
    def approvals(self) -> ExecutorApprovalService | None:
        return self._approvals

    def capabilities(self) -> list[BaseAgentCapability]:
        if self.client == JbaiClient.CODEX:
            return [BaseAgentCapability.SESSION_FORK, BaseAgentCapability.SETUP_HELPER]
        return [BaseAgentCapability.SESSION_FORK]

    def cmd_with_client(self) -> CmdOverrides:
        return self.cmd.with_default_base_command(self.client.base_command)

    # Credentials

    def resolve_token(self, env: ExecutionEnv) -> str | None:
        """Token from the profile's env overrides, else from the run environment."""
        from_profile = (self.cmd.env or {}).get(TOKEN_ENV_VAR)
        if from_profile and from_profile.strip():
            return from_profile.strip()
        from_env = env.get(TOKEN_ENV_VAR)
        if from_env and from_env.strip():
            return from_env.strip()
        return None

    def ensure_token_file(self, env: ExecutionEnv) -> None:
        """Write the resolved token to ``~/.jbai/token`` if it changed."""
        token = self.resolve_token(env)
        if token is None:
            return

        token_path = token_file_path()
        if token_path is None:
            raise ExecutorIoError("Unable to resolve home directory")

        try:
            existing = token_path.read_text()
        except OSError:
            existing = None
        if existing is not None and existing.strip() == token:
            logger.debug("JB AI token at %s is up to date", token_path)
            return

        try:
            token_path.parent.mkdir(parents=True, exist_ok=True)
            token_path.write_text(f"{token}\n")
        except OSError as e:
            raise ExecutorIoError(f"Failed to write {token_path}: {e}") from e

        if os.name == "posix":
            try:
                token_path.chmod(0o600)
            except OSError:
                logger.debug("Could not restrict permissions on %s", token_path, exc_info=True)
        logger.info("Wrote JB AI token to %s", token_path)

    # Concrete executors

    def build_claude(self) -> ClaudeCode:
        return ClaudeCode.new_with_overrides(
            self.append_prompt, self.model, self.cmd_with_client()
        )

    def build_codex(self) -> Codex:
        return Codex.new_with_overrides(
            self.append_prompt, self.model, self.cmd_with_client()
        )

    def build_gemini(self) -> Gemini:
        return Gemini(
            append_prompt=self.append_prompt,
            model=self.model,
            yolo=None,
            cmd=self.cmd_with_client(),
        )

    def build_opencode(self) -> Opencode:
        return Opencode(
            append_prompt=self.append_prompt,
            model=self.model,
            mode=None,
            auto_approve=True,
            cmd=self.cmd_with_client(),
        )

    def codex_config(self) -> Codex | None:
        if self.client == JbaiClient.CODEX:
            return self.build_codex()
        return None

    def build_executor(self) -> CodingAgentExecutor:
        builders: dict[JbaiClient, Callable[[], CodingAgentExecutor]] = {
            JbaiClient.CLAUDE: self.build_claude,
            JbaiClient.CODEX: self.build_codex,
            JbaiClient.GEMINI: self.build_gemini,
            JbaiClient.OPENCODE: self.build_opencode,
        }
        return builders[self.client]()

    def _executor_with_approvals(self) -> CodingAgentExecutor:
        executor = self.build_executor()
        if self._approvals is not None:
            executor.use_approvals(self._approvals)
        return executor

    # Executor protocol

    async def spawn(
        self, current_dir: Path, prompt: str, env: ExecutionEnv
    ) -> SpawnedChild:
        self.ensure_token_file(env)
        executor = self._executor_with_approvals()
        logger.info("Spawning JB AI %s agent in %s", self.client.value, current_dir)
        return await executor.spawn(current_dir, prompt, env)

    async def spawn_follow_up(
        self, current_dir: Path, prompt: str, session_id: str, env: ExecutionEnv
    ) -> SpawnedChild:
        if BaseAgentCapability.SESSION_FORK not in self.capabilities():
            raise FollowUpNotSupported(
                f"JB AI client {self.client.value} cannot resume sessions"
            )
        self.ensure_token_file(env)
        executor = self._executor_with_approvals()
        logger.info(
            "Resuming JB AI %s session %s in %s", self.client.value, session_id, current_dir
        )
        return await executor.spawn_follow_up(current_dir, prompt, session_id, env)

    def normalize_logs(self, msg_store: MsgStore, worktree_path: Path) -> None:
        self.build_executor().normalize_logs(msg_store, worktree_path)

    def default_mcp_config_path(self) -> Path | None:
        home = home_dir()
        if self.client == JbaiClient.CLAUDE:
            return home / ".claude.json" if home else None
        if self.client == JbaiClient.CODEX:
            codex = codex_home()
            return codex / "config.toml" if codex else None
        if self.client == JbaiClient.GEMINI:
            return home / ".gemini" / "settings.json" if home else None
        return opencode_config_path()

    def get_availability_info(self) -> AvailabilityInfo:
        # mtime of the token file is a heuristic for "logged in"
        return probe_availability(token_file_path(), jbai_dir())

    def preconfigured_mcp(self) -> dict:
        return self.build_executor().preconfigured_mcp()

    def get_mcp_config(self) -> McpConfig:
        preconfigured = self.preconfigured_mcp()
        if self.client == JbaiClient.CODEX:
            return McpConfig(
                servers_path=["mcp_servers"],
                template={"mcp_servers": {}},
                preconfigured=preconfigured,
                replace_existing=True,
                is_toml_config=True,
            )
        if self.client == JbaiClient.OPENCODE:
            return McpConfig(
                servers_path=["mcp"],
                template={"mcp": {}, "$schema": OPENCODE_SCHEMA_URL},
                preconfigured=preconfigured,
                replace_existing=True,
            )
        return McpConfig(
            servers_path=["mcpServers"],
            template={"mcpServers": {}},
            preconfigured=preconfigured,
            replace_existing=False,
        )

    def to_doc(self) -> dict:
        doc: dict = {
            "append_prompt": self.append_prompt.text,
            "client": self.client.value,
            **self.cmd.to_doc(),
        }
        if self.model is not None:
            doc["model"] = self.model
        return doc

    @classmethod
    def from_doc(cls, doc: dict) -> Jbai:
        return cls(
            append_prompt=AppendPrompt(doc.get("append_prompt")),
            client=JbaiClient(doc.get("client", JbaiClient.CLAUDE.value)),
            model=doc.get("model"),
            cmd=CmdOverrides.from_doc(doc),
        )
