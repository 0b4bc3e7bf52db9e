"""Tests for the JB AI meta-executor."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from agentexecutors.infra.approvals import AutoApprovalService
from agentexecutors.infra.executors import jbai as jbai_module
from agentexecutors.infra.executors.claude import ClaudeCode
from agentexecutors.infra.executors.codex import Codex
from agentexecutors.infra.executors.errors import ExecutorError, ExecutorIoError, SpawnError
from agentexecutors.infra.executors.gemini import Gemini
from agentexecutors.infra.executors.jbai import Jbai
from agentexecutors.infra.executors.opencode import Opencode
from agentexecutors.infra.msg_store import MsgStore
from agentexecutors.infra.subprocess_mgr import pipe_output
from agentexecutors.models.agent import (
    AppendPrompt,
    AvailabilityKind,
    BaseAgentCapability,
    ExecutionEnv,
    JbaiClient,
)
from agentexecutors.models.command import CmdOverrides


@pytest.fixture
def home(tmp_path, monkeypatch):
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("CODEX_HOME", raising=False)
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    return home


@pytest.fixture
def write_calls(monkeypatch):
    calls: list[Path] = []
    original = Path.write_text

    def counting(self, *args, **kwargs):
        calls.append(self)
        return original(self, *args, **kwargs)

    monkeypatch.setattr(Path, "write_text", counting)
    return calls


class TestCapabilities:
    @pytest.mark.parametrize("client", [JbaiClient.CLAUDE, JbaiClient.GEMINI, JbaiClient.OPENCODE])
    def test_session_fork_only(self, client):
        assert Jbai(client=client).capabilities() == [BaseAgentCapability.SESSION_FORK]

    def test_codex_has_setup_helper(self):
        assert Jbai(client=JbaiClient.CODEX).capabilities() == [
            BaseAgentCapability.SESSION_FORK,
            BaseAgentCapability.SETUP_HELPER,
        ]

    def test_depends_only_on_client(self):
        a = Jbai(client=JbaiClient.CODEX, model="gpt-5.2")
        b = Jbai(client=JbaiClient.CODEX, cmd=CmdOverrides(base_command_override="x"))
        assert a.capabilities() == b.capabilities()


class TestCommandDerivation:
    @pytest.mark.parametrize("client", list(JbaiClient))
    def test_default_command_per_client(self, client):
        executor = Jbai(client=client).build_executor()
        assert executor.cmd.base_command_override == f"jbai-{client.value.lower()}"

    def test_override_used_verbatim(self):
        agent = Jbai(
            client=JbaiClient.GEMINI,
            cmd=CmdOverrides(base_command_override="/usr/local/bin/custom-gemini"),
        )
        assert agent.cmd_with_client().base_command_override == "/usr/local/bin/custom-gemini"

    @pytest.mark.parametrize("blank", ["", "   "])
    def test_blank_override_uses_client_command(self, blank, tmp_path):
        agent = Jbai(client=JbaiClient.CODEX, cmd=CmdOverrides(base_command_override=blank))
        executor = agent.build_executor()
        spec = executor.cmd.apply(executor._command(tmp_path, "go", None))
        assert spec.program == "jbai-codex"

    def test_profile_cmd_not_mutated(self):
        agent = Jbai(client=JbaiClient.CLAUDE)
        agent.cmd_with_client()
        assert agent.cmd.base_command_override is None

    def test_builds_matching_executor(self):
        assert isinstance(Jbai(client=JbaiClient.CLAUDE).build_executor(), ClaudeCode)
        assert isinstance(Jbai(client=JbaiClient.CODEX).build_executor(), Codex)
        assert isinstance(Jbai(client=JbaiClient.GEMINI).build_executor(), Gemini)
        assert isinstance(Jbai(client=JbaiClient.OPENCODE).build_executor(), Opencode)

    def test_fields_forwarded(self):
        agent = Jbai(
            client=JbaiClient.OPENCODE,
            model="gpt-5.2",
            append_prompt=AppendPrompt("!"),
            cmd=CmdOverrides(additional_params=("--print-logs",)),
        )
        executor = agent.build_executor()
        assert executor.model == "gpt-5.2"
        assert executor.append_prompt == AppendPrompt("!")
        assert executor.cmd.additional_params == ("--print-logs",)
        assert executor.auto_approve is True

    def test_codex_config(self):
        assert Jbai(client=JbaiClient.CLAUDE).codex_config() is None
        codex = Jbai(client=JbaiClient.CODEX, model="o3-2025-04-16").codex_config()
        assert codex is not None
        assert codex.model == "o3-2025-04-16"


class TestTokenResolution:
    def test_profile_token_wins(self):
        agent = Jbai(cmd=CmdOverrides(env={"JBAI_TOKEN": " from-profile "}))
        env = ExecutionEnv(vars={"JBAI_TOKEN": "from-env"})
        assert agent.resolve_token(env) == "from-profile"

    def test_falls_back_to_execution_env(self):
        env = ExecutionEnv(vars={"JBAI_TOKEN": "from-env\n"})
        assert Jbai().resolve_token(env) == "from-env"

    def test_blank_profile_token_falls_back(self):
        agent = Jbai(cmd=CmdOverrides(env={"JBAI_TOKEN": "   "}))
        env = ExecutionEnv(vars={"JBAI_TOKEN": "from-env"})
        assert agent.resolve_token(env) == "from-env"

    def test_no_token(self):
        assert Jbai().resolve_token(ExecutionEnv()) is None
        assert Jbai().resolve_token(ExecutionEnv(vars={"JBAI_TOKEN": " "})) is None


class TestTokenFile:
    def test_writes_token_file(self, home):
        Jbai().ensure_token_file(ExecutionEnv(vars={"JBAI_TOKEN": "secret"}))
        token_path = home / ".jbai" / "token"
        assert token_path.read_text() == "secret\n"
        if os.name == "posix":
            assert token_path.stat().st_mode & 0o777 == 0o600

    def test_same_token_written_once(self, home, write_calls):
        env = ExecutionEnv(vars={"JBAI_TOKEN": "secret"})
        Jbai().ensure_token_file(env)
        Jbai().ensure_token_file(env)
        assert write_calls == [home / ".jbai" / "token"]

    def test_existing_content_compared_trimmed(self, home, write_calls):
        (home / ".jbai").mkdir()
        (home / ".jbai" / "token").write_text("  secret  \n\n")
        write_calls.clear()
        Jbai().ensure_token_file(ExecutionEnv(vars={"JBAI_TOKEN": "secret"}))
        assert write_calls == []

    def test_changed_token_rewritten(self, home):
        Jbai().ensure_token_file(ExecutionEnv(vars={"JBAI_TOKEN": "old"}))
        Jbai().ensure_token_file(ExecutionEnv(vars={"JBAI_TOKEN": "new"}))
        assert (home / ".jbai" / "token").read_text() == "new\n"

    def test_no_token_no_file(self, home, write_calls):
        Jbai().ensure_token_file(ExecutionEnv(vars={"JBAI_TOKEN": "  "}))
        assert write_calls == []
        assert not (home / ".jbai").exists()

    def test_unresolvable_home_raises(self, monkeypatch):
        monkeypatch.setattr(jbai_module, "home_dir", lambda: None)
        with pytest.raises(ExecutorIoError, match="home directory"):
            Jbai().ensure_token_file(ExecutionEnv(vars={"JBAI_TOKEN": "secret"}))

    def test_unresolvable_home_without_token_is_fine(self, monkeypatch):
        monkeypatch.setattr(jbai_module, "home_dir", lambda: None)
        Jbai().ensure_token_file(ExecutionEnv())

    def test_write_failure_raises_io_error(self, home):
        # a plain file where the directory should be
        (home / ".jbai").write_text("not a directory")
        with pytest.raises(ExecutorIoError) as excinfo:
            Jbai().ensure_token_file(ExecutionEnv(vars={"JBAI_TOKEN": "secret"}))
        assert isinstance(excinfo.value.__cause__, OSError)

    def test_chmod_failure_is_ignored(self, home, monkeypatch):
        def failing_chmod(self, mode):
            raise PermissionError("nope")

        monkeypatch.setattr(Path, "chmod", failing_chmod)
        Jbai().ensure_token_file(ExecutionEnv(vars={"JBAI_TOKEN": "secret"}))
        assert (home / ".jbai" / "token").read_text() == "secret\n"


class TestAvailability:
    def test_not_found(self, home):
        assert Jbai().get_availability_info().kind == AvailabilityKind.NOT_FOUND

    def test_installation_found(self, home):
        (home / ".jbai").mkdir()
        assert Jbai().get_availability_info().kind == AvailabilityKind.INSTALLATION_FOUND

    def test_login_detected_with_mtime(self, home):
        (home / ".jbai").mkdir()
        token = home / ".jbai" / "token"
        token.write_text("secret\n")
        os.utime(token, (1700000000, 1700000000))
        info = Jbai().get_availability_info()
        assert info.kind == AvailabilityKind.LOGIN_DETECTED
        assert info.last_auth_timestamp == 1700000000

    def test_same_for_every_client(self, home):
        kinds = {Jbai(client=c).get_availability_info().kind for c in JbaiClient}
        assert kinds == {AvailabilityKind.NOT_FOUND}

    def test_unresolvable_home_is_not_found(self, monkeypatch):
        monkeypatch.setattr(jbai_module, "home_dir", lambda: None)
        assert Jbai().get_availability_info().kind == AvailabilityKind.NOT_FOUND


class TestMcpConfig:
    def test_codex(self):
        config = Jbai(client=JbaiClient.CODEX).get_mcp_config()
        assert config.servers_path == ["mcp_servers"]
        assert config.template == {"mcp_servers": {}}
        assert config.replace_existing is True
        assert config.is_toml_config is True

    def test_opencode(self):
        config = Jbai(client=JbaiClient.OPENCODE).get_mcp_config()
        assert config.servers_path == ["mcp"]
        assert config.template == {"mcp": {}, "$schema": "https://opencode.ai/config.json"}
        assert config.replace_existing is True
        assert config.is_toml_config is False

    @pytest.mark.parametrize("client", [JbaiClient.CLAUDE, JbaiClient.GEMINI])
    def test_claude_and_gemini(self, client):
        config = Jbai(client=client).get_mcp_config()
        assert config.servers_path == ["mcpServers"]
        assert config.template == {"mcpServers": {}}
        assert config.replace_existing is False

    def test_preconfigured_comes_from_underlying_executor(self):
        for client in JbaiClient:
            agent = Jbai(client=client)
            assert agent.get_mcp_config().preconfigured == (
                agent.build_executor().preconfigured_mcp()
            )


class TestDefaultMcpConfigPath:
    def test_paths(self, home, monkeypatch):
        assert Jbai(client=JbaiClient.CLAUDE).default_mcp_config_path() == home / ".claude.json"
        assert Jbai(client=JbaiClient.CODEX).default_mcp_config_path() == (
            home / ".codex" / "config.toml"
        )
        assert Jbai(client=JbaiClient.GEMINI).default_mcp_config_path() == (
            home / ".gemini" / "settings.json"
        )
        assert Jbai(client=JbaiClient.OPENCODE).default_mcp_config_path() == (
            home / ".config" / "opencode" / "opencode.json"
        )

    def test_env_overrides(self, home, tmp_path, monkeypatch):
        monkeypatch.setenv("CODEX_HOME", str(tmp_path / "codex"))
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
        assert Jbai(client=JbaiClient.CODEX).default_mcp_config_path() == (
            tmp_path / "codex" / "config.toml"
        )
        assert Jbai(client=JbaiClient.OPENCODE).default_mcp_config_path() == (
            tmp_path / "xdg" / "opencode" / "opencode.json"
        )


class TestApprovals:
    def test_set_once(self):
        agent = Jbai()
        service = AutoApprovalService()
        agent.use_approvals(service)
        agent.use_approvals(service)  # same service is a no-op
        assert agent.approvals is service

    def test_reassignment_rejected(self):
        agent = Jbai()
        agent.use_approvals(AutoApprovalService())
        with pytest.raises(ExecutorError, match="already set"):
            agent.use_approvals(AutoApprovalService())

    def test_shared_between_adapters(self):
        service = AutoApprovalService()
        a, b = Jbai(), Jbai(client=JbaiClient.CODEX)
        a.use_approvals(service)
        b.use_approvals(service)
        assert a.approvals is b.approvals


class TestSpawnDelegation:
    @pytest.mark.asyncio
    async def test_spawn_injects_approvals_and_delegates(self, home, monkeypatch):
        executor = MagicMock()
        executor.spawn = AsyncMock(return_value="child")
        agent = Jbai(client=JbaiClient.CODEX)
        monkeypatch.setattr(agent, "build_executor", lambda: executor)
        service = AutoApprovalService()
        agent.use_approvals(service)

        env = ExecutionEnv(vars={"JBAI_TOKEN": "secret"})
        result = await agent.spawn(Path("/repo"), "fix it", env)

        assert result == "child"
        executor.use_approvals.assert_called_once_with(service)
        executor.spawn.assert_awaited_once_with(Path("/repo"), "fix it", env)
        assert (home / ".jbai" / "token").read_text() == "secret\n"

    @pytest.mark.asyncio
    async def test_spawn_without_approvals(self, home, monkeypatch):
        executor = MagicMock()
        executor.spawn = AsyncMock(return_value="child")
        agent = Jbai()
        monkeypatch.setattr(agent, "build_executor", lambda: executor)
        await agent.spawn(Path("/repo"), "fix it", ExecutionEnv())
        executor.use_approvals.assert_not_called()

    @pytest.mark.asyncio
    async def test_follow_up_passes_session_id(self, home, monkeypatch):
        executor = MagicMock()
        executor.spawn_follow_up = AsyncMock(return_value="child")
        agent = Jbai(client=JbaiClient.GEMINI)
        monkeypatch.setattr(agent, "build_executor", lambda: executor)

        env = ExecutionEnv()
        await agent.spawn_follow_up(Path("/repo"), "more", "sess-42", env)
        executor.spawn_follow_up.assert_awaited_once_with(
            Path("/repo"), "more", "sess-42", env
        )

    @pytest.mark.asyncio
    async def test_token_failure_aborts_spawn(self, monkeypatch):
        executor = MagicMock()
        executor.spawn = AsyncMock()
        agent = Jbai()
        monkeypatch.setattr(agent, "build_executor", lambda: executor)
        monkeypatch.setattr(jbai_module, "home_dir", lambda: None)

        with pytest.raises(ExecutorIoError):
            await agent.spawn(Path("/repo"), "x", ExecutionEnv(vars={"JBAI_TOKEN": "t"}))
        executor.spawn.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_spawns_real_process_with_override(self, home, tmp_path):
        agent = Jbai(
            client=JbaiClient.CLAUDE,
            model="claude-sonnet-4-5-20250929",
            cmd=CmdOverrides(base_command_override="echo"),
        )
        child = await agent.spawn(tmp_path, "hello world", ExecutionEnv())
        store = MsgStore()
        code = await pipe_output(child, store)

        assert code == 0
        output = " ".join(store.stdout_lines())
        assert "--output-format=stream-json" in output
        assert "--model claude-sonnet-4-5-20250929" in output
        assert output.endswith("hello world")

    @pytest.mark.asyncio
    async def test_missing_binary_raises_spawn_error(self, home, tmp_path):
        agent = Jbai(cmd=CmdOverrides(base_command_override="definitely-not-a-real-binary-xyz"))
        with pytest.raises(SpawnError, match="definitely-not-a-real-binary-xyz"):
            await agent.spawn(tmp_path, "x", ExecutionEnv())


class TestNormalizeLogs:
    def test_delegates_to_underlying_format(self, tmp_path):
        store = MsgStore()
        store.push_stdout('{"type": "thread.started", "thread_id": "t-1"}')
        store.push_stdout(
            '{"type": "item.completed", "item": {"type": "agent_message", "text": "Done"}}'
        )
        Jbai(client=JbaiClient.CODEX).normalize_logs(store, tmp_path)

        assert store.session_id == "t-1"
        assert [e.content for e in store.normalized_entries()] == ["Done"]


class TestSerialization:
    def test_doc_roundtrip(self):
        agent = Jbai(
            client=JbaiClient.GEMINI,
            model="gemini-2.5-pro",
            cmd=CmdOverrides(env={"JBAI_TOKEN": "t"}),
        )
        assert Jbai.from_doc(agent.to_doc()) == agent

    def test_defaults(self):
        agent = Jbai.from_doc({})
        assert agent.client == JbaiClient.CLAUDE
        assert agent.model is None
        assert "model" not in agent.to_doc()

    def test_approvals_ignored_in_equality(self):
        a, b = Jbai(), Jbai()
        a.use_approvals(AutoApprovalService())
        assert a == b
