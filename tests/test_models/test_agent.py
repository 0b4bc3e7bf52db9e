"""Tests for Agent models."""

from agentexecutors.models.agent import (
    AppendPrompt,
    AvailabilityInfo,
    AvailabilityKind,
    BaseCodingAgent,
    CommandSpec,
    ExecutionEnv,
    JbaiClient,
)


class TestCommandSpec:
    def test_full_command(self):
        spec = CommandSpec(program="claude", args=("--model", "sonnet", "do stuff"))
        assert spec.full_command == "claude --model sonnet 'do stuff'"

    def test_full_command_no_args(self):
        spec = CommandSpec(program="claude")
        assert spec.full_command == "claude"


class TestJbaiClient:
    def test_base_commands(self):
        assert JbaiClient.CLAUDE.base_command == "jbai-claude"
        assert JbaiClient.CODEX.base_command == "jbai-codex"
        assert JbaiClient.GEMINI.base_command == "jbai-gemini"
        assert JbaiClient.OPENCODE.base_command == "jbai-opencode"

    def test_values(self):
        assert JbaiClient("CODEX") is JbaiClient.CODEX
        assert BaseCodingAgent.JBAI.value == "JBAI"


class TestAppendPrompt:
    def test_no_text(self):
        assert AppendPrompt().combine_prompt("fix it") == "fix it"

    def test_appends(self):
        append = AppendPrompt("\nRun the tests.")
        assert append.combine_prompt("fix it") == "fix it\nRun the tests."


class TestExecutionEnv:
    def test_merged_with_overrides_win(self):
        env = ExecutionEnv(vars={"A": "1", "B": "2"})
        merged = env.merged_with({"B": "3"})
        assert merged.vars == {"A": "1", "B": "3"}
        assert env.vars["B"] == "2"  # unchanged

    def test_merged_with_none(self):
        env = ExecutionEnv(vars={"A": "1"})
        assert env.merged_with(None).vars == {"A": "1"}

    def test_full_environ_includes_process_env(self, monkeypatch):
        monkeypatch.setenv("INHERITED_VAR", "x")
        env = ExecutionEnv(vars={"EXTRA": "y"}).full_environ()
        assert env["INHERITED_VAR"] == "x"
        assert env["EXTRA"] == "y"


class TestAvailabilityInfo:
    def test_login_detected(self):
        info = AvailabilityInfo.login_detected(1700000000)
        assert info.kind == AvailabilityKind.LOGIN_DETECTED
        assert info.is_available
        assert info.to_doc() == {
            "type": "LOGIN_DETECTED",
            "last_auth_timestamp": 1700000000,
        }

    def test_not_found(self):
        info = AvailabilityInfo.not_found()
        assert not info.is_available
        assert info.to_doc() == {"type": "NOT_FOUND"}
