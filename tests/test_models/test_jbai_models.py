"""Tests for the JB AI model catalog."""

from agentexecutors.models.agent import JbaiClient
from agentexecutors.models.jbai_models import get_jbai_model_options


class TestJbaiModels:
    def test_claude_models(self):
        models = get_jbai_model_options(JbaiClient.CLAUDE)
        assert "claude-sonnet-4-5-20250929" in models

    def test_by_string(self):
        assert "gemini-2.5-pro" in get_jbai_model_options("gemini")

    def test_codex_and_opencode_share_catalog(self):
        assert get_jbai_model_options("CODEX") == get_jbai_model_options("OPENCODE")

    def test_none_and_unknown(self):
        assert get_jbai_model_options(None) == []
        assert get_jbai_model_options("") == []
        assert get_jbai_model_options("cursor") == []
