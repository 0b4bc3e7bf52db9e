"""Coding agent variants and factory."""

from __future__ import annotations

from typing import Union

from agentexecutors.infra.executors.claude import ClaudeCode
from agentexecutors.infra.executors.codex import Codex
from agentexecutors.infra.executors.gemini import Gemini
from agentexecutors.infra.executors.jbai import Jbai
from agentexecutors.infra.executors.opencode import Opencode
from agentexecutors.models.agent import BaseCodingAgent

CodingAgent = Union[ClaudeCode, Codex, Gemini, Opencode, Jbai]

_EXECUTORS: dict[BaseCodingAgent, type] = {
    BaseCodingAgent.CLAUDE_CODE: ClaudeCode,
    BaseCodingAgent.CODEX: Codex,
    BaseCodingAgent.GEMINI: Gemini,
    BaseCodingAgent.OPENCODE: Opencode,
    BaseCodingAgent.JBAI: Jbai,
}


def agent_kind(agent: CodingAgent) -> BaseCodingAgent:
    """Return the executor kind of a concrete agent instance."""
    for kind, cls in _EXECUTORS.items():
        if type(agent) is cls:
            return kind
    raise ValueError(f"Unknown coding agent: {type(agent).__name__}")


def build_agent(kind: BaseCodingAgent | str, doc: dict | None = None) -> CodingAgent:
    """Build an agent of ``kind`` from its profile document."""
    if isinstance(kind, str):
        kind = BaseCodingAgent(kind)

    cls = _EXECUTORS.get(kind)
    if cls is None:
        raise ValueError(f"Unknown executor type: {kind}")
    return cls.from_doc(doc or {})
