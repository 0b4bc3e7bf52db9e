"""Coding agent domain models: executor kinds, capabilities, availability."""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field
from enum import Enum


class BaseCodingAgent(str, Enum):
    CLAUDE_CODE = "CLAUDE_CODE"
    CODEX = "CODEX"
    GEMINI = "GEMINI"
    OPENCODE = "OPENCODE"
    JBAI = "JBAI"


class JbaiClient(str, Enum):
    """Underlying CLI selected by the JB AI meta-executor."""

    CLAUDE = "CLAUDE"
    CODEX = "CODEX"
    GEMINI = "GEMINI"
    OPENCODE = "OPENCODE"

    @property
    def base_command(self) -> str:
        return f"jbai-{self.value.lower()}"


class BaseAgentCapability(str, Enum):
    SESSION_FORK = "SESSION_FORK"
    SETUP_HELPER = "SETUP_HELPER"


class AvailabilityKind(str, Enum):
    LOGIN_DETECTED = "LOGIN_DETECTED"
    INSTALLATION_FOUND = "INSTALLATION_FOUND"
    NOT_FOUND = "NOT_FOUND"


@dataclass(frozen=True)
class AvailabilityInfo:
    """Best-effort, filesystem-only report of whether an agent is usable."""

    kind: AvailabilityKind
    last_auth_timestamp: int | None = None

    @classmethod
    def login_detected(cls, last_auth_timestamp: int) -> AvailabilityInfo:
        return cls(AvailabilityKind.LOGIN_DETECTED, last_auth_timestamp)

    @classmethod
    def installation_found(cls) -> AvailabilityInfo:
        return cls(AvailabilityKind.INSTALLATION_FOUND)

    @classmethod
    def not_found(cls) -> AvailabilityInfo:
        return cls(AvailabilityKind.NOT_FOUND)

    @property
    def is_available(self) -> bool:
        return self.kind != AvailabilityKind.NOT_FOUND

    def to_doc(self) -> dict:
        doc: dict = {"type": self.kind.value}
        if self.last_auth_timestamp is not None:
            doc["last_auth_timestamp"] = self.last_auth_timestamp
        return doc


@dataclass(frozen=True)
class AppendPrompt:
    """Text appended to every prompt sent to an agent."""

    text: str | None = None

    def combine_prompt(self, prompt: str) -> str:
        if not self.text:
            return prompt
        return f"{prompt}{self.text}"


@dataclass(frozen=True)
class ExecutionEnv:
    """Extra environment variables for a single agent run."""

    vars: dict[str, str] = field(default_factory=dict)

    def get(self, key: str) -> str | None:
        return self.vars.get(key)

    def merged_with(self, overrides: dict[str, str] | None) -> ExecutionEnv:
        """Return a copy where ``overrides`` win over existing vars."""
        merged = dict(self.vars)
        if overrides:
            merged.update(overrides)
        return ExecutionEnv(vars=merged)

    def full_environ(self) -> dict[str, str]:
        """Inherited process environment overlaid with these vars."""
        env = dict(os.environ)
        env.update(self.vars)
        return env


@dataclass(frozen=True)
class CommandSpec:
    """Specification for launching an agent subprocess."""

    program: str
    args: tuple[str, ...] = ()
    env: dict[str, str] | None = None
    cwd: str | None = None

    @property
    def full_command(self) -> str:
        """Return the full command string for shell execution."""
        parts = [self.program, *self.args]
        return " ".join(shlex.quote(p) for p in parts)
