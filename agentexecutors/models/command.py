"""Command override value object merged into an executor's default invocation."""

from __future__ import annotations

import shlex
from dataclasses import dataclass, replace

from agentexecutors.infra.executors.errors import ExecutorError
from agentexecutors.models.agent import CommandSpec


@dataclass(frozen=True)
class CmdOverrides:
    """Optional overrides for base command, extra arguments and environment.

    Serialized flattened into the owning executor's document, so the keys
    sit next to the executor's own fields.
    """

    base_command_override: str | None = None
    additional_params: tuple[str, ...] | None = None
    env: dict[str, str] | None = None

    def with_default_base_command(self, command: str) -> CmdOverrides:
        """Fill in ``command`` unless a non-blank override is already set."""
        if self.base_command_override and self.base_command_override.strip():
            return self
        return replace(self, base_command_override=command)

    def apply(self, spec: CommandSpec) -> CommandSpec:
        """Return ``spec`` with these overrides applied."""
        program = spec.program
        args = list(spec.args)
        if self.base_command_override:
            try:
                base = shlex.split(self.base_command_override)
            except ValueError as e:
                raise ExecutorError(
                    f"Invalid base command {self.base_command_override!r}: {e}"
                ) from e
            if base:
                program = base[0]
                args = base[1:] + args
        if self.additional_params:
            args.extend(self.additional_params)

        env = spec.env
        if self.env:
            env = {**(spec.env or {}), **self.env}

        return CommandSpec(program=program, args=tuple(args), env=env, cwd=spec.cwd)

    def to_doc(self) -> dict:
        doc: dict = {}
        if self.base_command_override is not None:
            doc["base_command_override"] = self.base_command_override
        if self.additional_params is not None:
            doc["additional_params"] = list(self.additional_params)
        if self.env is not None:
            doc["env"] = dict(self.env)
        return doc

    @classmethod
    def from_doc(cls, doc: dict) -> CmdOverrides:
        if not doc:
            return cls()
        params = doc.get("additional_params")
        env = doc.get("env")
        return cls(
            base_command_override=doc.get("base_command_override"),
            additional_params=tuple(params) if params is not None else None,
            env={str(k): str(v) for k, v in env.items()} if env is not None else None,
        )
