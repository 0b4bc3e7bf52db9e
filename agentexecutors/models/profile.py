"""Executor profile identifiers."""

from __future__ import annotations

from dataclasses import dataclass

from agentexecutors.models.agent import BaseCodingAgent

DEFAULT_VARIANT = "DEFAULT"


@dataclass(frozen=True)
class ExecutorProfileId:
    """Selects an executor kind and, optionally, one of its named variants."""

    executor: BaseCodingAgent
    variant: str | None = None

    def __str__(self) -> str:
        if self.variant:
            return f"{self.executor.value}:{self.variant}"
        return self.executor.value

    @classmethod
    def parse(cls, value: str) -> ExecutorProfileId:
        """Parse ``EXECUTOR`` or ``EXECUTOR:VARIANT``."""
        executor, _, variant = value.partition(":")
        return cls(
            executor=BaseCodingAgent(executor.strip().upper()),
            variant=variant.strip().upper() or None,
        )

    def to_doc(self) -> dict:
        doc: dict = {"executor": self.executor.value}
        if self.variant:
            doc["variant"] = self.variant
        return doc

    @classmethod
    def from_doc(cls, doc: dict | str) -> ExecutorProfileId:
        if isinstance(doc, str):
            return cls.parse(doc)
        return cls(
            executor=BaseCodingAgent(doc["executor"]),
            variant=doc.get("variant") or None,
        )
