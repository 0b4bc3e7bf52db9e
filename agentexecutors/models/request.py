"""Coding agent execution requests."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from agentexecutors.models.profile import ExecutorProfileId


def _resolve_dir(working_dir: str | None, current_dir: Path) -> Path:
    if working_dir:
        return current_dir / working_dir
    return current_dir


@dataclass(frozen=True)
class CodingAgentInitialRequest:
    """Start a fresh agent run for ``prompt`` using a profile."""

    prompt: str
    executor_profile_id: ExecutorProfileId
    model_override: str | None = None
    # Relative to the caller's base directory
    working_dir: str | None = None

    def effective_dir(self, current_dir: Path) -> Path:
        return _resolve_dir(self.working_dir, Path(current_dir))

    def follow_up(self, prompt: str, session_id: str) -> CodingAgentFollowUpRequest:
        """Build a follow-up that continues ``session_id`` with the same profile."""
        return CodingAgentFollowUpRequest(
            prompt=prompt,
            session_id=session_id,
            executor_profile_id=self.executor_profile_id,
            model_override=self.model_override,
            working_dir=self.working_dir,
        )

    def to_doc(self) -> dict:
        doc: dict = {
            "prompt": self.prompt,
            "executor_profile_id": self.executor_profile_id.to_doc(),
            "working_dir": self.working_dir,
        }
        if self.model_override is not None:
            doc["model_override"] = self.model_override
        return doc

    @classmethod
    def from_doc(cls, doc: dict) -> CodingAgentInitialRequest:
        # Older stored actions use ``profile_variant_label``
        profile = doc.get("executor_profile_id", doc.get("profile_variant_label"))
        if profile is None:
            raise ValueError("Request must have an executor_profile_id")
        return cls(
            prompt=doc["prompt"],
            executor_profile_id=ExecutorProfileId.from_doc(profile),
            model_override=doc.get("model_override"),
            working_dir=doc.get("working_dir"),
        )


@dataclass(frozen=True)
class CodingAgentFollowUpRequest:
    """Continue an existing agent session identified by an opaque id."""

    prompt: str
    session_id: str
    executor_profile_id: ExecutorProfileId
    model_override: str | None = None
    working_dir: str | None = None

    def __post_init__(self) -> None:
        if not self.session_id:
            raise ValueError("Follow-up request must have a session_id")

    def effective_dir(self, current_dir: Path) -> Path:
        return _resolve_dir(self.working_dir, Path(current_dir))

    def to_doc(self) -> dict:
        doc: dict = {
            "prompt": self.prompt,
            "session_id": self.session_id,
            "executor_profile_id": self.executor_profile_id.to_doc(),
            "working_dir": self.working_dir,
        }
        if self.model_override is not None:
            doc["model_override"] = self.model_override
        return doc

    @classmethod
    def from_doc(cls, doc: dict) -> CodingAgentFollowUpRequest:
        profile = doc.get("executor_profile_id", doc.get("profile_variant_label"))
        if profile is None:
            raise ValueError("Request must have an executor_profile_id")
        return cls(
            prompt=doc["prompt"],
            session_id=doc["session_id"],
            executor_profile_id=ExecutorProfileId.from_doc(profile),
            model_override=doc.get("model_override"),
            working_dir=doc.get("working_dir"),
        )
