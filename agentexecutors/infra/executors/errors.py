"""Executor error types."""

from __future__ import annotations


class ExecutorError(Exception):
    """Base class for failures while preparing or spawning an agent."""


class UnknownExecutorType(ExecutorError):
    """No agent could be resolved for the given profile id."""

    def __init__(self, profile_id: str) -> None:
        super().__init__(f"Unknown executor type: {profile_id}")
        self.profile_id = profile_id


class ExecutorIoError(ExecutorError):
    """Filesystem failure, e.g. writing the credential file."""


class SpawnError(ExecutorError):
    """The agent process could not be created."""


class FollowUpNotSupported(ExecutorError):
    """The selected agent cannot resume a previous session."""
