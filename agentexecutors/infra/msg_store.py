"""In-memory log store shared between a spawned agent and its normalizer."""

from __future__ import annotations

import logging

from agentexecutors.models.log_entry import LogMsg, LogMsgKind, NormalizedEntry

logger = logging.getLogger(__name__)


class MsgStore:
    """Append-only history of raw output and normalized entries.

    Normalizers pull raw stdout lines they have not seen yet through
    ``take_unnormalized_stdout`` and push their results back, so a store
    can be normalized incrementally while the process is still running.
    """

    def __init__(self) -> None:
        self._history: list[LogMsg] = []
        self._stdout_cursor = 0
        self._session_id: str | None = None

    def push_stdout(self, text: str) -> None:
        self._history.append(LogMsg(LogMsgKind.STDOUT, text))

    def push_stderr(self, text: str) -> None:
        self._history.append(LogMsg(LogMsgKind.STDERR, text))

    def push_normalized(self, entry: NormalizedEntry) -> None:
        self._history.append(LogMsg(LogMsgKind.NORMALIZED, entry=entry))

    def push_session_id(self, session_id: str) -> None:
        """Record the agent's own session id; only the first one is kept."""
        if self._session_id is not None:
            return
        self._session_id = session_id
        self._history.append(LogMsg(LogMsgKind.SESSION_ID, session_id))
        logger.debug("Captured agent session id %s", session_id)

    def push_finished(self) -> None:
        self._history.append(LogMsg(LogMsgKind.FINISHED))

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def finished(self) -> bool:
        return any(m.kind == LogMsgKind.FINISHED for m in self._history)

    def history(self) -> list[LogMsg]:
        return list(self._history)

    def stdout_lines(self) -> list[str]:
        return [m.text for m in self._history if m.kind == LogMsgKind.STDOUT]

    def stderr_lines(self) -> list[str]:
        return [m.text for m in self._history if m.kind == LogMsgKind.STDERR]

    def normalized_entries(self) -> list[NormalizedEntry]:
        return [
            m.entry for m in self._history
            if m.kind == LogMsgKind.NORMALIZED and m.entry is not None
        ]

    def take_unnormalized_stdout(self) -> list[str]:
        """Return stdout lines pushed since the previous call."""
        lines = self.stdout_lines()
        new = lines[self._stdout_cursor:]
        self._stdout_cursor = len(lines)
        return new
