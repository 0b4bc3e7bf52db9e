"""Raw and normalized agent log entries."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class LogMsgKind(str, Enum):
    STDOUT = "stdout"
    STDERR = "stderr"
    NORMALIZED = "normalized"
    SESSION_ID = "session_id"
    FINISHED = "finished"


class NormalizedEntryType(str, Enum):
    SYSTEM_MESSAGE = "system_message"
    USER_MESSAGE = "user_message"
    ASSISTANT_MESSAGE = "assistant_message"
    THINKING = "thinking"
    TOOL_USE = "tool_use"
    ERROR_MESSAGE = "error_message"


@dataclass(frozen=True)
class NormalizedEntry:
    """Tool-agnostic view of one event emitted by an agent CLI."""

    entry_type: NormalizedEntryType
    content: str
    tool_name: str = ""
    metadata: dict = field(default_factory=dict)

    def to_doc(self) -> dict:
        doc: dict = {"entry_type": self.entry_type.value, "content": self.content}
        if self.tool_name:
            doc["tool_name"] = self.tool_name
        if self.metadata:
            doc["metadata"] = self.metadata
        return doc


@dataclass(frozen=True)
class LogMsg:
    kind: LogMsgKind
    text: str = ""
    entry: NormalizedEntry | None = None
