"""Approval service protocol consulted before agent-initiated actions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class ApprovalStatus(str, Enum):
    APPROVED = "approved"
    DENIED = "denied"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class ApprovalRequest:
    """A single action an agent wants to perform."""

    tool_name: str
    tool_input: dict
    tool_call_id: str = ""


@runtime_checkable
class ExecutorApprovalService(Protocol):
    """Shared service deciding whether an agent action may proceed.

    Executors only hold and forward a reference; they never interpret the
    decision themselves.
    """

    async def request_approval(self, request: ApprovalRequest) -> ApprovalStatus:
        ...


class AutoApprovalService:
    """Approves every request. Used when no interactive approver is wired up."""

    async def request_approval(self, request: ApprovalRequest) -> ApprovalStatus:
        logger.debug("Auto-approving %s (%s)", request.tool_name, request.tool_call_id)
        return ApprovalStatus.APPROVED
