"""Execution business logic: resolve a request's profile and spawn the agent."""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path

from agentexecutors.infra.approvals import ExecutorApprovalService
from agentexecutors.infra.executors.errors import UnknownExecutorType
from agentexecutors.infra.executors.jbai import Jbai
from agentexecutors.infra.executors.registry import CodingAgent
from agentexecutors.infra.profiles import ExecutorConfigs
from agentexecutors.infra.subprocess_mgr import SpawnedChild
from agentexecutors.models.agent import ExecutionEnv
from agentexecutors.models.request import (
    CodingAgentFollowUpRequest,
    CodingAgentInitialRequest,
)

logger = logging.getLogger(__name__)


class ExecutionService:
    """Turns coding agent requests into running processes."""

    def __init__(
        self,
        approvals: ExecutorApprovalService,
        profiles: ExecutorConfigs | None = None,
    ) -> None:
        self._approvals = approvals
        self._profiles = profiles

    @property
    def profiles(self) -> ExecutorConfigs:
        if self._profiles is None:
            return ExecutorConfigs.get_cached()
        return self._profiles

    def resolve_agent(
        self, request: CodingAgentInitialRequest | CodingAgentFollowUpRequest
    ) -> CodingAgent:
        """Build the agent for the request's profile with its overrides applied."""
        profile_id = request.executor_profile_id
        agent = self.profiles.get_coding_agent(profile_id)
        if agent is None:
            raise UnknownExecutorType(str(profile_id))

        if request.model_override is not None and isinstance(agent, Jbai):
            agent = replace(agent, model=request.model_override)
            logger.debug("Model override for %s: %s", profile_id, request.model_override)

        agent.use_approvals(self._approvals)
        return agent

    async def spawn_initial(
        self,
        request: CodingAgentInitialRequest,
        current_dir: Path,
        env: ExecutionEnv,
    ) -> SpawnedChild:
        """Start a fresh agent run for ``request``."""
        agent = self.resolve_agent(request)
        effective_dir = request.effective_dir(current_dir)
        logger.info(
            "Starting %s in %s", request.executor_profile_id, effective_dir
        )
        return await agent.spawn(effective_dir, request.prompt, env)

    async def spawn_follow_up(
        self,
        request: CodingAgentFollowUpRequest,
        current_dir: Path,
        env: ExecutionEnv,
    ) -> SpawnedChild:
        """Continue the agent session named in ``request``."""
        agent = self.resolve_agent(request)
        effective_dir = request.effective_dir(current_dir)
        logger.info(
            "Continuing %s session %s in %s",
            request.executor_profile_id, request.session_id, effective_dir,
        )
        return await agent.spawn_follow_up(
            effective_dir, request.prompt, request.session_id, env
        )
