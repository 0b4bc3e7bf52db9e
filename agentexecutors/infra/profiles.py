"""Executor profile registry backed by the TOML configuration."""

from __future__ import annotations

import logging

from agentexecutors.config import DEFAULT_CONFIG_TOML, AppConfig, load_config, tomllib
from agentexecutors.infra.executors.registry import CodingAgent, build_agent
from agentexecutors.models.agent import BaseCodingAgent
from agentexecutors.models.profile import DEFAULT_VARIANT, ExecutorProfileId

logger = logging.getLogger(__name__)

_cached: ExecutorConfigs | None = None


class ExecutorConfigs:
    """Named executor variants, keyed by executor kind.

    Every lookup builds a fresh agent, so callers may mutate the result
    (model override, approvals) without affecting other runs.
    """

    def __init__(self, executors: dict[BaseCodingAgent, dict[str, dict]]) -> None:
        self._executors = executors

    @classmethod
    def from_config(cls, config: AppConfig) -> ExecutorConfigs:
        """Built-in defaults overlaid with the variants defined in ``config``."""
        defaults = tomllib.loads(DEFAULT_CONFIG_TOML).get("executors", {})
        merged: dict[BaseCodingAgent, dict[str, dict]] = {}
        for source in (defaults, config.executors):
            for kind_name, variants in source.items():
                try:
                    kind = BaseCodingAgent(kind_name.upper())
                except ValueError:
                    logger.warning("Ignoring unknown executor in config: %s", kind_name)
                    continue
                target = merged.setdefault(kind, {})
                for variant, doc in variants.items():
                    target[variant.upper()] = dict(doc)
        return cls(merged)

    @classmethod
    def get_cached(cls) -> ExecutorConfigs:
        global _cached
        if _cached is None:
            _cached = cls.from_config(load_config())
        return _cached

    @classmethod
    def reload(cls) -> ExecutorConfigs:
        global _cached
        _cached = None
        return cls.get_cached()

    def get_coding_agent(self, profile_id: ExecutorProfileId) -> CodingAgent | None:
        """Build the agent for ``profile_id``, or None if no such variant exists.

        A profile id without a variant selects the DEFAULT variant.
        """
        variants = self._executors.get(profile_id.executor)
        if variants is None:
            return None

        doc = variants.get((profile_id.variant or DEFAULT_VARIANT).upper())
        if doc is None:
            logger.debug("No profile variant for %s", profile_id)
            return None

        try:
            return build_agent(profile_id.executor, doc)
        except (ValueError, KeyError):
            logger.warning("Invalid profile definition for %s", profile_id, exc_info=True)
            return None

    def list_profiles(self) -> list[ExecutorProfileId]:
        return [
            ExecutorProfileId(kind, variant)
            for kind, variants in self._executors.items()
            for variant in variants
        ]
