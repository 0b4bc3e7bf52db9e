"""MCP server configuration fragments for each agent's native config file."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field


@dataclass(frozen=True)
class McpConfig:
    """Instruction for merging MCP server entries into an agent's config.

    ``servers_path`` is the key path to the server table inside the native
    document. ``template`` is the skeleton used when no document exists yet.
    With ``replace_existing`` the server table is overwritten by
    ``preconfigured``; otherwise only missing entries are added.
    """

    servers_path: list[str]
    template: dict
    preconfigured: dict = field(default_factory=dict)
    replace_existing: bool = False
    is_toml_config: bool = False

    def merge_into(self, document: dict | None) -> dict:
        """Return a new document with the preconfigured servers merged in."""
        result = copy.deepcopy(document) if document else copy.deepcopy(self.template)

        target = result
        for key in self.servers_path[:-1]:
            node = target.get(key)
            if not isinstance(node, dict):
                node = {}
                target[key] = node
            target = node

        leaf = self.servers_path[-1]
        existing = target.get(leaf)
        if self.replace_existing or not isinstance(existing, dict):
            target[leaf] = copy.deepcopy(self.preconfigured)
        else:
            for name, server in self.preconfigured.items():
                existing.setdefault(name, copy.deepcopy(server))
        return result

    def to_doc(self) -> dict:
        return {
            "servers_path": list(self.servers_path),
            "template": self.template,
            "preconfigured": self.preconfigured,
            "replace_existing": self.replace_existing,
            "is_toml_config": self.is_toml_config,
        }
