"""Configuration loading: TOML file + environment variable overlay."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore[no-redef]


DEFAULT_CONFIG_DIR = Path.home() / ".config" / "agentexecutors"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.toml"


DEFAULT_CONFIG_TOML = """\
[general]
workspace_root = "."
default_profile = "JBAI"

[logging]
level = "WARNING"

[executors.CLAUDE_CODE.DEFAULT]
dangerously_skip_permissions = true

[executors.CLAUDE_CODE.PLAN]
dangerously_skip_permissions = false

[executors.CODEX.DEFAULT]
sandbox = "workspace-write"

[executors.GEMINI.DEFAULT]
yolo = true

[executors.OPENCODE.DEFAULT]
auto_approve = true

[executors.JBAI.DEFAULT]
client = "CLAUDE"

[executors.JBAI.CODEX]
client = "CODEX"

[executors.JBAI.GEMINI]
client = "GEMINI"

[executors.JBAI.OPENCODE]
client = "OPENCODE"
"""


@dataclass
class LoggingConfig:
    level: str = "WARNING"


@dataclass
class AppConfig:
    workspace_root: str = "."
    default_profile: str = "JBAI"
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    # executor kind -> variant name -> executor document
    executors: dict[str, dict[str, dict]] = field(default_factory=dict)
    config_path: Path = DEFAULT_CONFIG_PATH

    @property
    def resolved_workspace_root(self) -> Path:
        return Path(self.workspace_root).expanduser()


def _env_overlay(config: AppConfig) -> None:
    """Override config values with environment variables where applicable."""
    if profile := os.environ.get("AGENTEXECUTORS_PROFILE"):
        config.default_profile = profile
    if level := os.environ.get("AGENTEXECUTORS_LOG_LEVEL"):
        config.logging.level = level.upper()


def _parse_executors(raw: dict) -> dict[str, dict[str, dict]]:
    executors: dict[str, dict[str, dict]] = {}
    for kind, variants in raw.items():
        if not isinstance(variants, dict):
            continue
        executors[kind.upper()] = {
            name.upper(): dict(doc) for name, doc in variants.items() if isinstance(doc, dict)
        }
    return executors


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from TOML file with env var overlay."""
    path = config_path or DEFAULT_CONFIG_PATH

    if path.exists():
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    else:
        raw = tomllib.loads(DEFAULT_CONFIG_TOML)

    general = raw.get("general", {})
    logging_raw = raw.get("logging", {})

    config = AppConfig(
        workspace_root=general.get("workspace_root", "."),
        default_profile=general.get("default_profile", "JBAI"),
        logging=LoggingConfig(level=str(logging_raw.get("level", "WARNING")).upper()),
        executors=_parse_executors(raw.get("executors", {})),
        config_path=path,
    )

    _env_overlay(config)
    return config


def init_config(config_path: Path | None = None) -> Path:
    """Create default config file."""
    path = config_path or DEFAULT_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_CONFIG_TOML)
    return path
