"""Subprocess manager: direct async spawning of agent CLIs."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass

from agentexecutors.infra.executors.errors import SpawnError
from agentexecutors.infra.msg_store import MsgStore
from agentexecutors.models.agent import CommandSpec

logger = logging.getLogger(__name__)

OVERSIZED_LINE_MARKER = "[output line exceeded the stream limit and was dropped]"


@dataclass
class SpawnedChild:
    """Handle to a running agent process."""

    process: asyncio.subprocess.Process
    command: CommandSpec

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def stdout(self) -> asyncio.StreamReader | None:
        return self.process.stdout

    @property
    def stderr(self) -> asyncio.StreamReader | None:
        return self.process.stderr

    @property
    def returncode(self) -> int | None:
        return self.process.returncode

    async def wait(self) -> int:
        return await self.process.wait()


class SubprocessManager:
    """Spawns agent processes with piped stdout/stderr."""

    # Agents emit large single-line JSON events
    stream_limit = 10 * 1024 * 1024

    async def spawn(self, command: CommandSpec) -> SpawnedChild:
        """Start ``command`` and return as soon as the process exists."""
        env = os.environ.copy()
        if command.env:
            env.update(command.env)

        try:
            proc = await asyncio.create_subprocess_exec(
                command.program,
                *command.args,
                cwd=command.cwd,
                env=env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=self.stream_limit,
            )
        except OSError as e:
            raise SpawnError(f"Failed to spawn '{command.program}': {e}") from e

        logger.info("Spawned %s (pid=%s, cwd=%s)", command.program, proc.pid, command.cwd)
        return SpawnedChild(process=proc, command=command)


async def pipe_output(child: SpawnedChild, store: MsgStore) -> int:
    """Copy the child's stdout/stderr into ``store`` until it exits."""

    async def _read(stream: asyncio.StreamReader | None, push) -> None:
        if stream is None:
            return
        while True:
            try:
                line = await stream.readline()
            except ValueError:
                # readline drops the overlong chunk and stays usable
                logger.warning("Dropped oversized output line from pid %s", child.pid)
                push(OVERSIZED_LINE_MARKER)
                continue
            if not line:
                break
            text = line.decode("utf-8", errors="replace").rstrip("\n")
            if text:
                push(text)

    await asyncio.gather(
        _read(child.stdout, store.push_stdout),
        _read(child.stderr, store.push_stderr),
    )
    code = await child.wait()
    store.push_finished()
    return code
