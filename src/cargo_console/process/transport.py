"""Child process transport built on asyncio subprocesses."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from collections.abc import Sequence
from contextlib import suppress
from typing import Protocol

from cargo_console.errors import LaunchFailed, describe_launch_error
from cargo_console.models import Channel, ExitStatus

logger = logging.getLogger(__name__)

DEFAULT_GRACE_PERIOD = 3.0
DEFAULT_CHUNK_SIZE = 4096


class ProcessListener(Protocol):
    def on_output(self, channel: Channel, data: bytes) -> None: ...

    def on_finished(self, exit_code: int, exit_status: ExitStatus) -> None: ...


class ProcessTransport(Protocol):
    """Spawns one child process at a time and reports on it through a listener."""

    @property
    def running(self) -> bool: ...

    async def spawn(
        self,
        program: str,
        args: Sequence[str],
        cwd: str | None,
        listener: ProcessListener,
    ) -> None: ...

    async def stop(self) -> None: ...


class AsyncioProcessTransport:
    """Run a child process and stream its stdout/stderr chunks to a listener."""

    def __init__(
        self,
        grace_period: float = DEFAULT_GRACE_PERIOD,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        env: dict[str, str] | None = None,
    ) -> None:
        self.grace_period = grace_period
        self.chunk_size = chunk_size
        self.env = env
        self._process: asyncio.subprocess.Process | None = None
        self._watcher: asyncio.Task[None] | None = None
        self._stopping = False

    @property
    def running(self) -> bool:
        return self._process is not None

    async def spawn(
        self,
        program: str,
        args: Sequence[str],
        cwd: str | None,
        listener: ProcessListener,
    ) -> None:
        """Start ``program`` and return as soon as it is running."""
        if self._watcher is not None and not self._watcher.done():
            # The previous process is still terminating.
            await asyncio.shield(self._watcher)

        try:
            proc = await asyncio.create_subprocess_exec(
                program,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
                env=self.env,
                start_new_session=True,
            )
        except (OSError, ValueError) as e:
            raise LaunchFailed(program, describe_launch_error(e)) from e

        logger.debug("Spawned %s (pid %s)", program, proc.pid)
        self._process = proc
        self._stopping = False
        self._watcher = asyncio.create_task(self._watch(proc, listener))

    async def stop(self) -> None:
        """Terminate the running process, force-killing it after the grace period."""
        proc = self._process
        watcher = self._watcher
        if proc is None or watcher is None or self._stopping:
            return
        self._stopping = True

        self._signal(proc, signal.SIGTERM)
        try:
            await asyncio.wait_for(asyncio.shield(watcher), timeout=self.grace_period)
        except asyncio.TimeoutError:
            logger.warning("Process %s ignored SIGTERM for %.1fs, killing", proc.pid, self.grace_period)
            self._signal(proc, signal.SIGKILL)
            await asyncio.shield(watcher)

    async def _watch(self, proc: asyncio.subprocess.Process, listener: ProcessListener) -> None:
        assert proc.stdout is not None and proc.stderr is not None
        try:
            await asyncio.gather(
                self._pump(proc.stdout, Channel.STDOUT, listener),
                self._pump(proc.stderr, Channel.STDERR, listener),
            )
            returncode = await proc.wait()
        finally:
            self._process = None

        if returncode < 0:
            exit_code, status = -returncode, ExitStatus.CRASHED
        else:
            exit_code, status = returncode, ExitStatus.NORMAL
        logger.debug("Process %s finished: code=%s status=%s", proc.pid, exit_code, status.value)
        try:
            listener.on_finished(exit_code, status)
        except Exception:
            logger.exception("Listener failed handling termination of process %s", proc.pid)

    async def _pump(self, stream: asyncio.StreamReader, channel: Channel, listener: ProcessListener) -> None:
        # Drain to EOF even after the listener fails.
        failed = False
        while True:
            chunk = await stream.read(self.chunk_size)
            if not chunk:
                break
            try:
                listener.on_output(channel, chunk)
            except Exception:
                if not failed:
                    logger.exception("Listener failed handling %s output", channel.value)
                failed = True

    @staticmethod
    def _signal(proc: asyncio.subprocess.Process, sig: int) -> None:
        # The child leads its own process group, so this reaches grandchildren too.
        with suppress(ProcessLookupError, PermissionError):
            os.killpg(proc.pid, sig)
            return
        with suppress(ProcessLookupError):
            proc.send_signal(sig)
