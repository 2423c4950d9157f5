"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from cargo_console.config import AppConfig, CargoConfig, ConsoleConfig, LoggingConfig, WorkspaceConfig
from cargo_console.errors import LaunchFailed
from cargo_console.models import Channel, ConsoleEvent, ExitStatus
from cargo_console.process.transport import ProcessListener


class FakeTransport:
    """In-memory transport; tests drive output and termination by hand."""

    def __init__(self, launch_error: LaunchFailed | None = None) -> None:
        self.launch_error = launch_error
        self.spawned: list[tuple[str, list[str], str | None]] = []
        self.listener: ProcessListener | None = None
        self.stop_calls = 0
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def spawn(self, program: str, args: Sequence[str], cwd: str | None, listener: ProcessListener) -> None:
        if self.launch_error is not None:
            raise self.launch_error
        self.spawned.append((program, list(args), cwd))
        self.listener = listener
        self._running = True

    async def stop(self) -> None:
        self.stop_calls += 1
        if self._running:
            self.finish(15, ExitStatus.CRASHED)

    def emit(self, channel: Channel, data: bytes) -> None:
        assert self.listener is not None
        self.listener.on_output(channel, data)

    def finish(self, exit_code: int = 0, status: ExitStatus = ExitStatus.NORMAL) -> None:
        assert self.listener is not None
        self._running = False
        self.listener.on_finished(exit_code, status)


class ScriptedTransport(FakeTransport):
    """Fake transport that plays back fixed output and exits on its own."""

    def __init__(self, stdout: bytes = b"", stderr: bytes = b"", exit_code: int = 0, **kwargs) -> None:
        super().__init__(**kwargs)
        self.script = (stdout, stderr, exit_code)

    async def spawn(self, program: str, args: Sequence[str], cwd: str | None, listener: ProcessListener) -> None:
        await super().spawn(program, args, cwd, listener)
        stdout, stderr, exit_code = self.script
        if stdout:
            self.emit(Channel.STDOUT, stdout)
        if stderr:
            self.emit(Channel.STDERR, stderr)
        self.finish(exit_code)


class EventRecorder:
    def __init__(self) -> None:
        self.events: list[ConsoleEvent] = []
        self.created: list[str] = []

    def __call__(self, event: ConsoleEvent) -> None:
        self.events.append(event)

    def on_project_created(self, path: str) -> None:
        self.created.append(path)

    @property
    def text(self) -> str:
        return "".join(event.text for event in self.events)

    def channel_text(self, channel: Channel) -> str:
        return "".join(event.text for event in self.events if event.channel is channel)


@pytest.fixture
def app_config(tmp_path):
    """Create a test configuration."""
    return AppConfig(
        cargo=CargoConfig(path="cargo", stop_grace_period=0.5),
        workspace=WorkspaceConfig(path=str(tmp_path / "projects")),
        console=ConsoleConfig(encoding="utf-8"),
        logging=LoggingConfig(level="DEBUG", file=str(tmp_path / "test.log")),
    )


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def scripted_transport():
    """Factory for transports that finish immediately with canned output."""
    return ScriptedTransport
