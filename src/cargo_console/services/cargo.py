"""Cargo command runner: one command at a time, streamed to a console sink."""

from __future__ import annotations

import asyncio
import logging
import shlex
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from cargo_console.config import AppConfig
from cargo_console.errors import LaunchFailed, describe_launch_error
from cargo_console.models import (
    BuildTarget,
    Channel,
    CommandKind,
    CommandRequest,
    CommandResult,
    ConsoleEvent,
    ExitStatus,
    ProjectTemplate,
    Style,
)
from cargo_console.process.decoder import StreamDecoder, resolve_encoding
from cargo_console.process.transport import ProcessTransport
from cargo_console.project import ProjectProperties
from cargo_console.utils.formatting import (
    format_crash_summary,
    format_failure_summary,
    format_launch_failure,
    format_start_banner,
    format_success_summary,
)

logger = logging.getLogger(__name__)

ConsoleSink = Callable[[ConsoleEvent], None]
ProjectCreatedHandler = Callable[[str], None]

_TIMED_KINDS = (CommandKind.BUILD, CommandKind.RUN)


def build_arguments(request: CommandRequest) -> list[str]:
    """Build the cargo argument list for a request."""
    if request.kind is CommandKind.NEW_PROJECT:
        template = request.template or ProjectTemplate.BINARY
        return ["new", f"--{template.value}", "--", request.path]

    if request.kind in _TIMED_KINDS:
        args = [request.kind.value]
        if request.target is BuildTarget.RELEASE:
            args.append("--release")
        if request.kind is CommandKind.RUN and request.arguments:
            args.extend(["--", *request.arguments])
        return args

    if request.kind is CommandKind.CLEAN:
        return ["clean"]

    raise ValueError(f"No cargo arguments for {request.kind}")


@dataclass
class _Session:
    request: CommandRequest
    decoders: dict[Channel, StreamDecoder]
    started_at: float
    sequences: dict[Channel | None, int] = field(default_factory=dict)
    stop_requested: bool = False
    sink_failed: bool = False

    def next_sequence(self, channel: Channel | None) -> int:
        value = self.sequences.get(channel, 0)
        self.sequences[channel] = value + 1
        return value


class _SessionListener:
    """Routes transport callbacks for one session back into the runner."""

    def __init__(self, runner: CargoRunner, session: _Session) -> None:
        self._runner = runner
        self._session = session

    def on_output(self, channel: Channel, data: bytes) -> None:
        self._runner._handle_output(self._session, channel, data)

    def on_finished(self, exit_code: int, exit_status: ExitStatus) -> None:
        self._runner._handle_finished(self._session, exit_code, exit_status)


class CargoRunner:
    """Run cargo commands one at a time and report their output as console events."""

    def __init__(
        self,
        config: AppConfig,
        transport: ProcessTransport,
        on_console: ConsoleSink,
        on_project_created: ProjectCreatedHandler | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self.properties = ProjectProperties()
        self.project_path = ""
        self.last_result: CommandResult | None = None
        self._transport = transport
        self._on_console = on_console
        self._on_project_created = on_project_created
        self._clock = clock
        self._encoding = resolve_encoding(config.console.encoding)
        self._session: _Session | None = None
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def state(self) -> CommandKind:
        return self._session.request.kind if self._session is not None else CommandKind.NONE

    @property
    def is_running(self) -> bool:
        return self._session is not None

    def set_project_path(self, path: str) -> None:
        self.project_path = path

    async def create_project(self, template: ProjectTemplate, path: str) -> bool:
        """Run ``cargo new`` for ``path``."""
        return await self._start(CommandRequest(kind=CommandKind.NEW_PROJECT, template=template, path=path))

    async def build(self, target: BuildTarget | None = None) -> bool:
        return await self._start(
            CommandRequest(
                kind=CommandKind.BUILD,
                target=target or self.properties.target,
                working_dir=self.project_path or None,
            )
        )

    async def run(self, target: BuildTarget | None = None, arguments: Sequence[str] | None = None) -> bool:
        """Run the project; arguments default to the project properties."""
        if arguments is None:
            arguments = self.properties.argument_list()
        return await self._start(
            CommandRequest(
                kind=CommandKind.RUN,
                target=target or self.properties.target,
                arguments=tuple(arguments),
                working_dir=self.project_path or None,
            )
        )

    async def clean(self) -> bool:
        return await self._start(CommandRequest(kind=CommandKind.CLEAN, working_dir=self.project_path or None))

    async def stop(self) -> None:
        """Stop the running command; safe to call in any state."""
        if self._session is not None:
            self._session.stop_requested = True
        await self._transport.stop()

    async def wait(self) -> CommandResult | None:
        """Wait until no command is running and return the last result."""
        await self._idle.wait()
        return self.last_result

    async def _start(self, request: CommandRequest) -> bool:
        if self._session is not None:
            logger.debug("Ignoring %s: %s is still running", request.kind.value, self.state.value)
            return False

        session = _Session(
            request=request,
            decoders={channel: StreamDecoder(self._encoding) for channel in Channel},
            started_at=self._clock(),
        )
        self._session = session
        self._idle.clear()

        program = self.config.cargo.path
        args = build_arguments(request)
        if request.kind in _TIMED_KINDS:
            self._emit(session, format_start_banner(program, args), style=Style.INFO, clear=True)

        logger.info("Starting %s", shlex.join([program, *args]))
        try:
            await self._transport.spawn(program, args, request.working_dir, _SessionListener(self, session))
        except LaunchFailed as e:
            logger.warning("%s", e.message)
            self._fail_launch(session, program, e.reason)
            return False
        except asyncio.CancelledError:
            self._fail_launch(session, program, "cancelled")
            raise
        except Exception as e:
            logger.exception("Unexpected error starting %s", program)
            self._fail_launch(session, program, describe_launch_error(e))
            return False

        if session.stop_requested:
            await self._transport.stop()
        return True

    def _fail_launch(self, session: _Session, program: str, reason: str) -> None:
        self._emit(session, format_launch_failure(program, reason), style=Style.ERROR)
        self._finish(session, CommandResult(kind=session.request.kind, exit_code=-1, error=reason))

    def _handle_output(self, session: _Session, channel: Channel, data: bytes) -> None:
        if session is not self._session:
            return
        text = session.decoders[channel].decode(data)
        if text:
            self._relay(session, channel, text)

    def _handle_finished(self, session: _Session, exit_code: int, exit_status: ExitStatus) -> None:
        if session is not self._session:
            return
        for channel, decoder in session.decoders.items():
            tail = decoder.flush()
            if tail:
                self._relay(session, channel, tail)

        kind = session.request.kind
        elapsed = self._clock() - session.started_at
        if exit_status is ExitStatus.CRASHED:
            self._emit(session, format_crash_summary(exit_code, stopped=session.stop_requested), style=Style.ERROR)
        elif kind in _TIMED_KINDS:
            if exit_code == 0:
                self._emit(session, format_success_summary(elapsed), style=Style.SUCCESS)
            else:
                self._emit(session, format_failure_summary(exit_code), style=Style.ERROR)

        logger.info("%s finished: code=%s status=%s elapsed=%.3fs", kind.value, exit_code, exit_status.value, elapsed)
        self._finish(session, CommandResult(kind=kind, exit_code=exit_code, exit_status=exit_status, elapsed=elapsed))

    def _finish(self, session: _Session, result: CommandResult) -> None:
        self._session = None
        self.last_result = result
        self._idle.set()

        request = session.request
        if request.kind is CommandKind.NEW_PROJECT and result.succeeded and self._on_project_created is not None:
            self._on_project_created(request.path)

    def _relay(self, session: _Session, channel: Channel, text: str) -> None:
        style = Style.PLAIN
        if channel is Channel.STDERR and session.request.kind in _TIMED_KINDS:
            style = Style.INFO
        self._emit(session, text, channel=channel, style=style)

    def _emit(
        self,
        session: _Session,
        text: str,
        *,
        channel: Channel | None = None,
        style: Style = Style.PLAIN,
        clear: bool = False,
    ) -> None:
        event = ConsoleEvent(
            text=text,
            channel=channel,
            style=style,
            sequence=session.next_sequence(channel),
            clear=clear,
        )
        try:
            self._on_console(event)
        except Exception:
            # Output is lost but the command keeps running to completion.
            if not session.sink_failed:
                logger.exception("Console sink failed")
            session.sink_failed = True
