"""Data models for cargo-console."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class CommandKind(Enum):
    NONE = "none"
    NEW_PROJECT = "new"
    BUILD = "build"
    RUN = "run"
    CLEAN = "clean"


class BuildTarget(Enum):
    DEBUG = "debug"
    RELEASE = "release"


class ProjectTemplate(Enum):
    BINARY = "bin"
    LIBRARY = "lib"


class Channel(Enum):
    STDOUT = "stdout"
    STDERR = "stderr"


class Style(Enum):
    PLAIN = "plain"
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


class ExitStatus(Enum):
    NORMAL = "normal"
    CRASHED = "crashed"


@dataclass(frozen=True)
class CommandRequest:
    """A single cargo invocation, fixed once issued."""

    kind: CommandKind
    target: BuildTarget | None = None
    arguments: tuple[str, ...] = ()
    working_dir: str | None = None
    template: ProjectTemplate | None = None
    path: str = ""


@dataclass(frozen=True)
class ConsoleEvent:
    """One unit of styled text for the console.

    ``channel`` is None for banners and summaries produced by the runner itself.
    ``sequence`` counts events per channel within one command.
    """

    text: str
    channel: Channel | None = None
    style: Style = Style.PLAIN
    sequence: int = 0
    clear: bool = False


@dataclass(frozen=True)
class CommandResult:
    """Outcome of the last finished command."""

    kind: CommandKind
    exit_code: int = 0
    exit_status: ExitStatus = ExitStatus.NORMAL
    elapsed: float = 0.0
    error: str = ""

    @property
    def succeeded(self) -> bool:
        return not self.error and self.exit_status is ExitStatus.NORMAL and self.exit_code == 0
