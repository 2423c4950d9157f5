"""Error model and exit code contract."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    FAILURE = 1
    INVALID_ARGS = 2
    CONFIG_ERROR = 3


@dataclass
class CargoConsoleError(Exception):
    message: str
    code: ExitCode = ExitCode.FAILURE
    hint: str = ""

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message} Hint: {self.hint}"
        return self.message


class LaunchFailed(CargoConsoleError):
    """The executable could not be located or started."""

    def __init__(self, program: str, reason: str) -> None:
        super().__init__(
            f"Failed to start {program}: {reason}",
            hint="Check cargo.path in the configuration.",
        )
        self.program = program
        self.reason = reason


def describe_launch_error(exc: Exception) -> str:
    """Turn a spawn error into a short human-readable reason."""
    if isinstance(exc, FileNotFoundError):
        return f"not found: {exc.filename}" if exc.filename else "not found"
    if isinstance(exc, PermissionError):
        return "permission denied"
    if isinstance(exc, NotADirectoryError):
        return "working directory is not a directory"
    return getattr(exc, "strerror", None) or str(exc) or exc.__class__.__name__
