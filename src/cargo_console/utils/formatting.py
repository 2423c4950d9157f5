"""Console message formatting for cargo commands."""

from __future__ import annotations

import shlex
import signal
from collections.abc import Sequence
from datetime import datetime


def timestamp(now: datetime | None = None) -> str:
    return (now or datetime.now()).strftime("%H:%M:%S")


def format_elapsed(seconds: float) -> str:
    """Format elapsed seconds the way summaries show them."""
    return f"{max(seconds, 0.0):.2f}"


def format_command_line(program: str, args: Sequence[str]) -> str:
    return shlex.join([program, *args])


def format_start_banner(program: str, args: Sequence[str]) -> str:
    return f"[{timestamp()}] Starting: {format_command_line(program, args)}\n"


def format_success_summary(elapsed: float) -> str:
    return f"[{timestamp()}] Finished in {format_elapsed(elapsed)}s\n"


def format_failure_summary(exit_code: int) -> str:
    return f"[{timestamp()}] Exited with code {exit_code}\n"


def format_crash_summary(signal_number: int, stopped: bool = False) -> str:
    """Summary for a process that did not exit on its own."""
    if stopped:
        return f"[{timestamp()}] Stopped\n"
    try:
        name = signal.Signals(signal_number).name
    except ValueError:
        name = f"signal {signal_number}"
    return f"[{timestamp()}] Process crashed ({name})\n"


def format_launch_failure(program: str, reason: str) -> str:
    return f"[{timestamp()}] Failed to start {program}: {reason}\n"
