"""System utility checks."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

from cargo_console.errors import describe_launch_error


def check_cargo_cli(cargo_path: str = "cargo") -> tuple[bool, str]:
    """Run ``cargo --version`` with the configured executable.

    Returns ``(True, version)`` or ``(False, reason)``; the reason uses the
    same wording as a failed command launch.
    """
    resolved = shutil.which(cargo_path) or cargo_path
    try:
        result = subprocess.run(
            [resolved, "--version"],
            capture_output=True,
            text=True,
            timeout=10,
        )
    except subprocess.TimeoutExpired:
        return False, f"{cargo_path} --version timed out"
    except (OSError, ValueError) as e:
        return False, f"Failed to start {cargo_path}: {describe_launch_error(e)}. Install Rust from https://rustup.rs"

    if result.returncode != 0:
        return False, f"{cargo_path} --version exited with code {result.returncode}"
    return True, result.stdout.strip() or result.stderr.strip()


def check_project_dir(path: str) -> tuple[bool, str]:
    """Validate a project directory path."""
    resolved = Path(path).expanduser().resolve()
    if not resolved.exists():
        return False, f"Directory not found: {resolved}"
    if not resolved.is_dir():
        return False, f"Not a directory: {resolved}"
    return True, str(resolved)
