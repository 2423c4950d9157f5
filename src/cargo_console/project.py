"""Cargo project discovery and per-project properties."""

from __future__ import annotations

import logging
import shlex
import sys
from dataclasses import dataclass
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomllib
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore[no-redef]

import tomli_w

from cargo_console.models import BuildTarget

logger = logging.getLogger(__name__)

MANIFEST_NAME = "Cargo.toml"
PROJECT_DATA_DIR = ".cargo-console"
PROPERTIES_FILE = "properties.toml"


@dataclass
class ProjectProperties:
    target: BuildTarget = BuildTarget.DEBUG
    arguments: str = ""

    def argument_list(self) -> list[str]:
        """Split the run arguments the way a shell would."""
        try:
            return shlex.split(self.arguments)
        except ValueError:
            logger.warning("Unparsable run arguments %r, passing them as one argument", self.arguments)
            return [self.arguments] if self.arguments else []


def is_cargo_project(path: str | Path) -> bool:
    return (Path(path).expanduser() / MANIFEST_NAME).is_file()


def find_project_root(start: str | Path) -> Path | None:
    """Return the nearest directory at or above ``start`` holding a Cargo.toml."""
    current = Path(start).expanduser().resolve()
    if current.is_file():
        current = current.parent
    for directory in (current, *current.parents):
        if (directory / MANIFEST_NAME).is_file():
            return directory
    return None


def properties_path(project_path: str | Path) -> Path:
    return Path(project_path).expanduser() / PROJECT_DATA_DIR / PROPERTIES_FILE


def load_properties(project_path: str | Path) -> ProjectProperties:
    """Load project properties, falling back to defaults."""
    props = ProjectProperties()
    path = properties_path(project_path)
    if not path.exists():
        return props

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        logger.warning("Failed to read project properties: %s", path, exc_info=True)
        return props

    try:
        props.target = BuildTarget(data.get("target", props.target.value))
    except ValueError:
        logger.warning("Unknown build target in %s: %r", path, data.get("target"))
    props.arguments = str(data.get("arguments", props.arguments))
    return props


def save_properties(project_path: str | Path, props: ProjectProperties) -> None:
    """Save project properties under the project's data directory."""
    path = properties_path(project_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "target": props.target.value,
        "arguments": props.arguments,
    }

    with open(path, "wb") as f:
        tomli_w.dump(data, f)
