"""Configuration management using TOML + environment variables."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomllib
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore[no-redef]

import tomli_w

CONFIG_DIR = Path.home() / ".cargo-console"
CONFIG_FILE = CONFIG_DIR / "config.toml"


@dataclass
class CargoConfig:
    path: str = "cargo"
    stop_grace_period: float = 3.0


@dataclass
class WorkspaceConfig:
    path: str = "~/projects"


@dataclass
class ConsoleConfig:
    encoding: str = ""
    clear_on_start: bool = False


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    file: str = "~/.cargo-console/cargo-console.log"


@dataclass
class AppConfig:
    cargo: CargoConfig = field(default_factory=CargoConfig)
    workspace: WorkspaceConfig = field(default_factory=WorkspaceConfig)
    console: ConsoleConfig = field(default_factory=ConsoleConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def ensure_config_dir() -> None:
    """Create config directory with secure permissions."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    os.chmod(CONFIG_DIR, 0o700)


def load_config() -> AppConfig:
    """Load configuration from TOML file with env var overrides."""
    config = AppConfig()

    if CONFIG_FILE.exists():
        with open(CONFIG_FILE, "rb") as f:
            data = tomllib.load(f)

        cargo = data.get("cargo", {})
        config.cargo.path = cargo.get("path", config.cargo.path)
        config.cargo.stop_grace_period = float(cargo.get("stop_grace_period", config.cargo.stop_grace_period))

        workspace = data.get("workspace", {})
        config.workspace.path = workspace.get("path", config.workspace.path)

        console = data.get("console", {})
        config.console.encoding = console.get("encoding", config.console.encoding)
        config.console.clear_on_start = console.get("clear_on_start", config.console.clear_on_start)

        logging_cfg = data.get("logging", {})
        config.logging.level = logging_cfg.get("level", config.logging.level)
        config.logging.file = logging_cfg.get("file", config.logging.file)

    # Environment variable overrides
    if env_cargo := os.environ.get("CARGO_CONSOLE_CARGO_PATH"):
        config.cargo.path = env_cargo
    if env_grace := os.environ.get("CARGO_CONSOLE_GRACE_PERIOD"):
        config.cargo.stop_grace_period = float(env_grace)
    if env_workspace := os.environ.get("CARGO_CONSOLE_WORKSPACE"):
        config.workspace.path = env_workspace
    if env_encoding := os.environ.get("CARGO_CONSOLE_ENCODING"):
        config.console.encoding = env_encoding
    if env_log_level := os.environ.get("CARGO_CONSOLE_LOG_LEVEL"):
        config.logging.level = env_log_level

    return config


def save_config(config: AppConfig) -> None:
    """Save configuration to TOML file."""
    ensure_config_dir()

    data = {
        "cargo": {
            "path": config.cargo.path,
            "stop_grace_period": config.cargo.stop_grace_period,
        },
        "workspace": {
            "path": config.workspace.path,
        },
        "console": {
            "encoding": config.console.encoding,
            "clear_on_start": config.console.clear_on_start,
        },
        "logging": {
            "level": config.logging.level,
            "file": config.logging.file,
        },
    }

    with open(CONFIG_FILE, "wb") as f:
        tomli_w.dump(data, f)

    os.chmod(CONFIG_FILE, 0o600)
