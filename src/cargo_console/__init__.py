"""cargo-console: run cargo commands with streamed, styled console output."""

__version__ = "0.1.0"
