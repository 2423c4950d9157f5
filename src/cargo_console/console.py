"""Render console events to a terminal with rich."""

from __future__ import annotations

from rich.console import Console

from cargo_console.models import Channel, ConsoleEvent, Style

STYLE_MAP: dict[Style, str] = {
    Style.PLAIN: "",
    Style.INFO: "cyan",
    Style.SUCCESS: "bold green",
    Style.ERROR: "bold red",
}


class RichConsoleSink:
    """Console sink writing each event as it arrives."""

    def __init__(self, console: Console, clear_on_start: bool = False) -> None:
        self.console = console
        self.clear_on_start = clear_on_start
        self.project_created: list[str] = []

    def __call__(self, event: ConsoleEvent) -> None:
        if event.clear and self.clear_on_start:
            self.console.clear()
        style = STYLE_MAP[event.style]
        if event.channel is Channel.STDERR and event.style is Style.PLAIN:
            style = "dim"
        self.console.print(event.text, style=style or None, end="", markup=False, highlight=False, soft_wrap=True)

    def on_project_created(self, path: str) -> None:
        self.project_created.append(path)
        self.console.print(f"Project created: {path}", style="green", markup=False, highlight=False)
