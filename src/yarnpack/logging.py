# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""User-facing build output rendered through Rich."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from typing import Literal

from rich.console import Console
from rich.panel import Panel
from rich.text import Text


def is_tty() -> bool:
    """Return ``True`` when stdout appears to be a TTY."""

    try:
        return sys.stdout.isatty()
    except (AttributeError, ValueError):
        return False


def make_console(*, color: bool) -> Console:
    """Return a console that only emits colour on terminals."""

    tty = is_tty()
    color_system: Literal["auto"] | None = "auto" if color and tty else None
    return Console(
        color_system=color_system,
        force_terminal=tty,
        no_color=not (color and tty),
        emoji=False,
        soft_wrap=True,
        highlight=False,
    )


@dataclass(slots=True)
class BuildLog:
    """Section headers, progress lines and error blocks for build output."""

    console: Console = field(default_factory=lambda: make_console(color=True))

    def header(self, title: str) -> None:
        self.console.print()
        self.console.print(Text(f"[{title}]", style="bold magenta"))

    def info(self, message: str) -> None:
        self.console.print(Text(message, style="default"))

    def warning(self, message: str) -> None:
        self.console.print(Text(f"! {message}", style="yellow"))

    def output(self, text: str) -> None:
        """Echo captured subprocess output verbatim."""

        stripped = text.rstrip()
        if stripped:
            self.console.print(Text(stripped, style="dim"))

    def error(self, header: str, body: str) -> None:
        self.console.print()
        self.console.print(Panel(Text(body), title=Text(f"[Error: {header}]", style="bold red"), border_style="red"))


def configure_logging(*, debug: bool) -> None:
    """Route module loggers to stderr at debug level when ``debug`` is set."""

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


__all__ = ["BuildLog", "configure_logging", "is_tty", "make_console"]
