"""Output formatting utilities for the CLI."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Mapping

import questionary
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

from dremioclone.cli.common.tui_style import QUESTIONARY_STYLE_CONFIRM
from dremioclone.core.replicator import ReplayReport

_THEME = Theme(
    {
        "ok": "bold green",
        "warn": "yellow",
        "err": "bold red",
        "title": "bold cyan",
        "meta": "dim",
    }
)

console = Console(theme=_THEME)
err_console = Console(theme=_THEME, stderr=True)


@dataclass(frozen=True)
class Out:
    """Output formatter for CLI messages and tables."""

    def _q_try(self, fn, *args, **kwargs):
        """Call questionary prompts and drop unsupported kwargs on older versions."""
        try:
            return fn(*args, **kwargs)
        except TypeError:
            for k in ("pointer", "auto_enter"):
                kwargs.pop(k, None)
            return fn(*args, **kwargs)

    def _q(self, message: str) -> str:
        """Prefix Questionary prompts to be DREMIO-CLONE consistent."""
        return f"[DREMIO-CLONE] {message}"

    def info(self, msg: str) -> None:
        """Print an info message."""
        console.print(f"[title]›[/] {msg}")

    @contextmanager
    def status(self, msg: str):
        """Show a transient status spinner while work is in progress."""
        with console.status(msg, spinner="dots"):
            yield

    def success(self, msg: str) -> None:
        """Print a success message."""
        console.print(f"[ok]✓[/] {msg}")

    def warn(self, msg: str) -> None:
        """Print a warning message."""
        err_console.print(f"[warn]⚠[/] {msg}")

    def error(self, msg: str) -> None:
        """Print an error message."""
        err_console.print(f"[err]✗[/] {msg}")

    def header(self, title: str) -> None:
        """Print a header message."""
        console.print(f"[title]{title}[/]")

    def kv(self, items: Mapping[str, Any]) -> None:
        """Print key-value pairs."""
        for k, v in items.items():
            console.print(f"[meta]{k}[/]: {escape(str(v))}")

    def confirm(self, message: str, *, default: bool = False) -> bool:
        """
        Ask the user for confirmation using a standardized Questionary prompt.

        Args:
            message: Confirmation question shown to the user.
            default: Default answer if the user just presses enter.

        Returns:
            True if the user confirms, False otherwise.
        """
        console.print("[meta]Use y/n then Enter[/]")

        prompt = self._q_try(
            questionary.confirm,
            self._q(message),
            default=default,
            style=QUESTIONARY_STYLE_CONFIRM,
            qmark="✦",
            auto_enter=False,
            pointer="❯",
        )
        return bool(prompt.ask())

    def failures_table(self, report: ReplayReport, title: str = "Failed") -> None:
        """Render the creation attempts the target cluster rejected."""
        t = Table(title=title, show_lines=False)
        t.add_column("Kind", style="meta", no_wrap=True)
        t.add_column("Name", style="ok")
        t.add_column("Error", style="err")

        for f in report.failed:
            t.add_row(f.kind, escape(f.name), escape(f.error))

        err_console.print(t)

    def skipped_table(self, report: ReplayReport, title: str = "Not replayed") -> None:
        """Render entities that were deliberately left out of replay."""
        t = Table(title=title, show_lines=False)
        t.add_column("Kind", style="meta", no_wrap=True)
        t.add_column("Name", style="ok")
        t.add_column("Reason", style="warn")

        for s in report.skipped:
            t.add_row(s.kind, escape(s.name), escape(s.reason))

        console.print(t)

    def replay_summary(self, report: ReplayReport) -> None:
        """Print the end-of-replay summary (counts plus failed/skipped tables)."""
        self.header("Replay summary")
        self.kv(
            {
                "Created": len(report.created),
                "Failed": len(report.failed),
                "Not replayed": len(report.skipped),
            }
        )
        if report.skipped:
            self.skipped_table(report)
        if report.failed:
            self.failures_table(report)


class ConsoleReplayListener:
    """Replay listener printing one line per creation attempt."""

    def created(self, kind: str, name: str) -> None:
        out.success(f"Created {kind}: {escape(name)}")

    def failed(self, kind: str, name: str, error: BaseException) -> None:
        out.error(f"Error whilst creating {kind}: {escape(name)}")
        err_console.print(f"  {escape(str(error))}", style="meta")


out = Out()
