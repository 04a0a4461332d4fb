"""Exit codes and exit helpers for the CLI.

Exit code 1 means the cluster side failed (login, capture, creation calls).
Exit code 2 means the command line or an input file is unusable; nothing
has been written to a target cluster in that case.
"""

from typing import NoReturn

import typer

from dremioclone.cli.common.output import out

EXIT_FAILURE = 1
EXIT_USAGE = 2


def cancelled(msg: str = "Cancelled") -> NoReturn:
    """Stop without error, e.g. when a confirmation prompt is declined."""
    out.info(msg)
    raise typer.Exit(0)


def die(msg: str, code: int = EXIT_FAILURE) -> NoReturn:
    """Print `msg` as an error and exit with `code`."""
    out.error(msg)
    raise typer.Exit(code)


def exit_from_exc(exc: Exception, *, message: str, code: int = EXIT_FAILURE) -> NoReturn:
    """Like `die`, chaining `exc` so `--verbose` tracebacks keep the cause."""
    out.error(message)
    raise typer.Exit(code) from exc


def exit_unless_ok(ok: bool) -> None:
    """Exit with EXIT_FAILURE when a command finished with soft failures."""
    if not ok:
        raise typer.Exit(EXIT_FAILURE)
