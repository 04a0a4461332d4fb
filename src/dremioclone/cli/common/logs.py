"""Logging setup for the CLI."""

import logging

from rich.logging import RichHandler

from dremioclone.cli.common.output import err_console


def configure_logging(verbose: bool = False) -> None:
    """Route log records to stderr through Rich; DEBUG when verbose, else WARNING."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(console=err_console, show_path=False, rich_tracebacks=verbose)
        ],
        force=True,
    )
    # one line per HTTP request is too chatty even for --verbose
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.INFO if verbose else logging.WARNING)
