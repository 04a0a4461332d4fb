"""CLI application for cloning Dremio cluster state."""

import typer

from dremioclone.cli.commands.crypto import decrypt, encrypt
from dremioclone.cli.commands.state import load, save
from dremioclone.cli.common.logs import configure_logging
from dremioclone.cli.common.options import VerboseOpt

app = typer.Typer(
    help="dremio-clone - copy spaces, datasets, sources and users between clusters",
    no_args_is_help=True,
)


@app.callback()
def _init(verbose: bool = VerboseOpt):
    """Configure logging for every command."""
    configure_logging(verbose)


app.command("encrypt")(encrypt)
app.command("decrypt")(decrypt)
app.command("save")(save)
app.command("load")(load)


if __name__ == "__main__":
    app()
