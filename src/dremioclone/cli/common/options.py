"""Common CLI options for the CLI."""

import typer

DEFAULT_STATE_FILE = "./dremio_cluster_state.json"

HostOpt = typer.Option(
    ...,
    "--host",
    envvar="DREMIO_CLONE_HOST",
    help="The coordinator hostname of the cluster",
)

PortOpt = typer.Option(
    9047,
    "--port",
    envvar="DREMIO_CLONE_PORT",
    help="The coordinator port of the cluster",
)

SslOpt = typer.Option(
    False,
    "--ssl/--no-ssl",
    envvar="DREMIO_CLONE_SSL",
    help="Whether the coordinator is an https connection",
)

UserOpt = typer.Option(
    ...,
    "--user",
    envvar="DREMIO_CLONE_USER",
    help="The username of the admin to connect to the cluster",
)

PasswordOpt = typer.Option(
    None,
    "--password",
    envvar="DREMIO_CLONE_PASSWORD",
    help="The admin password. Not required if a user credential file is supplied",
    show_default=False,
)

UserCredFileOpt = typer.Option(
    None,
    "--user-cred-file",
    help="JSON file with [{userName, password}] user credentials",
)

UserCredFileKeyOpt = typer.Option(
    None,
    "--user-cred-file-key",
    envvar="DREMIO_CLONE_USER_CRED_KEY",
    help="The key with which to decrypt the user credentials file",
    show_default=False,
)

SourceCredFileOpt = typer.Option(
    ...,
    "--source-cred-file",
    help="JSON file mapping source names to credential config fields",
)

SourceCredFileKeyOpt = typer.Option(
    None,
    "--source-cred-file-key",
    envvar="DREMIO_CLONE_SOURCE_CRED_KEY",
    help="The key with which to decrypt the source credentials file",
    show_default=False,
)

StateFileOpt = typer.Option(
    DEFAULT_STATE_FILE,
    "--state-file",
    help="The cluster state file",
)

CreateFirstUserOpt = typer.Option(
    False,
    "--create-first-user",
    help="Create the admin user as the first user of the cluster. "
    "Otherwise this user must already exist in the cluster",
)

FailOnErrorOpt = typer.Option(
    False,
    "--fail-on-error",
    help="Abort upon the first error instead of continuing as far as possible",
)

MaxConcurrencyOpt = typer.Option(
    None,
    "--max-concurrency",
    min=1,
    help="Maximum number of creation calls in flight (default: unbounded)",
)

ConfirmOpt = typer.Option(
    False,
    "--confirm/--no-confirm",
    help="Ask for confirmation before loading into the target cluster",
)

VerboseOpt = typer.Option(
    False,
    "--verbose",
    "-v",
    help="Show debug logging",
)
