"""Application context management for the CLI."""

from dataclasses import dataclass, field

from dremioclone.cli.common.exits import EXIT_USAGE, die, exit_from_exc
from dremioclone.core.api import ClusterConnection
from dremioclone.core.auth import DremioConnector, make_connection
from dremioclone.core.credentials import load_logins
from dremioclone.core.errors import CredentialFileError
from dremioclone.core.models import Login


@dataclass
class CloneAppContext:
    """Application context holding the cluster connection and session factory."""

    connection: ClusterConnection
    connector: DremioConnector = field(default_factory=DremioConnector)


def build_clone_context(host: str, port: int, ssl: bool) -> CloneAppContext:
    """Build the application context for a cluster given on the command line."""
    try:
        connection = make_connection(host, port=port, ssl=ssl)
    except ValueError as exc:
        exit_from_exc(exc, message=str(exc), code=EXIT_USAGE)
    return CloneAppContext(connection=connection)


def resolve_logins(
    user: str,
    password: str | None,
    user_cred_file: str | None,
    user_cred_file_key: str | None,
) -> list[Login]:
    """
    Return the user logins supplied on the command line.

    With a user credential file its entries are used (a --password given
    for the admin user overrides the file); otherwise the admin user/password
    pair is the only login.
    """
    logins: list[Login] = []
    if user_cred_file:
        try:
            logins = load_logins(user_cred_file, user_cred_file_key)
        except CredentialFileError as exc:
            exit_from_exc(exc, message=str(exc), code=EXIT_USAGE)
    if password is not None:
        logins = [login for login in logins if login.user_name != user]
        logins.insert(0, Login(user_name=user, password=password))
    return logins


def admin_login_or_exit(user: str, logins: list[Login]) -> Login:
    """Return the admin login or exit with a usage error."""
    login = next((login for login in logins if login.user_name == user), None)
    if login is None:
        die(
            f"No password for '{user}'. Pass --password or a --user-cred-file "
            "containing this user.",
            code=EXIT_USAGE,
        )
    return login
