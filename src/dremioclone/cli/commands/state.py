"""Commands for saving and loading cluster state."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import httpx

from dremioclone.cli.common.context import (
    CloneAppContext,
    admin_login_or_exit,
    build_clone_context,
    resolve_logins,
)
from dremioclone.cli.common.exits import (
    EXIT_FAILURE,
    EXIT_USAGE,
    cancelled,
    die,
    exit_from_exc,
    exit_unless_ok,
)
from dremioclone.cli.common.options import (
    ConfirmOpt,
    CreateFirstUserOpt,
    FailOnErrorOpt,
    HostOpt,
    MaxConcurrencyOpt,
    PasswordOpt,
    PortOpt,
    SourceCredFileKeyOpt,
    SourceCredFileOpt,
    SslOpt,
    StateFileOpt,
    UserCredFileKeyOpt,
    UserCredFileOpt,
    UserOpt,
)
from dremioclone.cli.common.output import ConsoleReplayListener, out
from dremioclone.core.auth import AuthError
from dremioclone.core.credentials import load_source_credentials
from dremioclone.core.errors import (
    ConfigurationError,
    CredentialFileError,
    RemoteCallError,
    UnexpectedEntityError,
)
from dremioclone.core.models import ClusterState, Login
from dremioclone.core.replicator import capture, replay


async def _capture(appctx: CloneAppContext, login: Login) -> ClusterState:
    async with appctx.connector.session(appctx.connection, login) as api:
        return await capture(api)


def _read_state_or_exit(state_file: str) -> ClusterState:
    """Read a snapshot file and convert read/parse errors into CLI input errors."""
    try:
        raw = json.loads(Path(state_file).read_text(encoding="utf-8"))
    except OSError as exc:
        exit_from_exc(exc, message=f"Cannot read state file {state_file}: {exc}", code=EXIT_USAGE)
    except json.JSONDecodeError as exc:
        exit_from_exc(exc, message=f"State file {state_file} is not valid JSON: {exc}", code=EXIT_USAGE)
    if not isinstance(raw, dict):
        die(f"State file {state_file} does not contain a cluster state object.", code=EXIT_USAGE)
    try:
        state = ClusterState.from_dict(raw)
        # parse every entry once so a malformed snapshot fails before replay starts
        state.existing_users()
        state.source_list()
        state.catalog_entities()
    except (ValueError, UnexpectedEntityError) as exc:
        exit_from_exc(exc, message=f"Invalid state file {state_file}: {exc}", code=EXIT_USAGE)
    return state


def save(
    host: str = HostOpt,
    port: int = PortOpt,
    ssl: bool = SslOpt,
    user: str = UserOpt,
    password: str | None = PasswordOpt,
    user_cred_file: str | None = UserCredFileOpt,
    user_cred_file_key: str | None = UserCredFileKeyOpt,
    state_file: str = StateFileOpt,
):
    """Save the state of an existing cluster."""
    appctx = build_clone_context(host, port, ssl)
    logins = resolve_logins(user, password, user_cred_file, user_cred_file_key)
    login = admin_login_or_exit(user, logins)

    try:
        with out.status(f"Capturing state of {appctx.connection.base_url}..."):
            state = asyncio.run(_capture(appctx, login))
    except AuthError as exc:
        exit_from_exc(exc, message=str(exc), code=EXIT_FAILURE)
    except (RemoteCallError, httpx.HTTPError) as exc:
        exit_from_exc(exc, message=f"Capture failed: {exc}", code=EXIT_FAILURE)
    except UnexpectedEntityError as exc:
        exit_from_exc(exc, message=f"Capture failed: {exc}", code=EXIT_FAILURE)

    try:
        Path(state_file).write_text(json.dumps(state.to_dict()), encoding="utf-8")
    except OSError as exc:
        exit_from_exc(exc, message=f"Cannot write state file {state_file}: {exc}", code=EXIT_FAILURE)

    out.success(f"Saved cluster state to {state_file}")
    out.kv(
        {
            "Users": len(state.users),
            "Catalog entities": len(state.catalog),
            "Sources": len(state.sources),
        }
    )


def load(
    host: str = HostOpt,
    port: int = PortOpt,
    ssl: bool = SslOpt,
    user: str = UserOpt,
    password: str | None = PasswordOpt,
    user_cred_file: str | None = UserCredFileOpt,
    user_cred_file_key: str | None = UserCredFileKeyOpt,
    source_cred_file: str = SourceCredFileOpt,
    source_cred_file_key: str | None = SourceCredFileKeyOpt,
    state_file: str = StateFileOpt,
    create_first_user: bool = CreateFirstUserOpt,
    fail_on_error: bool = FailOnErrorOpt,
    max_concurrency: int | None = MaxConcurrencyOpt,
    confirm: bool = ConfirmOpt,
):
    """Load the state of a cluster into a new cluster."""
    appctx = build_clone_context(host, port, ssl)
    state = _read_state_or_exit(state_file)

    try:
        source_creds = load_source_credentials(source_cred_file, source_cred_file_key)
    except CredentialFileError as exc:
        exit_from_exc(exc, message=str(exc), code=EXIT_USAGE)
    logins = resolve_logins(user, password, user_cred_file, user_cred_file_key)

    if confirm and not out.confirm(
        f"Load {state_file} into {appctx.connection.base_url}?"
    ):
        cancelled()

    try:
        report = asyncio.run(
            replay(
                state,
                source_creds,
                fail_on_error,
                appctx.connection,
                logins,
                user,
                create_first_user,
                listener=ConsoleReplayListener(),
                connector=appctx.connector,
                max_concurrency=max_concurrency,
            )
        )
    except ConfigurationError as exc:
        exit_from_exc(exc, message=str(exc), code=EXIT_USAGE)
    except AuthError as exc:
        exit_from_exc(exc, message=str(exc), code=EXIT_FAILURE)
    except UnexpectedEntityError as exc:
        exit_from_exc(exc, message=f"Invalid state file {state_file}: {exc}", code=EXIT_USAGE)
    except Exception as exc:  # noqa: BLE001 - fail-on-error abort, any creation error
        exit_from_exc(exc, message=f"Replay aborted: {exc}", code=EXIT_FAILURE)

    out.replay_summary(report)
    exit_unless_ok(report.ok)
