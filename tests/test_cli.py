import json
from contextlib import asynccontextmanager

import pytest
import typer
from typer.testing import CliRunner

from dremioclone.cli.cli import app
from dremioclone.cli.commands import state as state_cmd
from dremioclone.cli.common.context import CloneAppContext
from dremioclone.cli.common.exits import EXIT_USAGE, die, exit_unless_ok
from dremioclone.cli.common.output import Out
from dremioclone.core.auth import make_connection
from dremioclone.core.errors import RemoteCallError

runner = CliRunner()


def _text(result) -> str:
    # rich wraps long lines; compare on whitespace-normalised output
    return " ".join(result.output.split())


class _Api:
    def __init__(self, fail=()):
        self.fail = set(fail)
        self.created = []

    async def _create(self, name):
        if name in self.fail:
            raise RemoteCallError(409, f"{name} already exists")
        self.created.append(name)
        return {}

    async def create_entity(self, entity):
        return await self._create(entity["name"])

    async def create_user(self, user, password):
        return await self._create(user["userName"])

    async def create_source(self, source):
        return await self._create(source["name"])


class _Connector:
    def __init__(self, api):
        self.api = api
        self.logins = []

    @asynccontextmanager
    async def session(self, connection, login):
        self.logins.append((login.user_name, login.password))
        yield self.api


def _use_connector(monkeypatch, connector):
    monkeypatch.setattr(
        state_cmd,
        "build_clone_context",
        lambda host, port, ssl: CloneAppContext(
            make_connection(host, port, ssl), connector=connector
        ),
    )


def _load_inputs(tmp_path):
    state = tmp_path / "state.json"
    state.write_text(
        json.dumps(
            {
                "users": [{"userName": "admin", "id": "u1"}],
                "catalog": [{"entityType": "space", "name": "s", "id": "1"}],
                "sources": [{"name": "pg", "type": "POSTGRES", "config": {}}],
            }
        )
    )
    sources = tmp_path / "sources.json"
    sources.write_text(json.dumps({"pg": {"password": "p"}}))
    return state, sources


def test_encrypt_then_decrypt_restores_the_file(tmp_path):
    plain = tmp_path / "creds.json"
    plain.write_text('[{"userName": "admin", "password": "pw"}]')
    encrypted = tmp_path / "creds.enc"
    restored = tmp_path / "creds.out.json"
    key = "0123456789abcdef"

    enc = runner.invoke(app, ["encrypt", key, str(plain), str(encrypted)])
    dec = runner.invoke(app, ["decrypt", key, str(encrypted), str(restored)])

    assert enc.exit_code == 0, enc.output
    assert dec.exit_code == 0, dec.output
    assert encrypted.read_bytes() != plain.read_bytes()
    assert restored.read_text() == plain.read_text()


def test_encrypt_warns_about_unusual_key_length(tmp_path):
    plain = tmp_path / "creds.json"
    plain.write_text("{}")

    result = runner.invoke(app, ["encrypt", "short", str(plain), str(tmp_path / "x.enc")])

    assert result.exit_code == 0
    assert "padded" in _text(result)


def test_decrypt_rejects_truncated_file(tmp_path):
    bad = tmp_path / "bad.enc"
    bad.write_bytes(b"nope")

    result = runner.invoke(app, ["decrypt", "k" * 16, str(bad), str(tmp_path / "out")])

    assert result.exit_code == 2
    assert "truncated" in _text(result)


def test_save_without_any_password_is_a_usage_error(tmp_path):
    result = runner.invoke(
        app,
        ["save", "--host", "localhost", "--user", "admin", "--state-file", str(tmp_path / "s.json")],
    )

    assert result.exit_code == 2
    assert "No password" in _text(result)


def test_load_with_admin_missing_from_user_credentials(tmp_path):
    state, sources = _load_inputs(tmp_path)
    users = tmp_path / "users.json"
    users.write_text('[{"userName": "bob", "password": "pw"}]')

    result = runner.invoke(
        app,
        [
            "load",
            "--host", "localhost",
            "--user", "admin",
            "--user-cred-file", str(users),
            "--source-cred-file", str(sources),
            "--state-file", str(state),
        ],
    )

    assert result.exit_code == 2
    assert "user credentials" in _text(result)


def test_load_rejects_invalid_state_file(tmp_path):
    _, sources = _load_inputs(tmp_path)
    state = tmp_path / "broken.json"
    state.write_text("{not json")

    result = runner.invoke(
        app,
        [
            "load",
            "--host", "localhost",
            "--user", "admin",
            "--password", "pw",
            "--source-cred-file", str(sources),
            "--state-file", str(state),
        ],
    )

    assert result.exit_code == 2
    assert "not valid JSON" in _text(result)


def test_load_replays_and_prints_summary(tmp_path, monkeypatch):
    state, sources = _load_inputs(tmp_path)
    api = _Api()
    connector = _Connector(api)
    _use_connector(monkeypatch, connector)

    result = runner.invoke(
        app,
        [
            "load",
            "--host", "localhost",
            "--user", "admin",
            "--password", "pw",
            "--source-cred-file", str(sources),
            "--state-file", str(state),
        ],
    )

    assert result.exit_code == 0, result.output
    assert connector.logins == [("admin", "pw")]
    assert api.created == ["admin", "pg", "s"]
    assert "Created space: s" in _text(result)
    assert "Replay summary" in _text(result)


def test_load_exits_non_zero_when_some_creations_failed(tmp_path, monkeypatch):
    state, sources = _load_inputs(tmp_path)
    api = _Api(fail={"pg"})
    _use_connector(monkeypatch, _Connector(api))

    result = runner.invoke(
        app,
        [
            "load",
            "--host", "localhost",
            "--user", "admin",
            "--password", "pw",
            "--source-cred-file", str(sources),
            "--state-file", str(state),
        ],
    )

    assert result.exit_code == 1
    assert api.created == ["admin", "s"]
    assert "Error whilst creating source: pg" in _text(result)


def test_load_with_fail_on_error_aborts(tmp_path, monkeypatch):
    state, sources = _load_inputs(tmp_path)
    api = _Api(fail={"pg"})
    _use_connector(monkeypatch, _Connector(api))

    result = runner.invoke(
        app,
        [
            "load",
            "--host", "localhost",
            "--user", "admin",
            "--password", "pw",
            "--source-cred-file", str(sources),
            "--state-file", str(state),
            "--fail-on-error",
        ],
    )

    assert result.exit_code == 1
    assert api.created == ["admin"]
    assert "Replay aborted" in _text(result)


@pytest.mark.parametrize(
    "snapshot",
    [
        {"catalog": [1]},
        {"users": {"userName": "admin"}},
        {"sources": [{"type": "POSTGRES"}]},
        {"catalog": [{"entityType": "file", "path": ["@a", "f.csv"]}]},
    ],
)
def test_load_rejects_malformed_snapshot_entries_before_replay(tmp_path, monkeypatch, snapshot):
    _, sources = _load_inputs(tmp_path)
    state = tmp_path / "malformed.json"
    state.write_text(json.dumps(snapshot))
    api = _Api()
    connector = _Connector(api)
    _use_connector(monkeypatch, connector)

    result = runner.invoke(
        app,
        [
            "load",
            "--host", "localhost",
            "--user", "admin",
            "--password", "pw",
            "--source-cred-file", str(sources),
            "--state-file", str(state),
        ],
    )

    assert result.exit_code == EXIT_USAGE
    assert "Invalid state file" in _text(result)
    assert connector.logins == []
    assert api.created == []


def test_exit_helpers_map_to_exit_codes():
    with pytest.raises(typer.Exit) as excinfo:
        die("bad input", code=EXIT_USAGE)
    assert excinfo.value.exit_code == 2

    exit_unless_ok(True)
    with pytest.raises(typer.Exit) as excinfo:
        exit_unless_ok(False)
    assert excinfo.value.exit_code == 1


def test_load_declined_confirmation_creates_nothing(tmp_path, monkeypatch):
    state, sources = _load_inputs(tmp_path)
    api = _Api()
    connector = _Connector(api)
    _use_connector(monkeypatch, connector)
    monkeypatch.setattr(Out, "confirm", lambda self, message, **kwargs: False)

    result = runner.invoke(
        app,
        [
            "load",
            "--host", "localhost",
            "--user", "admin",
            "--password", "pw",
            "--source-cred-file", str(sources),
            "--state-file", str(state),
            "--confirm",
        ],
    )

    assert result.exit_code == 0
    assert "Cancelled" in _text(result)
    assert connector.logins == []
