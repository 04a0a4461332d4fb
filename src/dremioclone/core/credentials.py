"""Credential injection and credential file loading.

Secrets are never part of a snapshot. Source secrets (passwords, access
keys, ...) and user passwords are supplied in separate files at replay time,
optionally encrypted with `dremioclone.core.crypto`.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping

from dremioclone.core.crypto import decrypt_bytes
from dremioclone.core.errors import CredentialFileError
from dremioclone.core.models import JsonObject, Login, Source

logger = logging.getLogger(__name__)

SourceCredentials = Mapping[str, JsonObject]


def merge_source_config(
    config: JsonObject, credential: JsonObject | None
) -> dict[str, Any]:
    """Shallow-merge `credential` over `config`; credential fields win."""
    merged = dict(config)
    if credential:
        merged.update(credential)
    return merged


def inject_source_credentials(source: Source, credentials: SourceCredentials) -> Source:
    """
    Return `source` with the credential supplied for its name merged in.

    A source without supplied credentials is returned unchanged; it may fail
    to connect once created, which is not a replay error.
    """
    credential = credentials.get(source.name)
    if credential is None:
        logger.debug("No credentials supplied for source %s", source.name)
        return source
    return source.with_config(merge_source_config(source.config, credential))


def read_credential_file(path: str | Path, key: str | None = None) -> Any:
    """
    Read a JSON credential file, decrypting it first when `key` is given.

    Raises:
        CredentialFileError: If the file cannot be read, decrypted or parsed.
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise CredentialFileError(f"Cannot read credential file {path}: {exc}") from exc

    if key:
        data = decrypt_bytes(key, data)

    try:
        return json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        hint = "" if key else " (is it encrypted? pass its key)"
        raise CredentialFileError(f"Invalid credential file {path}{hint}: {exc}") from exc


def load_source_credentials(path: str | Path, key: str | None = None) -> dict[str, dict]:
    """Load a `source name -> partial config` mapping."""
    raw = read_credential_file(path, key)
    if not isinstance(raw, dict) or not all(isinstance(v, dict) for v in raw.values()):
        raise CredentialFileError(
            f"Source credential file {path} must map source names to objects."
        )
    return raw


def load_logins(path: str | Path, key: str | None = None) -> list[Login]:
    """Load a list of `{userName, password}` objects."""
    raw = read_credential_file(path, key)
    if not isinstance(raw, list):
        raise CredentialFileError(f"User credential file {path} must be a JSON array.")
    try:
        return [Login.from_dict(item) for item in raw]
    except (KeyError, TypeError) as exc:
        raise CredentialFileError(
            f"User credential file {path} entries need userName and password."
        ) from exc
