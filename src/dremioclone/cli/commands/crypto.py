"""Commands for encrypting credential files."""

from __future__ import annotations

from pathlib import Path

import typer

from dremioclone.cli.common.exits import EXIT_FAILURE, EXIT_USAGE, exit_from_exc
from dremioclone.cli.common.output import out
from dremioclone.core.crypto import decrypt_bytes, encrypt_bytes
from dremioclone.core.errors import CredentialFileError

KeyArg = typer.Argument(
    ...,
    help="The key used to encrypt the file. Should be 16, 24 or 32 characters long.",
)


def encrypt(
    key: str = KeyArg,
    in_file: Path = typer.Argument(..., help="The file to encrypt."),
    out_file: Path = typer.Argument(..., help="The file to save the encrypted contents in."),
):
    """Encrypt a file, especially a credentials file."""
    if len(key) not in (16, 24, 32):
        out.warn("Key length is not 16, 24 or 32; it will be padded or truncated.")
    try:
        out_file.write_bytes(encrypt_bytes(key, in_file.read_bytes()))
    except OSError as exc:
        exit_from_exc(exc, message=f"Encryption failed: {exc}", code=EXIT_FAILURE)
    out.success(f"Encrypted {in_file} into {out_file}")


def decrypt(
    key: str = KeyArg,
    in_file: Path = typer.Argument(..., help="The encrypted file."),
    out_file: Path = typer.Argument(..., help="The file to save the decrypted contents in."),
):
    """Decrypt a file produced by `encrypt`."""
    try:
        out_file.write_bytes(decrypt_bytes(key, in_file.read_bytes()))
    except CredentialFileError as exc:
        exit_from_exc(exc, message=str(exc), code=EXIT_USAGE)
    except OSError as exc:
        exit_from_exc(exc, message=f"Decryption failed: {exc}", code=EXIT_FAILURE)
    out.success(f"Decrypted {in_file} into {out_file}")
