"""Symmetric encryption for credential files.

File format: the first 16 bytes are the AES initialisation vector in the
clear, followed by the AES-CBC ciphertext of the (PKCS7 padded) file content.

The key is the UTF-8 encoding of a passphrase, padded with "0" characters up
to the next AES key size (16, 24 or 32 bytes) and truncated to 32 bytes if
longer.
"""

from __future__ import annotations

import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from dremioclone.core.errors import CredentialFileError

IV_SIZE = 16
_KEY_SIZES = (16, 24, 32)


def normalize_key(key: str) -> bytes:
    """Pad or truncate a passphrase to a valid AES key length."""
    raw = key.encode("utf-8")
    for size in _KEY_SIZES:
        if len(raw) <= size:
            return raw + b"0" * (size - len(raw))
    return raw[:32]


def encrypt_bytes(key: str, plaintext: bytes) -> bytes:
    """Encrypt `plaintext`; returns `iv || ciphertext`."""
    iv = os.urandom(IV_SIZE)
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plaintext) + padder.finalize()
    encryptor = Cipher(algorithms.AES(normalize_key(key)), modes.CBC(iv)).encryptor()
    return iv + encryptor.update(padded) + encryptor.finalize()


def decrypt_bytes(key: str, data: bytes) -> bytes:
    """
    Decrypt `iv || ciphertext` produced by `encrypt_bytes`.

    Raises:
        CredentialFileError: If the data is truncated or the key is wrong.
    """
    if len(data) < IV_SIZE * 2 or (len(data) - IV_SIZE) % IV_SIZE:
        raise CredentialFileError("Encrypted data is truncated or malformed.")
    iv, ciphertext = data[:IV_SIZE], data[IV_SIZE:]
    decryptor = Cipher(algorithms.AES(normalize_key(key)), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()
    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    try:
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as exc:
        raise CredentialFileError("Could not decrypt data: wrong key?") from exc
