import pytest

from dremioclone.core.crypto import IV_SIZE, decrypt_bytes, encrypt_bytes, normalize_key
from dremioclone.core.errors import CredentialFileError


@pytest.mark.parametrize(
    ("key", "expected"),
    [
        ("abc", b"abc" + b"0" * 13),
        ("a" * 16, b"a" * 16),
        ("a" * 17, b"a" * 17 + b"0" * 7),
        ("a" * 30, b"a" * 30 + b"00"),
        ("a" * 40, b"a" * 32),
    ],
)
def test_normalize_key_pads_to_next_aes_size_or_truncates(key, expected):
    assert normalize_key(key) == expected


def test_encrypted_file_starts_with_iv_and_decrypts_back():
    data = b'{"pg": {"password": "p"}}'

    encrypted = encrypt_bytes("my-key", data)

    assert len(encrypted) > IV_SIZE
    assert (len(encrypted) - IV_SIZE) % 16 == 0
    assert data not in encrypted
    assert decrypt_bytes("my-key", encrypted) == data


def test_each_encryption_uses_a_fresh_iv():
    assert encrypt_bytes("k", b"same")[:IV_SIZE] != encrypt_bytes("k", b"same")[:IV_SIZE]


def test_decrypt_rejects_truncated_data():
    with pytest.raises(CredentialFileError, match="truncated"):
        decrypt_bytes("k", b"short")
