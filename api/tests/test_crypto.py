"""Secret encryption tests."""

import pytest

from printshop.crypto import decrypt_secret, encrypt_secret


def test_encrypt_decrypt():
    encrypted = encrypt_secret("long-lived-token")
    assert encrypted != "long-lived-token"
    assert decrypt_secret(encrypted) == "long-lived-token"


def test_decrypt_with_wrong_key():
    encrypted = encrypt_secret("long-lived-token", key="a" * 32)
    with pytest.raises(ValueError):
        decrypt_secret(encrypted, key="b" * 32)
