"""Password hashing tests."""

import pytest

from userhub.services.passwords import (
    hash_password,
    hash_password_sync,
    verify_password,
    verify_password_sync,
)


@pytest.mark.asyncio
async def test_hash_and_verify():
    digest = await hash_password("secret1", rounds=4)

    assert digest.startswith("$2b$04$")
    assert await verify_password("secret1", digest) is True
    assert await verify_password("secret2", digest) is False


def test_hash_is_salted():
    assert hash_password_sync("secret1", rounds=4) != hash_password_sync("secret1", rounds=4)


def test_default_rounds_come_from_settings():
    # conftest sets BCRYPT_ROUNDS=4
    assert hash_password_sync("secret1").startswith("$2b$04$")


def test_long_password_is_truncated_to_72_bytes():
    password = "x" * 100
    digest = hash_password_sync(password, rounds=4)

    assert verify_password_sync(password, digest) is True
    assert verify_password_sync("x" * 72, digest) is True


def test_malformed_digest_does_not_verify():
    assert verify_password_sync("secret1", "not-a-bcrypt-hash") is False
