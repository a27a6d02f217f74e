import pytest

from quill.auth.passwords import hash_password, verify_password


def test_hash_is_salted_but_verifies():
    h1 = hash_password("hunter2")
    h2 = hash_password("hunter2")
    assert h1 != h2
    assert verify_password(h1, "hunter2")
    assert verify_password(h2, "hunter2")


def test_wrong_password_is_rejected():
    h = hash_password("hunter2")
    assert not verify_password(h, "hunter3")
    assert not verify_password(h, "")


@pytest.mark.parametrize("bad_hash", ["", "not-a-hash", "$argon2id$v=19$garbage", "$2b$10$abcdefghijklmnopqrstuv"])
def test_malformed_hash_returns_false(bad_hash):
    assert verify_password(bad_hash, "hunter2") is False


def test_empty_password_cannot_be_hashed():
    with pytest.raises(ValueError):
        hash_password("")
