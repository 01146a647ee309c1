import pytest

from vmaild.errors import HashError
from vmaild.passwd import (
    SALT_CHARS,
    extract_salt,
    make_salt,
    md5_crypt,
    update_password,
)
from vmaild.vpentry import AccountEntry


def test_make_salt():
    salt = make_salt()
    assert len(salt) == 8
    assert set(salt) <= set(SALT_CHARS)
    assert SALT_CHARS == (
        "./0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
    )


def test_extract_salt():
    assert extract_salt("$1$abcdefgh$rest") == "abcdefgh"
    with pytest.raises(HashError):
        extract_salt("plaintext")


def test_md5_crypt_format():
    hashed = md5_crypt("qwertyui9", "abcdefgh")
    assert hashed.startswith("$1$abcdefgh$")
    assert len(hashed.split("$")[3]) == 22
    assert md5_crypt("qwertyui9", "abcdefgh") == hashed
    assert md5_crypt("qwertyui8", "abcdefgh") != hashed


def test_update_password_keeps_matching_hash(make_entry):
    entry = make_entry(password="qwertyui9")
    old_hash = entry.password

    assert update_password(entry, "qwertyui9", now=1600000000) is False
    assert entry.password == old_hash
    assert entry.changed_at == 1500000000


def test_update_password_rotates_salt(make_entry):
    entry = make_entry(password="qwertyui9")
    old_salt = extract_salt(entry.password)

    assert update_password(entry, "newpassw0rd!", now=1600000000) is True
    assert extract_salt(entry.password) != old_salt
    assert entry.changed_at == 1600000000
    assert md5_crypt("newpassw0rd!", extract_salt(entry.password)) == entry.password

    # same password again is a no-op
    assert update_password(entry, "newpassw0rd!", now=1700000000) is False
    assert entry.changed_at == 1600000000


def test_update_password_advances_timestamp(make_entry):
    entry = make_entry(changed_at=0)
    assert update_password(entry, "something-else")
    assert entry.changed_at > 0


def test_update_password_without_salt_leaves_entry():
    entry = AccountEntry(password="nosalt", directory="./users/bob", changed_at=5)
    with pytest.raises(HashError):
        update_password(entry, "qwertyui9")
    assert entry.password == "nosalt"
    assert entry.changed_at == 5
