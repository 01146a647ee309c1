"""MD5-crypt password hashes as understood by vmailmgr."""

from __future__ import annotations

import random
import string
import time
from typing import Optional

import crypt_r

from .errors import HashError
from .vpentry import AccountEntry

MD5_CRYPT_PREFIX = "$1$"
SALT_CHARS = "./" + string.digits + string.ascii_uppercase + string.ascii_lowercase
SALT_LENGTH = 8


def make_salt(length: int = SALT_LENGTH) -> str:
    # not a secret, only needs to differ between hashes
    return "".join(random.choices(SALT_CHARS, k=length))


def extract_salt(password_hash: str) -> str:
    parts = password_hash.split("$")
    if len(parts) < 3:
        raise HashError("stored password hash has no salt")
    return parts[2]


def md5_crypt(password: str, salt: str) -> str:
    try:
        result = crypt_r.crypt(password, f"{MD5_CRYPT_PREFIX}{salt}$")
    except (OSError, ValueError) as e:
        raise HashError(f"unable to hash password: {e}") from e
    # libxcrypt reports failures with "*0" / "*1" instead of raising
    if not result or not result.startswith(MD5_CRYPT_PREFIX):
        raise HashError(f"unable to hash password with salt {salt!r}")
    return result


def update_password(
    entry: AccountEntry, password: str, *, now: Optional[int] = None
) -> bool:
    """Store a hash of ``password`` in ``entry`` unless it already matches.

    The password is first hashed with the salt of the stored hash. If that
    reproduces the stored hash nothing is changed. Otherwise a fresh salt is
    used and ``changed_at`` is moved to ``now``.

    Returns True if the entry was modified.
    """
    salt = extract_salt(entry.password)
    if md5_crypt(password, salt) == entry.password:
        return False

    new_hash = md5_crypt(password, make_salt())
    entry.password = new_hash
    entry.changed_at = int(time.time()) if now is None else now
    return True
