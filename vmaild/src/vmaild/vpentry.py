"""Binary record format of a single vmailmgr password entry.

A record is a list of fields joined by NUL bytes:

    header, password, directory, forwards, personal,
    hard quota, soft quota, message size, message count,
    changed-at timestamp, reserved limit, ""

Numeric fields are decimal digits, or ``-`` for "unlimited".
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Optional

from .errors import DecodeError

# 02 = prefix, 0a = has-mailbox attribute, 01 = true,
# 08 = mailbox-enabled attribute, 01 = true
HEADER = b"\x02\x0a\x01\x08\x01"
SEPARATOR = b"\x00"
UNLIMITED_TOKEN = b"-"
UNLIMITED_SENTINEL = 2**64 - 1

# header up to and including changed_at
MIN_FIELDS = 10


def _now() -> int:
    return int(time.time())


@dataclass
class AccountEntry:
    """One mailbox as stored in the password database.

    Limits are ``None`` when unlimited.
    """

    password: str
    directory: str
    forwards: str = ""
    personal: str = ""
    hard_quota: Optional[int] = None
    soft_quota: Optional[int] = None
    msg_size: Optional[int] = None
    msg_count: Optional[int] = None
    changed_at: int = field(default_factory=_now)

    def __post_init__(self):
        for name in ("hard_quota", "soft_quota", "msg_size", "msg_count"):
            if getattr(self, name) == UNLIMITED_SENTINEL:
                setattr(self, name, None)

    def limits(self) -> tuple[Optional[int], ...]:
        return (self.hard_quota, self.soft_quota, self.msg_size, self.msg_count)

    def encode(self) -> bytes:
        if self.changed_at < 0:
            raise ValueError(f"changed_at must not be negative: {self.changed_at}")
        fields = [
            HEADER,
            _encode_text("password", self.password),
            _encode_text("directory", self.directory),
            _encode_text("forwards", self.forwards),
            _encode_text("personal", self.personal),
        ]
        fields.extend(format_limit(value) for value in self.limits())
        fields.append(str(int(self.changed_at)).encode("ascii"))
        fields.append(UNLIMITED_TOKEN)
        fields.append(b"")
        return SEPARATOR.join(fields)

    @classmethod
    def decode(cls, raw: bytes) -> AccountEntry:
        parts = raw.split(SEPARATOR)
        if len(parts) < MIN_FIELDS:
            raise DecodeError(
                f"record has {len(parts)} fields, expected at least {MIN_FIELDS}"
            )

        changed_at = parse_limit(parts[9])
        if changed_at is None:
            raise DecodeError("changed_at must be a timestamp, not unlimited")

        return cls(
            password=_decode_text("password", parts[1]),
            directory=_decode_text("directory", parts[2]),
            forwards=_decode_text("forwards", parts[3]),
            personal=_decode_text("personal", parts[4]),
            hard_quota=parse_limit(parts[5]),
            soft_quota=parse_limit(parts[6]),
            msg_size=parse_limit(parts[7]),
            msg_count=parse_limit(parts[8]),
            changed_at=changed_at,
        )


def format_limit(value: Optional[int]) -> bytes:
    if value is None or value == UNLIMITED_SENTINEL:
        return UNLIMITED_TOKEN
    if not 0 <= value < UNLIMITED_SENTINEL:
        raise ValueError(f"limit out of range: {value}")
    return str(value).encode("ascii")


def parse_limit(raw: bytes) -> Optional[int]:
    if raw == UNLIMITED_TOKEN:
        return None
    if not raw or not raw.isdigit():
        raise DecodeError(f"invalid numeric field: {raw!r}")
    value = int(raw)
    if value > UNLIMITED_SENTINEL:
        raise DecodeError(f"numeric field out of range: {raw!r}")
    if value == UNLIMITED_SENTINEL:
        return None
    return value


def _encode_text(name: str, value: str) -> bytes:
    raw = value.encode("utf-8")
    if SEPARATOR in raw:
        raise ValueError(f"{name} must not contain NUL bytes")
    return raw


def _decode_text(name: str, raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"{name} is not valid UTF-8") from e
