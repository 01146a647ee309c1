"""In-memory copy of a vmailmgr ``passwd.cdb`` file.

The cdb format can only be written as a whole, so every save rewrites the
file. Records are written in the order they were first inserted so that a
table without content changes always produces an identical file.
"""

from __future__ import annotations

import struct
from pathlib import Path
from typing import Iterator, Optional, Union

import cdblib

from .errors import DecodeError
from .vpentry import AccountEntry

PathLike = Union[str, Path]

# a cdb file always starts with 256 hash table pointers of 8 bytes each
CDB_HEADER_SIZE = 2048


class PasswordTable:
    """All password entries of a database, keyed by user id."""

    def __init__(self):
        self._order: list[str] = []
        self._entries: dict[str, AccountEntry] = {}

    @classmethod
    def load(cls, path: PathLike) -> PasswordTable:
        data = Path(path).read_bytes()
        if len(data) < CDB_HEADER_SIZE:
            raise DecodeError(f"{path} is too small to be a cdb file")

        table = cls()
        try:
            reader = cdblib.Reader(data)
            for raw_key, raw_value in reader.iteritems():
                table.upsert(_decode_key(raw_key), AccountEntry.decode(raw_value))
        except (struct.error, IndexError, OSError) as e:
            raise DecodeError(f"{path} is not a valid cdb file: {e}") from e
        return table

    def get(self, key: str) -> Optional[AccountEntry]:
        return self._entries.get(key)

    def upsert(self, key: str, entry: AccountEntry) -> None:
        if key not in self._entries:
            self._order.append(key)
        self._entries[key] = entry

    def remove(self, key: str) -> None:
        if self._entries.pop(key, None) is not None:
            self._order.remove(key)

    def users(self) -> tuple[str, ...]:
        return tuple(self._order)

    def save(self, path: PathLike) -> None:
        path = Path(path)
        tmp = path.with_name(path.name + ".tmp")
        try:
            with tmp.open("wb") as fp:
                writer = cdblib.Writer(fp)
                for key in self._order:
                    writer.put(key.encode("utf-8"), self._entries[key].encode())
                writer.finalize()
            tmp.replace(path)
        except Exception:
            tmp.unlink(missing_ok=True)
            raise

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.users())


def _decode_key(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"user id {raw!r} is not valid UTF-8") from e
