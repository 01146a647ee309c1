"""Synchronise the vmailmgr password database with the LDAP directory.

Accounts present in the directory are added or updated, accounts missing from
it are removed, and the database file is rewritten in its original order.
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Sequence

from . import __version__
from .config import read_config
from .directory import retrieve_users
from .errors import DecodeError, DirectoryError
from .vpentry import AccountEntry
from .vptable import PasswordTable

DEFAULT_CONFIG_PATH = "~/.vmaild.ini"
MAILDIR_SUBDIRS = ("tmp", "cur", "new")
LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


@dataclass
class SyncResult:
    added: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.updated or self.removed)


def make_maildir(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.mkdir(mode=0o700)
    for name in MAILDIR_SUBDIRS:
        path.joinpath(name).mkdir(mode=0o700)


def open_table(path: Path, *, create: bool) -> PasswordTable:
    if not create:
        return PasswordTable.load(path)
    try:
        if path.is_file() and path.stat().st_size == 0:
            return PasswordTable()
        return PasswordTable.load(path)
    except OSError:
        logging.warning("passwd database %s not readable, starting empty", path)
        return PasswordTable()


def sync_table(
    table: PasswordTable,
    users: Mapping[str, AccountEntry],
    *,
    maildir_base: Path,
) -> SyncResult:
    result = SyncResult()

    for uid in sorted(users):
        entry = users[uid]
        old = table.get(uid)
        if old is None:
            logging.info("added user uid=%s", uid)
            table.upsert(uid, entry)
            result.added.append(uid)
            try:
                make_maildir(maildir_base.joinpath(entry.directory))
            except OSError as e:
                logging.error("unable to create maildir for user uid=%s: %s", uid, e)
            continue

        fields = []
        if old.directory != entry.directory:
            old.directory = entry.directory
            fields.append("directory")
        if old.forwards != entry.forwards:
            old.forwards = entry.forwards
            fields.append("forwards")
        if old.password != entry.password:
            old.password = entry.password
            old.changed_at = entry.changed_at
            fields.append("password")

        if not fields:
            logging.debug("no change required uid=%s", uid)
            continue
        logging.info("updated user uid=%s fields=%s", uid, ", ".join(fields))
        result.updated.append(uid)

    for uid in table.users():
        if uid not in users:
            logging.info("removed user uid=%s", uid)
            table.remove(uid)
            result.removed.append(uid)

    return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vmail-sync",
        description="Synchronise the vmailmgr password database with LDAP.",
    )
    parser.add_argument(
        "-C",
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help="ini file with a [params] section (default: %(default)s)",
    )
    parser.add_argument(
        "-c",
        "--create",
        action="store_true",
        help="start with an empty database if it does not exist yet",
    )
    parser.add_argument(
        "-f",
        "--mail-password-file",
        help="cdb file containing mail passwords (overrides the config)",
    )
    parser.add_argument(
        "--log-level",
        default="info",
        choices=LOG_LEVELS,
        help="log level for output (default: %(default)s)",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(message)s",
    )

    try:
        config = read_config(args.config)
    except (OSError, ValueError) as e:
        logging.error("unable to read config: %s", e)
        return 1

    if args.mail_password_file:
        passwd_path = Path(args.mail_password_file).expanduser()
    else:
        passwd_path = config.mail_password_file

    try:
        table = open_table(passwd_path, create=args.create)
    except (OSError, DecodeError):
        logging.exception("unable to load passwd database %s", passwd_path)
        return 1

    try:
        users = retrieve_users(config)
    except (DirectoryError, ValueError):
        logging.exception("unable to retrieve users")
        return 1

    result = sync_table(table, users, maildir_base=passwd_path.parent)

    try:
        table.save(passwd_path)
    except (OSError, ValueError):
        logging.exception("unable to save passwd database %s", passwd_path)
        return 1

    logging.info(
        "sync finished: %d added, %d updated, %d removed",
        len(result.added),
        len(result.updated),
        len(result.removed),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
