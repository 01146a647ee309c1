"""Helper for listing the accounts stored in the vmailmgr database."""

from __future__ import annotations

import json
from typing import Any, Optional

from vmaild.config import Config, read_config
from vmaild.vptable import PasswordTable

CONFIG_PATH = "~/.vmaild.ini"


def list_accounts(
    config: Config, *, limit: Optional[int] = None
) -> list[dict[str, Any]]:
    """Return the accounts in database order."""

    try:
        table = PasswordTable.load(config.mail_password_file)
    except FileNotFoundError:
        return []

    accounts: list[dict[str, Any]] = []
    for uid in table.users():
        entry = table.get(uid)
        accounts.append(
            {
                "uid": uid,
                "email": config.get_address(uid),
                "directory": entry.directory,
                "forwards": entry.forwards,
                "changed_at": entry.changed_at,
            }
        )
        if limit is not None and len(accounts) >= limit:
            break

    return accounts


def main() -> None:
    config = read_config(CONFIG_PATH)
    accounts = list_accounts(config)
    print(
        json.dumps(
            {"status": "ok", "count": len(accounts), "accounts": accounts},
            sort_keys=True,
        )
    )


if __name__ == "__main__":
    main()
