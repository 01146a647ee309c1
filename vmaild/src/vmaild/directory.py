"""Fetch mail accounts from the LDAP directory."""

from __future__ import annotations

import logging
import time
from typing import Any, Iterable, Optional
from urllib.parse import urlsplit

import ldap3
from ldap3.core.exceptions import LDAPException

from .config import Config
from .errors import DirectoryError
from .vpentry import AccountEntry

DEFAULT_PORTS = {"ldap": 389, "ldaps": 636}
SEARCH_ATTRIBUTES = ["uid", "mailPassword", "mailDirectory", "mailForwards"]


def parse_ldap_url(url: str) -> tuple[str, int, bool]:
    """Split ``ldap[s]://host[:port]`` into host, port and whether to use TLS."""
    parts = urlsplit(url)
    if parts.scheme not in DEFAULT_PORTS:
        raise ValueError(f"unsupported scheme {parts.scheme!r} in {url!r}")
    if not parts.hostname:
        raise ValueError(f"missing host in {url!r}")
    port = parts.port or DEFAULT_PORTS[parts.scheme]
    return parts.hostname, port, parts.scheme == "ldaps"


def retrieve_users(config: Config) -> dict[str, AccountEntry]:
    host, port, use_ssl = parse_ldap_url(config.ldap_server)
    server = ldap3.Server(host, port=port, use_ssl=use_ssl)
    connection = ldap3.Connection(
        server, user=config.ldap_manager_dn, password=config.ldap_password
    )

    try:
        if not connection.bind():
            raise DirectoryError(
                "unable to authenticate with manager dn: "
                f"{connection.result.get('description')}"
            )
        connection.search(
            search_base=config.ldap_search_base,
            search_filter=config.ldap_filter,
            search_scope=ldap3.SUBTREE,
            attributes=SEARCH_ATTRIBUTES,
        )
        # partial results (sizeLimitExceeded) still make search() return True
        if connection.result.get("result") != 0:
            raise DirectoryError(
                f"unable to search for users: {connection.result.get('description')}"
            )
        response = connection.response or []
    except LDAPException as e:
        raise DirectoryError(f"unable to query {config.ldap_server}: {e}") from e
    finally:
        connection.unbind()

    return entries_from_response(response)


def entries_from_response(
    response: Iterable[dict[str, Any]], *, now: Optional[int] = None
) -> dict[str, AccountEntry]:
    """Turn ldap3 search results into password entries keyed by uid."""
    now = int(time.time()) if now is None else now
    users: dict[str, AccountEntry] = {}
    for item in response:
        if item.get("type", "searchResEntry") != "searchResEntry":
            continue
        attributes = item.get("attributes") or {}
        uid = _first_value(attributes, "uid")
        if not uid:
            logging.warning("skipping directory entry without uid: %s", item.get("dn"))
            continue

        directory = _first_value(attributes, "mailDirectory") or f"./users/{uid}"
        users[uid] = AccountEntry(
            password=_first_value(attributes, "mailPassword"),
            directory=directory,
            forwards=_first_value(attributes, "mailForwards"),
            personal="",
            changed_at=now,
        )
    return users


def _first_value(attributes, name: str) -> str:
    value = attributes.get(name)
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if isinstance(value, bytes):
        value = value.decode("utf-8")
    return str(value) if value else ""
