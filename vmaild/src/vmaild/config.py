from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

import iniconfig

DEFAULT_LDAP_FILTER = "(objectClass=uberspaceMailAccount)"
DEFAULT_PASSWORD_FILE = "~/passwd.cdb"

# environment variables take precedence over the ini file
ENV_OVERRIDES = {
    "mail_domain": "MAIL_DOMAIN",
    "ldap_server": "LDAP_SERVER",
    "ldap_manager_dn": "LDAP_MANAGER_DN",
    "ldap_password": "LDAP_PASSWORD",
    "ldap_search_base": "LDAP_SEARCH_BASE",
    "ldap_filter": "LDAP_FILTER",
}

REQUIRED_PARAMS = ("mail_domain", "ldap_server", "ldap_manager_dn", "ldap_search_base")


def read_config(inipath, environ: Optional[Mapping[str, str]] = None) -> Config:
    inipath = Path(inipath).expanduser()
    if not inipath.exists():
        raise FileNotFoundError(f"config file not found: {inipath}")
    cfg = iniconfig.IniConfig(inipath)
    if "params" not in cfg:
        raise ValueError(f"{inipath}: missing [params] section")

    params = dict(cfg.sections["params"])
    environ = os.environ if environ is None else environ
    for key, envname in ENV_OVERRIDES.items():
        value = environ.get(envname)
        if value:
            params[key] = value
    return Config(inipath, params=params)


class Config:
    def __init__(self, inipath, params):
        self._inipath = inipath
        missing = [key for key in REQUIRED_PARAMS if not params.get(key, "").strip()]
        if missing:
            raise ValueError(f"{inipath}: missing required params: {', '.join(missing)}")

        self.mail_domain = params["mail_domain"].strip()
        self.mail_password_file = Path(
            params.get("mail_password_file", DEFAULT_PASSWORD_FILE).strip()
        ).expanduser()
        self.ldap_server = params["ldap_server"].strip()
        self.ldap_manager_dn = params["ldap_manager_dn"].strip()
        self.ldap_password = params.get("ldap_password", "")
        self.ldap_search_base = params["ldap_search_base"].strip()
        self.ldap_filter = params.get("ldap_filter", "").strip() or DEFAULT_LDAP_FILTER

    def get_address(self, uid: str) -> str:
        return f"{uid}@{self.mail_domain}"
