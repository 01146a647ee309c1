import pytest

from vmaild.config import read_config
from vmaild.passwd import md5_crypt
from vmaild.vpentry import AccountEntry


@pytest.fixture
def make_config(tmp_path):
    inipath = tmp_path.joinpath("vmaild.ini")

    def make_conf(mail_domain, settings=None):
        params = {
            "mail_domain": mail_domain,
            "mail_password_file": str(tmp_path.joinpath("passwd.cdb")),
            "ldap_server": "ldaps://ldap.example.org",
            "ldap_manager_dn": "cn=manager,dc=example,dc=org",
            "ldap_password": "secret",
            "ldap_search_base": "ou=users,dc=example,dc=org",
        }
        params.update(settings or {})
        lines = ["[params]"] + [f"{key} = {value}" for key, value in params.items()]
        inipath.write_text("\n".join(lines) + "\n")
        return read_config(inipath, environ={})

    return make_conf


@pytest.fixture
def example_config(make_config):
    return make_config("mail.example.org")


@pytest.fixture
def make_entry():
    def make(uid="alice", password="qwertyui9", salt="abcdefgh", **kwargs):
        kwargs.setdefault("directory", f"./users/{uid}")
        kwargs.setdefault("changed_at", 1500000000)
        return AccountEntry(password=md5_crypt(password, salt), **kwargs)

    return make
