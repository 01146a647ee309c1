from vmaild.admin_accounts_helper import list_accounts
from vmaild.vptable import PasswordTable


def test_list_accounts_in_table_order(example_config, make_entry):
    table = PasswordTable()
    for uid in ("zoe", "alice"):
        table.upsert(uid, make_entry(uid))
    table.save(example_config.mail_password_file)

    accounts = list_accounts(example_config)
    assert [a["uid"] for a in accounts] == ["zoe", "alice"]
    assert accounts[1]["email"] == "alice@mail.example.org"
    assert accounts[1]["directory"] == "./users/alice"
    assert all(isinstance(a["changed_at"], int) for a in accounts)

    assert len(list_accounts(example_config, limit=1)) == 1


def test_list_accounts_without_database(example_config):
    assert list_accounts(example_config) == []
