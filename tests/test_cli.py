# tests/test_cli.py
import json

import pytest

from apitokens.cli import main


@pytest.fixture
def db_args(tmp_path):
    return ["--database-url", f"sqlite+aiosqlite:///{(tmp_path / 'cli.sqlite3').as_posix()}"]


def test_issue_json(db_args, capsys):
    code = main(db_args + ["issue", "cli@example.com", "--expires", "2025-12-31", "--json"])
    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert out["identityHandle"] == "cli@example.com"
    assert out["expiresAt"] == "2025-12-31T00:00:00+00:00"
    assert "|" in out["token"]


def test_issue_plain_prints_token_last(db_args, capsys):
    assert main(db_args + ["issue", "cli@example.com"]) == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert "expires: never" in lines[0]
    assert "|" in lines[-1]


def test_show_and_revoke(db_args, capsys):
    main(db_args + ["issue", "cli@example.com", "--name", "deploy", "--json"])
    issued = json.loads(capsys.readouterr().out)

    assert main(db_args + ["show", "cli@example.com", "--json"]) == 0
    shown = json.loads(capsys.readouterr().out)
    assert shown["tokenId"] == issued["tokenId"]
    assert shown["name"] == "deploy"

    assert main(db_args + ["revoke", "cli@example.com"]) == 0
    assert "revoked 1 token(s)" in capsys.readouterr().out

    assert main(db_args + ["show", "cli@example.com"]) == 0
    assert "no active token" in capsys.readouterr().out


@pytest.mark.parametrize("argv, code, kind", [
    (["issue", "  "], 3, "ValidationError"),
    (["issue", "cli@example.com", "--expires", "not-a-date"], 4, "InvalidExpirationError"),
    (["revoke", "ghost@example.com"], 6, "IdentityNotFoundError"),
])
def test_error_exit_codes(db_args, capsys, argv, code, kind):
    assert main(db_args + argv) == code
    assert f"error[{kind}]" in capsys.readouterr().err


def test_storage_error_exit_code(tmp_path, capsys):
    # a directory cannot be opened as a database file
    bad = ["--database-url", f"sqlite+aiosqlite:///{tmp_path.as_posix()}"]
    assert main(bad + ["issue", "cli@example.com"]) == 5
    assert "error[StorageError]" in capsys.readouterr().err


def test_missing_command_is_usage_error(db_args):
    with pytest.raises(SystemExit) as excinfo:
        main(db_args)
    assert excinfo.value.code == 2


def test_bad_handle_reported_before_database_is_opened(tmp_path, capsys):
    # the directory itself is not an openable database
    unopenable = ["--database-url", f"sqlite+aiosqlite:///{tmp_path.as_posix()}"]
    assert main(unopenable + ["issue", "   "]) == 3
    assert "error[ValidationError]" in capsys.readouterr().err


@pytest.mark.parametrize("argv, code", [
    (["issue", ""], 3),
    (["issue", "cli@example.com", "--expires", "not-a-date"], 4),
    (["revoke", "  "], 3),
    (["show", ""], 3),
])
def test_rejected_input_creates_no_database(tmp_path, argv, code):
    db = tmp_path / "never.sqlite3"
    assert main(["--database-url", f"sqlite+aiosqlite:///{db.as_posix()}"] + argv) == code
    assert not db.exists()
