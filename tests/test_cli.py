"""CLI commands against the in-memory backend"""

import asyncio
import json

import pytest

from justdoit.app import JustDoIt
from justdoit.cli import build_parser, main, run_command
from justdoit.errors import InvalidCredentials, UnconfirmedAccount

from tests.fakes import make_backend


def run_cli(app: JustDoIt, argv: list) -> int:
    args = build_parser().parse_args(argv)
    return asyncio.run(run_command(args, app))


def test_login_and_whoami(capsys):
    app = JustDoIt(make_backend())

    assert run_cli(app, ["login", "anna@example.com", "--password", "anna-Secret1!"]) == 0
    assert "Signed in" in capsys.readouterr().out

    assert run_cli(app, ["--json", "whoami"]) == 0
    account = json.loads(capsys.readouterr().out)
    assert account["email"] == "anna@example.com"
    assert account["display_name"] == "Anna"


def test_failed_login_raises_typed_error():
    app = JustDoIt(make_backend())
    with pytest.raises(InvalidCredentials, match="Invalid login credentials"):
        run_cli(app, ["login", "anna@example.com", "--password", "nope"])


def test_login_to_unconfirmed_account():
    backend = make_backend()
    backend.auth.add_user("carla@example.com", "Carla-pw1!", name="Carla", confirmed=False)
    app = JustDoIt(backend)
    with pytest.raises(UnconfirmedAccount, match="confirm your email"):
        run_cli(app, ["login", "carla@example.com", "--password", "Carla-pw1!"])


def test_todo_commands(capsys):
    app = JustDoIt(make_backend())
    assert run_cli(app, ["login", "anna@example.com", "--password", "anna-Secret1!"]) == 0
    capsys.readouterr()

    assert run_cli(app, ["--json", "todos", "add", "Buy milk", "--priority", "Urgent"]) == 0
    created = json.loads(capsys.readouterr().out)
    assert created["description"] == "Buy milk"
    assert created["status"] == "active"

    assert run_cli(app, ["todos", "done", created["id"]]) == 0
    capsys.readouterr()

    assert run_cli(app, ["--json", "todos", "list"]) == 0
    todos = json.loads(capsys.readouterr().out)
    assert [t["status"] for t in todos] == ["completed"]

    assert run_cli(app, ["todos", "list"]) == 0
    assert "1/1 completed" in capsys.readouterr().out


def test_route_command(capsys):
    app = JustDoIt(make_backend())
    assert run_cli(app, ["route", "/dashboard/todos"]) == 0
    assert "/login?redirectedFrom=/dashboard/todos" in capsys.readouterr().out


def test_no_command_prints_help(capsys):
    assert main([]) == 1
    assert "usage: justdoit" in capsys.readouterr().out


def test_contact_commands(capsys):
    app = JustDoIt(make_backend())
    assert run_cli(app, ["login", "anna@example.com", "--password", "anna-Secret1!"]) == 0
    assert run_cli(app, ["contacts", "add", "Max", "max@example.com"]) == 0
    capsys.readouterr()

    assert run_cli(app, ["--json", "contacts", "list"]) == 0
    [contact] = json.loads(capsys.readouterr().out)

    assert run_cli(app, ["contacts", "edit", contact["id"], "--phone", "+49 1"]) == 0
    assert "Updated: Max <max@example.com>" in capsys.readouterr().out

    assert run_cli(app, ["contacts", "rm", contact["id"]]) == 0
    assert app.contacts.items == []
