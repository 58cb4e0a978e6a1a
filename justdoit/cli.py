#!/usr/bin/env python3
"""
JUSTDOIT - CLI Interface
========================
Command-line front end for the dashboard stores.

Usage:
    justdoit login anna@example.com
    justdoit todos add "Buy milk"
    justdoit todos list
    justdoit todos done <id>
    justdoit priorities add Urgent --email
    justdoit contacts add "Bob" bob@example.com
    justdoit settings set --sender-email me@example.com
    justdoit logout

Author: JustDoIt / TaskMaster Pro
"""

import argparse
import asyncio
import getpass
import json
import sys
from typing import Any, List, Optional

from .app import JustDoIt
from .config import configure_logging, load_config
from .errors import JustDoItError, error_for
from .routes import Allow
from .schema import TodoStatus

STATUS_ICONS = {
    TodoStatus.ACTIVE: "⬜",
    TodoStatus.IN_PROGRESS: "🔵",
    TodoStatus.COMPLETED: "✅",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="justdoit",
        description="JustDoIt - TaskMaster Pro from the command line",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  justdoit register anna@example.com --name Anna   Create an account
  justdoit login anna@example.com --no-remember    Sign in for this run only
  justdoit todos add "Buy milk" --priority Urgent  Create a todo
  justdoit todos status <id> in_progress           Change a todo's status
  justdoit route /dashboard/todos                  Check where a path leads
        """
    )
    parser.add_argument("--json", action="store_true", help="Output as JSON")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # AUTH commands
    register_parser = subparsers.add_parser("register", help="Create an account")
    register_parser.add_argument("email")
    register_parser.add_argument("--name", required=True, help="Display name")
    register_parser.add_argument("--password", help="Password (prompted if omitted)")

    login_parser = subparsers.add_parser("login", help="Sign in")
    login_parser.add_argument("email")
    login_parser.add_argument("--password", help="Password (prompted if omitted)")
    login_parser.add_argument("--no-remember", action="store_true", help="Don't keep the session")

    subparsers.add_parser("logout", help="Sign out")
    subparsers.add_parser("whoami", help="Show the signed-in account")

    reset_parser = subparsers.add_parser("reset-password", help="Send a password reset mail")
    reset_parser.add_argument("email")

    # TODOS
    todos_parser = subparsers.add_parser("todos", help="Manage todos")
    todos_sub = todos_parser.add_subparsers(dest="action", required=True)
    todos_sub.add_parser("list", help="List todos (newest first)")
    add_todo = todos_sub.add_parser("add", help="Create a todo")
    add_todo.add_argument("description")
    add_todo.add_argument("--deadline", help="ISO date/time")
    add_todo.add_argument("--priority", help="Priority name")
    add_todo.add_argument("--receiver", help="Contact name or email")
    add_todo.add_argument("--status", choices=[s.value for s in TodoStatus], default="active")
    done_todo = todos_sub.add_parser("done", help="Mark a todo completed")
    done_todo.add_argument("id")
    status_todo = todos_sub.add_parser("status", help="Change a todo's status")
    status_todo.add_argument("id")
    status_todo.add_argument("status", choices=[s.value for s in TodoStatus])
    rm_todo = todos_sub.add_parser("rm", help="Delete a todo")
    rm_todo.add_argument("id")

    # PRIORITIES
    priorities_parser = subparsers.add_parser("priorities", help="Manage priorities")
    priorities_sub = priorities_parser.add_subparsers(dest="action", required=True)
    priorities_sub.add_parser("list", help="List priorities")
    add_priority = priorities_sub.add_parser("add", help="Add a priority")
    add_priority.add_argument("name")
    add_priority.add_argument("--email", action="store_true", help="Email notification")
    add_priority.add_argument("--sms", action="store_true", help="SMS notification")
    add_priority.add_argument("--whatsapp", action="store_true", help="WhatsApp notification")
    rm_priority = priorities_sub.add_parser("rm", help="Delete a priority")
    rm_priority.add_argument("id")

    # CONTACTS
    contacts_parser = subparsers.add_parser("contacts", help="Manage contacts")
    contacts_sub = contacts_parser.add_subparsers(dest="action", required=True)
    contacts_sub.add_parser("list", help="List contacts")
    add_contact = contacts_sub.add_parser("add", help="Add a contact")
    add_contact.add_argument("name")
    add_contact.add_argument("email")
    add_contact.add_argument("--phone")
    edit_contact = contacts_sub.add_parser("edit", help="Change a contact")
    edit_contact.add_argument("id")
    edit_contact.add_argument("--name")
    edit_contact.add_argument("--email")
    edit_contact.add_argument("--phone")
    rm_contact = contacts_sub.add_parser("rm", help="Delete a contact")
    rm_contact.add_argument("id")

    # SETTINGS
    settings_parser = subparsers.add_parser("settings", help="Show or change settings")
    settings_sub = settings_parser.add_subparsers(dest="action", required=True)
    settings_sub.add_parser("show", help="Show settings")
    set_settings = settings_sub.add_parser("set", help="Change settings")
    set_settings.add_argument("--sender-email")
    set_settings.add_argument("--template", help="Email template")

    # ROUTE
    route_parser = subparsers.add_parser("route", help="Evaluate the route guard for a path")
    route_parser.add_argument("path")

    return parser


def _dump(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def _print_models(items: List[Any], as_json: bool) -> bool:
    if as_json:
        _dump([item.model_dump(mode="json") for item in items])
        return True
    return False


def _password(value: Optional[str]) -> str:
    return value if value is not None else getpass.getpass("Password: ")


def _auth_outcome(result: Any) -> int:
    if not result.success:
        raise error_for(result.kind, result.message)
    print(f"✅ {result.message}")
    return 0


async def run_command(args: argparse.Namespace, app: JustDoIt) -> int:
    """Execute one parsed command against an app; returns the exit code"""
    await app.start()

    if args.command == "register":
        result = await app.session.sign_up(args.email, _password(args.password), args.name)
        return _auth_outcome(result)

    if args.command == "login":
        result = await app.session.sign_in(
            args.email, _password(args.password), remember_me=not args.no_remember
        )
        return _auth_outcome(result)

    if args.command == "logout":
        await app.session.sign_out()
        print("👋 Signed out")
        return 0

    if args.command == "whoami":
        account = app.session.user
        if account is None:
            print("Not signed in")
            return 1
        if args.json:
            _dump(account.model_dump(mode="json"))
        else:
            print(f"👤 {account.display_name or '-'} <{account.email}> ({account.id})")
        return 0

    if args.command == "reset-password":
        await app.session.reset_password(args.email)
        print(f"📧 Reset mail sent to {args.email}")
        return 0

    if args.command == "route":
        decision = app.routes.navigate(args.path)
        if isinstance(decision, Allow):
            print(f"✅ allow {args.path}")
        else:
            print(f"↪️ redirect {decision.location}")
        return 0

    if args.command == "todos":
        return await _todos(args, app)
    if args.command == "priorities":
        return await _priorities(args, app)
    if args.command == "contacts":
        return await _contacts(args, app)
    if args.command == "settings":
        return await _settings(args, app)

    return 1


async def _todos(args: argparse.Namespace, app: JustDoIt) -> int:
    store = app.todos

    if args.action == "list":
        todos = await store.fetch_all()
        if _print_models(todos, args.json):
            return 0
        if not todos:
            print("No todos found")
            return 0
        stats = store.stats()
        print(f"📋 Todos ({stats['completed']}/{stats['total']} completed):")
        print("-" * 60)
        for todo in todos:
            icon = STATUS_ICONS.get(todo.status, "❓")
            due = f" (due {todo.deadline:%Y-%m-%d %H:%M})" if todo.deadline else ""
            extra = " ".join(
                part for part in (
                    f"[{todo.priority}]" if todo.priority else "",
                    f"→ {todo.receiver}" if todo.receiver else ""
                ) if part
            )
            print(f"  {icon} [{todo.id}] {todo.description}{due} {extra}".rstrip())
        print("-" * 60)
        return 0

    if args.action == "add":
        todo = await store.create({
            "description": args.description,
            "deadline": args.deadline,
            "priority": args.priority,
            "receiver": args.receiver,
            "status": args.status
        })
    elif args.action == "done":
        todo = await store.complete(args.id)
    elif args.action == "status":
        todo = await store.set_status(args.id, TodoStatus(args.status))
    else:
        await store.delete(args.id)
        print(f"🗑️ Deleted: {args.id}")
        return 0

    if args.json:
        _dump(todo.model_dump(mode="json"))
    else:
        print(f"{STATUS_ICONS[todo.status]} [{todo.id}] {todo.description}")
    return 0


async def _priorities(args: argparse.Namespace, app: JustDoIt) -> int:
    store = app.priorities

    if args.action == "list":
        priorities = await store.fetch_all()
        if _print_models(priorities, args.json):
            return 0
        for priority in priorities:
            channels = [
                name for name, enabled in (
                    ("email", priority.email_notification),
                    ("sms", priority.sms_notification),
                    ("whatsapp", priority.whatsapp_notification)
                ) if enabled
            ]
            print(f"  [{priority.id}] {priority.name} ({', '.join(channels) or 'no notifications'})")
        return 0

    if args.action == "add":
        priority = await store.create({
            "name": args.name,
            "email_notification": args.email,
            "sms_notification": args.sms,
            "whatsapp_notification": args.whatsapp
        })
        print(f"✅ Added: [{priority.id}] {priority.name}")
        return 0

    await store.delete(args.id)
    print(f"🗑️ Deleted: {args.id}")
    return 0


async def _contacts(args: argparse.Namespace, app: JustDoIt) -> int:
    store = app.contacts

    if args.action == "list":
        contacts = await store.fetch_all()
        if _print_models(contacts, args.json):
            return 0
        for contact in contacts:
            phone = f" ({contact.phone})" if contact.phone else ""
            print(f"  [{contact.id}] {contact.name} <{contact.email}>{phone}")
        return 0

    if args.action == "rm":
        await store.delete(args.id)
        print(f"🗑️ Deleted: {args.id}")
        return 0

    fields = {"name": args.name, "email": args.email, "phone": args.phone}
    if args.action == "add":
        contact = await store.create(fields)
        print(f"✅ Added: {contact.name} <{contact.email}>")
    else:
        contact = await store.update(
            args.id, {key: value for key, value in fields.items() if value is not None}
        )
        print(f"✏️ Updated: {contact.name} <{contact.email}>")
    return 0


async def _settings(args: argparse.Namespace, app: JustDoIt) -> int:
    store = app.settings

    if args.action == "show":
        settings = await store.fetch()
    else:
        changes = {}
        if args.sender_email is not None:
            changes["sender_email"] = args.sender_email
        if args.template is not None:
            changes["email_template"] = args.template
        settings = await store.update(changes)

    if args.json:
        _dump(settings.model_dump(mode="json"))
    else:
        print(f"Sender email:   {settings.sender_email or '-'}")
        print(f"Email template: {settings.email_template or '-'}")
    return 0


async def _main(args: argparse.Namespace) -> int:
    app = await JustDoIt.from_config()
    try:
        return await run_command(args, app)
    finally:
        await app.close()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        configure_logging(load_config().log_level)
        return asyncio.run(_main(args))
    except JustDoItError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
