"""
JUSTDOIT / TASKMASTER PRO - Client Core
=======================================

Session gate, route guard and dashboard stores (todos, priorities,
contacts, settings) over a Supabase backend.

Usage:
    from justdoit import JustDoIt

    app = await JustDoIt.from_config()
    await app.start()

    await app.session.sign_in("anna@example.com", "secret")
    await app.todos.create({"description": "Buy milk"})
    todos = await app.todos.fetch_all()

    app.routes.navigate("/dashboard/todos")

Author: JustDoIt / TaskMaster Pro
"""

from .schema import (
    Account,
    AuthResult,
    AuthSession,
    Contact,
    Priority,
    Settings,
    Todo,
    TodoStatus
)

from .errors import (
    JustDoItError,
    NotAuthenticated,
    RemoteServiceError,
    ConstraintViolation,
    ValidationError,
    InvalidCredentials,
    UnconfirmedAccount,
    ConfigError
)

from .routes import Allow, RedirectTo, RouteGuard
from .session import SessionGuard, SessionState
from .app import JustDoIt

__version__ = "1.0.0"
__all__ = [
    "JustDoIt",
    "SessionGuard",
    "SessionState",
    "RouteGuard",
    "Allow",
    "RedirectTo",
    "Account",
    "AuthResult",
    "AuthSession",
    "Todo",
    "TodoStatus",
    "Priority",
    "Contact",
    "Settings",
    "JustDoItError",
    "NotAuthenticated",
    "RemoteServiceError",
    "ConstraintViolation",
    "ValidationError",
    "InvalidCredentials",
    "UnconfirmedAccount",
    "ConfigError"
]
