"""In-memory stand-in for the Supabase async client used by the tests"""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional, Tuple

from justdoit.app import JustDoIt
from justdoit.storage import SessionFile

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


class FakeAPIError(Exception):
    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class FakeResponse:
    def __init__(self, data: Any):
        self.data = data


class FakeQuery:
    def __init__(self, db: "FakeDatabase", table: str):
        self.db = db
        self.table = table
        self.op = "select"
        self.columns = "*"
        self.payload: Any = None
        self.filters: List[Tuple[str, Any]] = []
        self.ordering: Optional[Tuple[str, bool]] = None
        self.row_limit: Optional[int] = None
        self.cardinality: Optional[str] = None

    def select(self, columns: str = "*") -> "FakeQuery":
        self.columns = columns
        return self

    def insert(self, payload: Any) -> "FakeQuery":
        self.op, self.payload = "insert", payload
        return self

    def update(self, payload: Dict[str, Any]) -> "FakeQuery":
        self.op, self.payload = "update", payload
        return self

    def delete(self) -> "FakeQuery":
        self.op = "delete"
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append((column, value))
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self.ordering = (column, desc)
        return self

    def limit(self, count: int) -> "FakeQuery":
        self.row_limit = count
        return self

    def single(self) -> "FakeQuery":
        self.cardinality = "single"
        return self

    def maybe_single(self) -> "FakeQuery":
        self.cardinality = "maybe"
        return self

    async def execute(self) -> Optional[FakeResponse]:
        await self.db.checkpoint(self.table, self.op)
        self.db.calls.append((self.table, self.op, tuple(self.filters)))

        rows = self.db.tables.setdefault(self.table, [])
        if self.op == "insert":
            payloads = self.payload if isinstance(self.payload, list) else [self.payload]
            data = []
            for payload in payloads:
                row = {"id": str(uuid.uuid4()), "created_at": self.db.next_timestamp()}
                row.update(payload)
                rows.append(row)
                data.append(dict(row))
            return FakeResponse(data)

        matched = [row for row in rows if all(row.get(k) == v for k, v in self.filters)]

        if self.op == "update":
            for row in matched:
                row.update(self.payload)
            data = [dict(row) for row in matched]
        elif self.op == "delete":
            self.db.tables[self.table] = [row for row in rows if row not in matched]
            data = [dict(row) for row in matched]
        else:
            if self.ordering:
                column, desc = self.ordering
                matched = sorted(matched, key=lambda row: row.get(column), reverse=desc)
            if self.row_limit is not None:
                matched = matched[:self.row_limit]
            if self.columns != "*":
                wanted = [c.strip() for c in self.columns.split(",")]
                data = [{c: row.get(c) for c in wanted} for row in matched]
            else:
                data = [dict(row) for row in matched]

        if self.cardinality == "maybe":
            return FakeResponse(data[0]) if data else None
        if self.cardinality == "single":
            if len(data) != 1:
                raise FakeAPIError("JSON object requested, multiple (or no) rows returned")
            return FakeResponse(data[0])
        return FakeResponse(data)


class FakeDatabase:
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.calls: List[Tuple[str, str, tuple]] = []
        self._failures: Dict[Tuple[str, str], List[Exception]] = {}
        self._gates: Dict[Tuple[str, str], List[asyncio.Event]] = {}
        self._clock = 0

    def next_timestamp(self) -> str:
        self._clock += 1
        return (BASE_TIME + timedelta(seconds=self._clock)).isoformat()

    def fail(self, table: str, op: str, message: str = "network error") -> None:
        """Make the next `op` on `table` raise"""
        self._failures.setdefault((table, op), []).append(FakeAPIError(message))

    def hold(self, table: str, op: str) -> asyncio.Event:
        """Block the next `op` on `table` until the returned event is set"""
        gate = asyncio.Event()
        self._gates.setdefault((table, op), []).append(gate)
        return gate

    async def checkpoint(self, table: str, op: str) -> None:
        gates = self._gates.get((table, op))
        gate = gates.pop(0) if gates else None
        failures = self._failures.get((table, op))
        failure = failures.pop(0) if failures else None

        if gate is not None:
            await gate.wait()
        else:
            await asyncio.sleep(0)
        if failure is not None:
            raise failure


class FakeAuth:
    def __init__(self, auto_confirm: bool = True):
        self.auto_confirm = auto_confirm
        self.users: Dict[str, Dict[str, Any]] = {}
        self.sessions: Dict[str, SimpleNamespace] = {}
        self.current: Optional[SimpleNamespace] = None
        self.sign_out_error: Optional[Exception] = None
        self.get_session_error: Optional[Exception] = None
        self.set_session_error: Optional[Exception] = None
        self.reset_requests: List[Tuple[str, dict]] = []
        self.last_sign_up: Optional[dict] = None
        self._callbacks: List[Callable[[str, Any], None]] = []

    def _user(self, record: Dict[str, Any]) -> SimpleNamespace:
        return SimpleNamespace(
            id=record["id"],
            email=record["email"],
            user_metadata=dict(record["metadata"])
        )

    def _new_session(self, record: Dict[str, Any]) -> SimpleNamespace:
        session = SimpleNamespace(
            access_token=f"access-{uuid.uuid4().hex[:8]}",
            refresh_token=f"refresh-{uuid.uuid4().hex[:8]}",
            expires_at=4102444800,
            user=self._user(record)
        )
        self.sessions[session.access_token] = session
        return session

    def add_user(self, email: str, password: str, name: str = "", confirmed: bool = True) -> str:
        user_id = str(uuid.uuid4())
        self.users[email] = {
            "id": user_id, "email": email, "password": password,
            "confirmed": confirmed, "metadata": {"name": name}
        }
        return user_id

    def emit(self, event: str, session: Any) -> None:
        """Deliver an auth state change, as Supabase does for other tabs"""
        for callback in list(self._callbacks):
            callback(event, session)

    def on_auth_state_change(self, callback: Callable[[str, Any], None]) -> SimpleNamespace:
        self._callbacks.append(callback)
        return SimpleNamespace(unsubscribe=lambda: self._callbacks.remove(callback))

    async def sign_up(self, credentials: dict) -> SimpleNamespace:
        await asyncio.sleep(0)
        self.last_sign_up = credentials
        email = credentials["email"]
        if email in self.users:
            raise FakeAPIError("User already registered", code="user_already_exists")
        name = credentials.get("options", {}).get("data", {}).get("name", "")
        self.add_user(email, credentials["password"], name, confirmed=self.auto_confirm)
        record = self.users[email]
        session = None
        if self.auto_confirm:
            session = self._new_session(record)
            self.current = session
            self.emit("SIGNED_IN", session)
        return SimpleNamespace(user=self._user(record), session=session)

    async def sign_in_with_password(self, credentials: dict) -> SimpleNamespace:
        await asyncio.sleep(0)
        record = self.users.get(credentials["email"])
        if record is None or record["password"] != credentials["password"]:
            raise FakeAPIError("Invalid login credentials", code="invalid_credentials")
        if not record["confirmed"]:
            raise FakeAPIError("Email not confirmed", code="email_not_confirmed")
        session = self._new_session(record)
        self.current = session
        self.emit("SIGNED_IN", session)
        return SimpleNamespace(user=session.user, session=session)

    async def sign_out(self) -> None:
        await asyncio.sleep(0)
        if self.sign_out_error is not None:
            raise self.sign_out_error
        self.current = None
        self.emit("SIGNED_OUT", None)

    async def get_session(self) -> Optional[SimpleNamespace]:
        await asyncio.sleep(0)
        if self.get_session_error is not None:
            raise self.get_session_error
        return self.current

    async def set_session(self, access_token: str, refresh_token: str) -> SimpleNamespace:
        await asyncio.sleep(0)
        if self.set_session_error is not None:
            raise self.set_session_error
        session = self.sessions.get(access_token)
        if session is None or session.refresh_token != refresh_token:
            raise FakeAPIError(
                "Invalid Refresh Token: Refresh Token Not Found", code="refresh_token_not_found"
            )
        self.current = session
        return SimpleNamespace(user=session.user, session=session)

    async def reset_password_for_email(self, email: str, options: dict) -> None:
        await asyncio.sleep(0)
        self.reset_requests.append((email, options))

    async def update_user(self, attributes: dict) -> SimpleNamespace:
        await asyncio.sleep(0)
        if self.current is None:
            raise FakeAPIError("Auth session missing!")
        record = self.users[self.current.user.email]
        if "password" in attributes:
            record["password"] = attributes["password"]
        if "email" in attributes:
            # applied only after the confirmation link is followed
            record["new_email"] = attributes["email"]
        record["metadata"].update(attributes.get("data", {}))
        self.current.user = self._user(record)
        self.emit("USER_UPDATED", self.current)
        return SimpleNamespace(user=self.current.user)


class FakeSupabase:
    def __init__(self, auto_confirm: bool = True):
        self.db = FakeDatabase()
        self.auth = FakeAuth(auto_confirm=auto_confirm)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self.db, name)


ANNA = ("anna@example.com", "anna-Secret1!")
BOB = ("bob@example.com", "bob-Secret1!")


def make_backend() -> FakeSupabase:
    backend = FakeSupabase()
    backend.auth.add_user(*ANNA, name="Anna")
    backend.auth.add_user(*BOB, name="Bob")
    return backend


async def signed_in_app(
    backend: FakeSupabase,
    account: Tuple[str, str] = ANNA,
    session_file: Optional[SessionFile] = None
) -> JustDoIt:
    """A started app with `account` signed in"""
    app = JustDoIt(backend, session_file=session_file)
    await app.start()
    result = await app.session.sign_in(*account)
    assert result.success, result.message
    await app.session.settle()
    return app
