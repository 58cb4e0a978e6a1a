"""
JUSTDOIT - Session Guard
========================
Holds the current session and serialises every change to it.

States: unknown (still loading) -> anonymous | authenticated(account).
Explicit calls (sign_in, sign_out, ...) and out-of-band auth events from
Supabase (another tab, token refresh) are jobs on one queue, consumed by
a single worker in arrival order, so a listener event can never interleave
with a half-finished sign-in or sign-out.

Author: JustDoIt / TaskMaster Pro
"""

import asyncio
import logging
import re
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from .errors import (
    InvalidCredentials, NotAuthenticated, RemoteServiceError,
    UnconfirmedAccount, ValidationError
)
from .notify import Notifier
from .schema import (
    Account, AuthResult, AuthSession, Credentials, Registration, parse_input
)
from .storage import SessionFile

logger = logging.getLogger("justdoit.session")

# Events that carry a (new) valid session
SESSION_EVENTS = {"SIGNED_IN", "TOKEN_REFRESHED", "USER_UPDATED", "INITIAL_SESSION"}
SIGNED_OUT = "SIGNED_OUT"

UNCONFIRMED_MESSAGE = "Please confirm your email address first"
# Auth error codes meaning the stored tokens are no longer valid
REJECTED_TOKEN_CODES = {
    "refresh_token_not_found", "refresh_token_already_used", "session_not_found",
    "session_expired", "bad_jwt", "user_not_found"
}
PASSWORD_MIN_LENGTH = 8
PASSWORD_SPECIAL_CHARS = re.compile(r'[!@#$%^&*(),.?":{}|<>]')


class SessionState(str, Enum):
    UNKNOWN = "unknown"
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"


StateListener = Callable[[SessionState, Optional[Account]], None]
Job = Callable[[], Awaitable[Any]]


def classify_auth_error(error: Exception) -> str:
    """Map a Supabase auth error onto one of our failure kinds"""
    code = getattr(error, "code", None)
    message = getattr(error, "message", None) or str(error)
    if code == "email_not_confirmed" or message == "Email not confirmed":
        return UnconfirmedAccount.kind
    if code == "invalid_credentials" or message == "Invalid login credentials":
        return InvalidCredentials.kind
    return RemoteServiceError.kind


def is_rejected_token(error: Exception) -> bool:
    """True when Supabase refused the tokens (as opposed to being unreachable)"""
    if getattr(error, "code", None) in REJECTED_TOKEN_CODES:
        return True
    message = getattr(error, "message", None) or str(error)
    return "Invalid Refresh Token" in message or "Auth session missing" in message


def validate_password(password: str, confirmation: Optional[str] = None) -> None:
    """Password policy for new passwords; raises ValidationError"""
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if not re.search(r"\d", password):
        raise ValidationError("Password must contain at least one number")
    if not PASSWORD_SPECIAL_CHARS.search(password):
        raise ValidationError("Password must contain at least one special character")
    if confirmation is not None and confirmation != password:
        raise ValidationError("Passwords do not match")


class SessionWriter:
    """Single-writer queue: jobs run one at a time, in arrival order"""

    def __init__(self):
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def _ensure_worker(self) -> asyncio.Queue:
        loop = asyncio.get_running_loop()
        if self._loop is not loop or self._worker is None or self._worker.done():
            self._loop = loop
            self._queue = asyncio.Queue()
            self._worker = loop.create_task(self._run())
        return self._queue

    async def submit(self, job: Job) -> Any:
        """Enqueue a job and wait for its result (or exception)"""
        queue = self._ensure_worker()
        future = asyncio.get_running_loop().create_future()
        queue.put_nowait((job, future))
        return await future

    def post(self, job: Job) -> None:
        """Enqueue a job without waiting; used from sync auth callbacks"""
        try:
            queue = self._ensure_worker()
        except RuntimeError:
            if self._loop is None or self._loop.is_closed():
                logger.warning("Dropping session event: no event loop")
                return
            self._loop.call_soon_threadsafe(self.post, job)
            return
        queue.put_nowait((job, None))

    async def drain(self) -> None:
        """Wait until every queued job has been processed"""
        if self._queue is not None and self._loop is asyncio.get_running_loop():
            await self._queue.join()

    def close(self) -> None:
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
        self._worker = None

    async def _run(self) -> None:
        queue = self._queue
        while True:
            job, future = await queue.get()
            try:
                result = await job()
            except Exception as e:
                if future is None:
                    logger.warning(f"Session event failed: {e}")
                elif not future.done():
                    future.set_exception(e)
            else:
                if future is not None and not future.done():
                    future.set_result(result)
            finally:
                queue.task_done()


class SessionGuard:
    """
    Current-session state for one client.

    Every store asks the guard for the signed-in account via
    require_account() before it talks to Supabase.
    """

    def __init__(
        self,
        client: Any,
        notifier: Optional[Notifier] = None,
        session_file: Optional[SessionFile] = None,
        site_url: str = "http://localhost:3000"
    ):
        self.client = client
        self.notifier = notifier or Notifier()
        self.session_file = session_file
        self.site_url = site_url.rstrip("/")
        self.state = SessionState.UNKNOWN
        self.session: Optional[AuthSession] = None
        self.error: Optional[str] = None
        self._writer = SessionWriter()
        self._subscription = None
        self._listeners: List[StateListener] = []

    # ========================================
    # STATE
    # ========================================

    @property
    def user(self) -> Optional[Account]:
        return self.session.account if self.session else None

    @property
    def loading(self) -> bool:
        return self.state is SessionState.UNKNOWN

    @property
    def is_authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED

    def require_account(self) -> Account:
        if self.session is None:
            raise NotAuthenticated()
        return self.session.account

    def on_change(self, listener: StateListener) -> None:
        """Call listener(state, account) after every transition"""
        self._listeners.append(listener)

    def _set_session(self, session: Optional[AuthSession], keep_file: bool = False) -> None:
        before: Tuple[SessionState, Optional[str]] = (
            self.state, self.user.id if self.user else None
        )
        self.session = session
        self.state = SessionState.AUTHENTICATED if session else SessionState.ANONYMOUS

        if self.session_file is not None and not keep_file:
            if session is not None and session.persisted:
                self.session_file.save(session)
            else:
                self.session_file.clear()

        after = (self.state, self.user.id if self.user else None)
        if after != before:
            logger.info(f"🔐 Session: {before[0].value} -> {self.state.value}")
            for listener in list(self._listeners):
                listener(self.state, self.user)

    def _adopt(self, supabase_session: Any, persisted: bool) -> AuthSession:
        session = AuthSession.from_supabase(supabase_session, persisted=persisted)
        self._set_session(session)
        return session

    def _fail(self, message: str, kind: Optional[str] = None) -> AuthResult:
        self.error = message
        self.notifier.error(message)
        return AuthResult(success=False, message=message, kind=kind)

    # ========================================
    # OUT-OF-BAND EVENTS
    # ========================================

    def attach(self) -> None:
        """Subscribe to Supabase auth state changes"""
        if self._subscription is None:
            self._subscription = self.client.auth.on_auth_state_change(self._on_auth_event)

    def detach(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._writer.close()

    def _on_auth_event(self, event: Any, session: Any) -> None:
        name = str(getattr(event, "value", event))
        self._writer.post(lambda: self._apply_event(name, session))

    async def _apply_event(self, name: str, session: Any) -> None:
        if name == SIGNED_OUT:
            self._set_session(None)
        elif name in SESSION_EVENTS:
            if session is None:
                self._set_session(None)
            else:
                persisted = self.session.persisted if self.session else True
                self._adopt(session, persisted=persisted)
        else:
            logger.debug(f"Ignoring auth event {name}")

    async def settle(self) -> None:
        """Wait for queued session jobs and events to be applied"""
        await self._writer.drain()

    # ========================================
    # AUTH OPERATIONS
    # ========================================

    async def sign_up(self, email: str, password: str, display_name: str) -> AuthResult:
        try:
            registration = parse_input(Registration, {
                "email": email, "password": password, "display_name": display_name
            })
        except ValidationError as e:
            return self._fail(str(e), kind=e.kind)
        return await self._writer.submit(lambda: self._sign_up(registration))

    async def _sign_up(self, registration: Registration) -> AuthResult:
        self.error = None
        try:
            response = await self.client.auth.sign_up({
                "email": registration.email,
                "password": registration.password,
                "options": {
                    "data": {"name": registration.display_name},
                    "email_redirect_to": f"{self.site_url}/auth/callback"
                }
            })
        except Exception as e:
            kind = classify_auth_error(e)
            if kind == UnconfirmedAccount.kind:
                return self._fail(UNCONFIRMED_MESSAGE, kind=kind)
            logger.warning(f"Sign-up failed for {registration.email}: {e}")
            return self._fail(getattr(e, "message", None) or str(e), kind=kind)

        if getattr(response, "user", None) is None:
            return self._fail("Unknown error during registration", kind=RemoteServiceError.kind)

        logger.info(f"📝 Registered {registration.email}")
        if getattr(response, "session", None) is not None:
            self._adopt(response.session, persisted=True)
            message = "Registration successful! You are now signed in."
        else:
            message = "Registration successful! Please check your email for the confirmation link."
        self.notifier.success(message)
        return AuthResult(success=True, message=message)

    async def sign_in(self, email: str, password: str, remember_me: bool = True) -> AuthResult:
        try:
            credentials = parse_input(Credentials, {"email": email, "password": password})
        except ValidationError as e:
            return self._fail(str(e), kind=e.kind)
        return await self._writer.submit(lambda: self._sign_in(credentials, remember_me))

    async def _sign_in(self, credentials: Credentials, remember_me: bool) -> AuthResult:
        self.error = None
        try:
            response = await self.client.auth.sign_in_with_password({
                "email": credentials.email,
                "password": credentials.password
            })
        except Exception as e:
            kind = classify_auth_error(e)
            if kind == UnconfirmedAccount.kind:
                return self._fail(UNCONFIRMED_MESSAGE, kind=kind)
            logger.warning(f"Sign-in failed for {credentials.email}: {e}")
            return self._fail(getattr(e, "message", None) or str(e), kind=kind)

        if getattr(response, "user", None) is None or getattr(response, "session", None) is None:
            return self._fail("Unknown error during sign-in", kind=RemoteServiceError.kind)

        self._adopt(response.session, persisted=remember_me)
        logger.info(f"✅ Signed in {credentials.email} (remember_me={remember_me})")
        self.notifier.success("Signed in successfully!")
        return AuthResult(success=True, message="Signed in successfully!")

    async def sign_out(self) -> None:
        await self._writer.submit(self._sign_out)

    async def _sign_out(self) -> None:
        self.error = None
        try:
            await self.client.auth.sign_out()
        except Exception as e:
            self.error = str(e)
            logger.warning(f"Remote sign-out failed, clearing local session anyway: {e}")
            self.notifier.error(str(e) or "Sign-out failed")
            raise RemoteServiceError(str(e)) from e
        else:
            logger.info("👋 Signed out")
            self.notifier.success("Signed out successfully!")
        finally:
            self._set_session(None)

    async def check_session(self) -> bool:
        """Re-query Supabase for an active session and sync local state"""
        return await self._writer.submit(self._check_session)

    async def _check_session(self) -> bool:
        restored = False
        if self.session is None and self.session_file is not None:
            saved = self.session_file.load()
            if saved is not None:
                try:
                    await self.client.auth.set_session(saved.access_token, saved.refresh_token)
                    restored = True
                except Exception as e:
                    if not is_rejected_token(e):
                        return self._offline(e)
                    logger.warning(f"Saved session was rejected: {e}")
                    self.session_file.clear()

        try:
            current = await self.client.auth.get_session()
        except Exception as e:
            if not is_rejected_token(e):
                return self._offline(e)
            logger.warning(f"Session check failed: {e}")
            self._set_session(None)
            return False

        if current is None:
            self._set_session(None)
            return False

        persisted = self.session.persisted if self.session else restored
        self._adopt(current, persisted=persisted)
        return True

    def _offline(self, error: Exception) -> bool:
        """Supabase unreachable: anonymous for now, remembered session kept"""
        self.error = str(error)
        logger.warning(f"Could not reach Supabase, keeping saved session: {error}")
        self._set_session(None, keep_file=True)
        return False

    async def reset_password(self, email: str) -> None:
        """Send a password reset mail"""
        if not email or not email.strip():
            raise ValidationError("email: Field required")
        try:
            await self.client.auth.reset_password_for_email(
                email.strip(), {"redirect_to": f"{self.site_url}/auth/reset-password"}
            )
        except Exception as e:
            self.error = str(e)
            self.notifier.error(str(e))
            raise RemoteServiceError(str(e)) from e
        logger.info(f"📧 Password reset requested for {email}")
        self.notifier.success("Password reset email sent!")

    async def update_password(self, new_password: str, confirmation: Optional[str] = None) -> None:
        validate_password(new_password, confirmation)
        await self._writer.submit(lambda: self._update_user({"password": new_password}))
        self.notifier.success("Your password has been changed")

    async def update_profile(
        self,
        display_name: Optional[str] = None,
        email: Optional[str] = None
    ) -> Account:
        """
        Change the display name and/or request an email change.

        A new email only takes effect once Supabase has confirmed it; until
        then the account keeps reporting the current address.
        """
        attributes: dict = {}
        if display_name is not None:
            attributes["data"] = {"name": display_name}
        if email is not None:
            attributes["email"] = email.strip()
        if not attributes:
            raise ValidationError("Nothing to update")
        account = await self._writer.submit(lambda: self._update_user(attributes))
        if email is not None and account.email != attributes["email"]:
            self.notifier.info("Please confirm the change via the link sent to your new email address")
        self.notifier.success("Profile updated successfully!")
        return account

    async def _update_user(self, attributes: dict) -> Account:
        if self.session is None:
            raise NotAuthenticated()
        try:
            response = await self.client.auth.update_user(attributes)
        except Exception as e:
            self.error = str(e)
            self.notifier.error(str(e))
            raise RemoteServiceError(str(e)) from e

        user = getattr(response, "user", None)
        if user is not None:
            account = Account.from_user(user)
            self._set_session(self.session.model_copy(update={"account": account}))
        return self.session.account
