"""
JUSTDOIT - Application Container
================================
Builds the session guard, the entity stores and the route guard around
one Supabase client. This is the object handed to the UI root; there
are no module-level singletons.

Usage:
    app = await JustDoIt.from_config()
    await app.start()
    result = await app.session.sign_in("anna@example.com", "secret")
    await app.todos.fetch_all()
"""

import logging
from typing import Any, Optional

from .client import create_client
from .config import AppConfig, load_config
from .contacts import ContactStore
from .notify import Notifier
from .priorities import PriorityStore
from .routes import RouteGuard
from .session import SessionGuard, SessionState
from .settings import SettingsStore
from .schema import Account
from .storage import SessionFile
from .todos import TodoStore

logger = logging.getLogger("justdoit")


class JustDoIt:
    def __init__(
        self,
        client: Any,
        config: Optional[AppConfig] = None,
        notifier: Optional[Notifier] = None,
        session_file: Optional[SessionFile] = None
    ):
        self.client = client
        self.config = config
        self.notifier = notifier or Notifier()
        self.session = SessionGuard(
            client,
            notifier=self.notifier,
            session_file=session_file,
            site_url=config.site_url if config else "http://localhost:3000"
        )
        self.todos = TodoStore(client, self.session, self.notifier)
        self.priorities = PriorityStore(client, self.session, self.notifier)
        self.contacts = ContactStore(client, self.session, self.notifier)
        self.settings = SettingsStore(client, self.session, self.notifier)
        self.routes = RouteGuard(self.session)
        self._account_id: Optional[str] = None
        self.session.on_change(self._on_session_change)

    @classmethod
    async def from_config(cls, config: Optional[AppConfig] = None) -> "JustDoIt":
        """Create the Supabase client from environment settings"""
        config = config or load_config()
        client = await create_client(config)
        return cls(client, config=config, session_file=SessionFile(config.session_file))

    @property
    def stores(self):
        return (self.todos, self.priorities, self.contacts, self.settings)

    async def start(self) -> bool:
        """Subscribe to auth events and resolve the initial session state"""
        self.session.attach()
        return await self.session.check_session()

    async def close(self) -> None:
        await self.session.settle()
        self.session.detach()

    def _on_session_change(self, state: SessionState, account: Optional[Account]) -> None:
        account_id = account.id if state is SessionState.AUTHENTICATED and account else None
        if account_id != self._account_id:
            for store in self.stores:
                store.reset()
            logger.debug(f"Reset stores for account {account_id}")
        self._account_id = account_id
