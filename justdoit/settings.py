"""
JUSTDOIT - Settings Store
=========================
One settings record per account, created on first read if it does not
exist yet (upsert-on-read).
"""

import logging
from typing import Any, Optional

from .client import SETTINGS
from .schema import Settings, SettingsUpdate, changes_of, parse_input, utcnow
from .store import EntityStore, rows_of

logger = logging.getLogger("justdoit.settings")

RECORD = "settings"  # version key of the single record


class SettingsStore(EntityStore[Settings]):
    table = SETTINGS
    model = Settings
    label = "settings"

    @property
    def settings(self) -> Optional[Settings]:
        return self._items[0] if self._items else None

    async def _find(self, user_id: str) -> Optional[Settings]:
        response = await (
            self._table()
            .select("*")
            .eq("user_id", user_id)
            .maybe_single()
            .execute()
        )
        rows = rows_of(response)
        return Settings.model_validate(rows[0]) if rows else None

    async def _insert(self, row: dict) -> Settings:
        response = await self._table().insert(row).execute()
        return self._one(response)

    async def fetch(self) -> Settings:
        """Load the account's settings, creating an empty record if absent"""
        async with self._operation("load settings"):
            account = self.guard.require_account()

            async def load() -> Settings:
                found = await self._find(account.id)
                if found is not None:
                    return found
                logger.info(f"🆕 Creating settings for {account.email}")
                return await self._insert({"user_id": account.id})

            return await self._mutate(
                RECORD,
                remote=load,
                reconcile=lambda items, record: [record]
            )

    async def update(self, data: Any) -> Settings:
        async with self._operation("save settings"):
            account = self.guard.require_account()
            changes = changes_of(parse_input(SettingsUpdate, data))

            async def save() -> Settings:
                existing = await self._find(account.id)
                if existing is None:
                    return await self._insert({**changes, "user_id": account.id})
                response = await (
                    self._table()
                    .update({**changes, "updated_at": utcnow().isoformat()})
                    .eq("user_id", account.id)
                    .execute()
                )
                return self._one(response)

            record = await self._mutate(
                RECORD,
                remote=save,
                reconcile=lambda items, saved: [saved]
            )
            self.notifier.success("Settings saved")
            return record
