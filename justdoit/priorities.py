"""
JUSTDOIT - Priority Store
=========================
Optimistic store over the `priorities` table, ordered by name.
New priorities are appended; the list is not re-sorted until the next
fetch.
"""

import logging
from typing import Any, List

from .client import PRIORITIES
from .schema import (
    Priority, PriorityInput, PriorityUpdate, changes_of, parse_input,
    temp_id, utcnow
)
from .store import EntityStore

logger = logging.getLogger("justdoit.priorities")


class PriorityStore(EntityStore[Priority]):
    table = PRIORITIES
    model = Priority
    label = "priority"

    async def fetch_all(self) -> List[Priority]:
        async with self._operation("load priorities"):
            account = self.guard.require_account()
            query = (
                self._table()
                .select("*")
                .eq("user_id", account.id)
                .order("name")
            )
            return await self._fetch(query)

    async def create(self, data: Any) -> Priority:
        async with self._operation("add priority"):
            account = self.guard.require_account()
            priority_input = parse_input(PriorityInput, data)

            placeholder = Priority(
                id=temp_id(),
                user_id=account.id,
                created_at=utcnow(),
                **priority_input.model_dump()
            )
            row = {**priority_input.model_dump(mode="json"), "user_id": account.id}

            async def insert() -> Priority:
                response = await self._table().insert(row).execute()
                return self._one(response)

            priority = await self._mutate(
                placeholder.id,
                remote=insert,
                apply=lambda items: items + [placeholder],
                reconcile=self._confirm(placeholder.id, append=True)
            )
            logger.info(f"✅ Added priority: {priority.name}")
            self.notifier.success("Priority added")
            return priority

    async def update(self, priority_id: str, data: Any) -> Priority:
        async with self._operation("update priority"):
            account = self.guard.require_account()
            update = parse_input(PriorityUpdate, data)
            changes = changes_of(update)
            local = update.model_dump(exclude_unset=True)

            async def remote() -> Priority:
                response = await (
                    self._table()
                    .update(changes)
                    .eq("id", priority_id)
                    .eq("user_id", account.id)
                    .execute()
                )
                return self._one(response, priority_id)

            priority = await self._mutate(
                priority_id,
                remote=remote,
                apply=lambda items: [
                    item.model_copy(update=local) if item.id == priority_id else item
                    for item in items
                ],
                reconcile=lambda items, updated: self._replace(priority_id, updated)(items)
            )
            self.notifier.success("Priority updated")
            return priority

    async def delete(self, priority_id: str) -> None:
        async with self._operation("delete priority"):
            account = self.guard.require_account()

            async def remote() -> None:
                response = await (
                    self._table()
                    .delete()
                    .eq("id", priority_id)
                    .eq("user_id", account.id)
                    .execute()
                )
                self._one(response, priority_id)

            await self._mutate(
                priority_id,
                remote=remote,
                apply=self._without(priority_id),
                reconcile=lambda items, _: self._without(priority_id)(items)
            )
            logger.info(f"🗑️ Deleted priority {priority_id}")
            self.notifier.success("Priority deleted")
