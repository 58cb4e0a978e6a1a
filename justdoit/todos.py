"""
JUSTDOIT - Todo Store
=====================
Optimistic store over the `todos` table, newest first.
"""

import logging
from typing import Any, Dict, List

from .client import TODOS
from .schema import (
    Todo, TodoInput, TodoStatus, TodoUpdate, changes_of, parse_input,
    temp_id, utcnow
)
from .store import EntityStore

logger = logging.getLogger("justdoit.todos")


class TodoStore(EntityStore[Todo]):
    table = TODOS
    model = Todo
    label = "todo"

    async def fetch_all(self) -> List[Todo]:
        """Load the account's todos ordered by created_at descending"""
        async with self._operation("load todos"):
            account = self.guard.require_account()
            query = (
                self._table()
                .select("*")
                .eq("user_id", account.id)
                .order("created_at", desc=True)
            )
            todos = await self._fetch(query)
            logger.debug(f"📂 Loaded {len(todos)} todos")
            return todos

    async def create(self, data: Any) -> Todo:
        async with self._operation("create todo"):
            account = self.guard.require_account()
            todo_input = parse_input(TodoInput, data)

            placeholder = Todo(
                id=temp_id(),
                user_id=account.id,
                created_at=utcnow(),
                **todo_input.model_dump()
            )
            row = {**todo_input.model_dump(mode="json"), "user_id": account.id}

            async def insert() -> Todo:
                response = await self._table().insert(row).execute()
                return self._one(response)

            todo = await self._mutate(
                placeholder.id,
                remote=insert,
                apply=lambda items: [placeholder] + items,
                reconcile=self._confirm(placeholder.id)
            )
            logger.info(f"✅ Created todo: {todo.description} ({todo.id})")
            self.notifier.success("Todo created")
            return todo

    async def update(self, todo_id: str, data: Any) -> Todo:
        async with self._operation("update todo"):
            account = self.guard.require_account()
            update = parse_input(TodoUpdate, data)
            changes = changes_of(update)
            local = update.model_dump(exclude_unset=True)

            def apply(items: List[Todo]) -> List[Todo]:
                return [
                    item.model_copy(update=local) if item.id == todo_id else item
                    for item in items
                ]

            async def remote() -> Todo:
                response = await (
                    self._table()
                    .update(changes)
                    .eq("id", todo_id)
                    .eq("user_id", account.id)
                    .execute()
                )
                return self._one(response, todo_id)

            todo = await self._mutate(
                todo_id,
                remote=remote,
                apply=apply,
                reconcile=lambda items, updated: self._replace(todo_id, updated)(items)
            )
            logger.info(f"✏️ Updated todo {todo_id}: {sorted(changes)}")
            self.notifier.success("Todo updated")
            return todo

    async def delete(self, todo_id: str) -> None:
        async with self._operation("delete todo"):
            account = self.guard.require_account()

            async def remote() -> None:
                response = await (
                    self._table()
                    .delete()
                    .eq("id", todo_id)
                    .eq("user_id", account.id)
                    .execute()
                )
                self._one(response, todo_id)

            await self._mutate(
                todo_id,
                remote=remote,
                apply=self._without(todo_id),
                reconcile=lambda items, _: self._without(todo_id)(items)
            )
            logger.info(f"🗑️ Deleted todo {todo_id}")
            self.notifier.success("Todo deleted")

    async def set_status(self, todo_id: str, status: TodoStatus) -> Todo:
        return await self.update(todo_id, {"status": status})

    async def complete(self, todo_id: str) -> Todo:
        return await self.set_status(todo_id, TodoStatus.COMPLETED)

    def stats(self) -> Dict[str, int]:
        """Counts per status of the cached todos (dashboard overview)"""
        summary = {status.value: 0 for status in TodoStatus}
        for todo in self._items:
            summary[todo.status.value] += 1
        summary["total"] = len(self._items)
        return summary
