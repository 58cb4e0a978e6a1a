"""
JUSTDOIT - Entity Store Base
============================
Cache + CRUD facade over one Supabase table.

Every operation:
- requires a signed-in account before any remote call
- records a failure message in `error`, pushes an error notification and
  re-raises (foreign exceptions are wrapped in RemoteServiceError)
- always resets `loading` when it finishes

Mutations go through `_mutate()`: snapshot, optionally apply locally,
call Supabase, then reconcile with the server row or roll the entity back
to its pre-mutation value. A per-entity version counter makes sure only
the most recently issued request for an id may touch the cache, and the
store epoch drops responses that arrive after `reset()`.

Author: JustDoIt / TaskMaster Pro
"""

import logging
from contextlib import asynccontextmanager
from typing import (
    Any, AsyncIterator, Awaitable, Callable, Dict, Generic, List,
    Optional, Type, TypeVar
)

from pydantic import BaseModel

from .errors import JustDoItError, RemoteServiceError
from .notify import Notifier

logger = logging.getLogger("justdoit.store")

T = TypeVar("T", bound=BaseModel)
R = TypeVar("R")

ALL = "*"  # version key for whole-list fetches


def rows_of(response: Any) -> List[Dict[str, Any]]:
    """Rows of a postgrest response; maybe_single() may return None"""
    if response is None:
        return []
    data = getattr(response, "data", None)
    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    return list(data)


class EntityStore(Generic[T]):
    """Shared state handling for the todo/priority/contact/settings stores"""

    table: str = ""
    model: Type[BaseModel] = BaseModel
    label: str = "item"

    def __init__(self, client: Any, guard: Any, notifier: Optional[Notifier] = None):
        self.client = client
        self.guard = guard
        self.notifier = notifier or guard.notifier
        self.error: Optional[str] = None
        self._items: List[T] = []
        self._versions: Dict[str, int] = {}
        self._epoch = 0
        self._running = 0

    # ========================================
    # STATE
    # ========================================

    @property
    def items(self) -> List[T]:
        return list(self._items)

    @property
    def loading(self) -> bool:
        return self._running > 0

    def get(self, entity_id: str) -> Optional[T]:
        for item in self._items:
            if item.id == entity_id:
                return item
        return None

    def reset(self) -> None:
        """Forget cached rows; in-flight responses will be discarded"""
        self._items = []
        self.error = None
        self._versions.clear()
        self._epoch += 1

    def _table(self):
        return self.client.table(self.table)

    # ========================================
    # OPERATION BOUNDARY
    # ========================================

    @asynccontextmanager
    async def _operation(self, action: str) -> AsyncIterator[None]:
        self._running += 1
        self.error = None
        try:
            yield
        except JustDoItError as e:
            self._record_failure(action, e)
            raise
        except Exception as e:
            self._record_failure(action, e)
            raise RemoteServiceError(str(e)) from e
        finally:
            self._running -= 1

    def _record_failure(self, action: str, error: Exception) -> None:
        message = str(error) or "An unknown error occurred"
        self.error = message
        logger.warning(f"❌ Failed to {action}: {message}")
        self.notifier.error(f"Failed to {action}: {message}")

    # ========================================
    # VERSIONING
    # ========================================

    def _issue(self, entity_id: str) -> int:
        version = self._versions.get(entity_id, 0) + 1
        self._versions[entity_id] = version
        return version

    def _is_current(self, entity_id: str, version: int, epoch: int) -> bool:
        return epoch == self._epoch and self._versions.get(entity_id) == version

    # ========================================
    # REMOTE HELPERS
    # ========================================

    async def _fetch(self, query: Any) -> List[T]:
        """Run a list query and replace the cache if still current"""
        version, epoch = self._issue(ALL), self._epoch
        response = await query.execute()
        items = [self.model.model_validate(row) for row in rows_of(response)]
        if self._is_current(ALL, version, epoch):
            self._items = items
        else:
            logger.debug(f"Discarding stale {self.table} fetch")
        return items

    def _one(self, response: Any, entity_id: Optional[str] = None) -> T:
        rows = rows_of(response)
        if not rows:
            target = f" {entity_id}" if entity_id else ""
            raise RemoteServiceError(f"{self.label.capitalize()}{target} not found")
        return self.model.model_validate(rows[0])

    # ========================================
    # MUTATION
    # ========================================

    async def _mutate(
        self,
        entity_id: str,
        remote: Callable[[], Awaitable[R]],
        reconcile: Callable[[List[T], R], List[T]],
        apply: Optional[Callable[[List[T]], List[T]]] = None
    ) -> R:
        """
        Run one mutation against the cache.

        With `apply` the change is shown immediately (optimistic) and
        undone on failure; without it the cache only changes once the
        server confirmed.
        """
        snapshot = list(self._items)
        version, epoch = self._issue(entity_id), self._epoch

        if apply is not None:
            self._items = apply(list(self._items))

        try:
            result = await remote()
        except Exception:
            if apply is not None and self._is_current(entity_id, version, epoch):
                self._items = self._restore(entity_id, snapshot)
                logger.debug(f"↩️ Rolled back {self.label} {entity_id}")
            raise

        if self._is_current(entity_id, version, epoch):
            self._items = reconcile(list(self._items), result)
        else:
            logger.debug(f"Discarding stale response for {self.label} {entity_id}")
        return result

    def _restore(self, entity_id: str, snapshot: List[T]) -> List[T]:
        """Put one entity back to its value and position in snapshot"""
        items = [item for item in self._items if item.id != entity_id]
        for index, item in enumerate(snapshot):
            if item.id == entity_id:
                items.insert(min(index, len(items)), item)
                break
        return items

    @staticmethod
    def _replace(entity_id: str, new: T) -> Callable[[List[T]], List[T]]:
        return lambda items: [new if item.id == entity_id else item for item in items]

    @staticmethod
    def _confirm(placeholder_id: str, append: bool = False) -> Callable[[List[T], T], List[T]]:
        """
        Swap an optimistic placeholder for the created row.

        A fetch that finished while the insert was in flight may already
        have dropped the placeholder, or already contain the new row.
        """
        def reconcile(items: List[T], created: T) -> List[T]:
            if any(item.id == created.id for item in items):
                return [item for item in items if item.id != placeholder_id]
            if any(item.id == placeholder_id for item in items):
                return [created if item.id == placeholder_id else item for item in items]
            return items + [created] if append else [created] + items
        return reconcile

    @staticmethod
    def _without(entity_id: str) -> Callable[[List[T]], List[T]]:
        return lambda items: [item for item in items if item.id != entity_id]
