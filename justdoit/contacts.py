"""
JUSTDOIT - Contact Store
========================
Contacts are a global list (no owner column). Emails are unique; the
check is a select before the insert or update, not a database constraint.
"""

import logging
from typing import Any, List, Optional

from .client import CONTACTS
from .errors import ConstraintViolation
from .schema import Contact, ContactInput, ContactUpdate, changes_of, parse_input
from .store import EntityStore, rows_of

logger = logging.getLogger("justdoit.contacts")

DUPLICATE_EMAIL = "A contact with this email already exists"


class ContactStore(EntityStore[Contact]):
    table = CONTACTS
    model = Contact
    label = "contact"

    async def fetch_all(self) -> List[Contact]:
        async with self._operation("load contacts"):
            self.guard.require_account()
            query = self._table().select("*").order("name")
            return await self._fetch(query)

    async def _holder_of(self, email: str) -> Optional[str]:
        """Id of the contact using `email`, if any"""
        response = await (
            self._table()
            .select("id")
            .eq("email", email)
            .limit(1)
            .execute()
        )
        rows = rows_of(response)
        return rows[0]["id"] if rows else None

    async def exists(self, email: str) -> bool:
        return await self._holder_of(email) is not None

    async def create(self, data: Any) -> Contact:
        """Add a contact; ConstraintViolation if the email is taken"""
        async with self._operation("create contact"):
            self.guard.require_account()
            contact_input = parse_input(ContactInput, data)
            row = contact_input.model_dump(mode="json")

            async def insert() -> Contact:
                if await self.exists(contact_input.email):
                    raise ConstraintViolation(DUPLICATE_EMAIL)
                response = await self._table().insert(row).execute()
                return self._one(response)

            contact = await self._mutate(
                f"email:{contact_input.email}",
                remote=insert,
                reconcile=lambda items, created: [created] + items
            )
            logger.info(f"✅ Created contact: {contact.name} <{contact.email}>")
            self.notifier.success("Contact created")
            return contact

    async def update(self, contact_id: str, data: Any) -> Contact:
        async with self._operation("update contact"):
            self.guard.require_account()
            changes = changes_of(parse_input(ContactUpdate, data))

            async def save() -> Contact:
                email = changes.get("email")
                if email is not None:
                    holder = await self._holder_of(email)
                    if holder is not None and holder != contact_id:
                        raise ConstraintViolation(DUPLICATE_EMAIL)
                response = await (
                    self._table()
                    .update(changes)
                    .eq("id", contact_id)
                    .execute()
                )
                return self._one(response, contact_id)

            contact = await self._mutate(
                contact_id,
                remote=save,
                reconcile=lambda items, updated: self._replace(contact_id, updated)(items)
            )
            logger.info(f"✏️ Updated contact {contact_id}: {sorted(changes)}")
            self.notifier.success("Contact updated")
            return contact

    async def delete(self, contact_id: str) -> None:
        async with self._operation("delete contact"):
            self.guard.require_account()

            async def remove() -> None:
                response = await self._table().delete().eq("id", contact_id).execute()
                self._one(response, contact_id)

            await self._mutate(
                contact_id,
                remote=remove,
                reconcile=lambda items, _: self._without(contact_id)(items)
            )
            logger.info(f"🗑️ Deleted contact {contact_id}")
            self.notifier.success("Contact deleted")
