"""Contact store: global list with unique emails"""

import asyncio

import pytest

from justdoit.errors import (
    ConstraintViolation, NotAuthenticated, RemoteServiceError, ValidationError
)
from justdoit.app import JustDoIt

from tests.fakes import ANNA, BOB, make_backend, signed_in_app


def test_duplicate_email_is_rejected():
    async def scenario():
        backend = make_backend()
        app = await signed_in_app(backend)
        await app.contacts.create({"name": "X", "email": "x@y.com"})
        count = len(app.contacts.items)

        with pytest.raises(ConstraintViolation):
            await app.contacts.create({"name": "Other X", "email": "x@y.com"})

        assert len(app.contacts.items) == count
        assert len(backend.db.tables["contacts"]) == 1
        assert app.contacts.error == "A contact with this email already exists"

    asyncio.run(scenario())


def test_contacts_are_shared_and_ordered_by_name():
    async def scenario():
        backend = make_backend()
        anna = await signed_in_app(backend, ANNA)
        await anna.contacts.create({"name": "Zoe", "email": "zoe@example.com", "phone": "+49 1"})
        await anna.contacts.create({"name": "Max", "email": "max@example.com"})
        # newest first until the next fetch
        assert [c.name for c in anna.contacts.items] == ["Max", "Zoe"]
        await anna.close()

        bob = await signed_in_app(backend, BOB)
        contacts = await bob.contacts.fetch_all()
        assert [c.name for c in contacts] == ["Max", "Zoe"]
        assert contacts[0].phone is None
        assert contacts[1].phone == "+49 1"

    asyncio.run(scenario())


def test_contact_input_is_validated():
    async def scenario():
        backend = make_backend()
        app = await signed_in_app(backend)

        with pytest.raises(ValidationError):
            await app.contacts.create({"name": "No mail", "email": "not-an-email"})
        with pytest.raises(ValidationError):
            await app.contacts.create({"name": "", "email": "a@b.com"})
        assert backend.db.calls == []

    asyncio.run(scenario())


def test_contacts_require_session():
    async def scenario():
        backend = make_backend()
        app = JustDoIt(backend)
        await app.start()

        with pytest.raises(NotAuthenticated):
            await app.contacts.create({"name": "X", "email": "x@y.com"})
        assert backend.db.calls == []

    asyncio.run(scenario())


def test_update_and_delete_contact():
    async def scenario():
        backend = make_backend()
        app = await signed_in_app(backend)
        contact = await app.contacts.create({"name": "Max", "email": "max@example.com"})

        # keeping its own email is not a duplicate
        updated = await app.contacts.update(
            contact.id, {"name": "Max M.", "email": "max@example.com", "phone": "+49 2"}
        )
        assert updated.name == "Max M."
        assert app.contacts.get(contact.id).phone == "+49 2"

        await app.contacts.delete(contact.id)
        assert app.contacts.items == []
        assert backend.db.tables["contacts"] == []

    asyncio.run(scenario())


def test_update_to_taken_email_leaves_list_unchanged():
    async def scenario():
        backend = make_backend()
        app = await signed_in_app(backend)
        await app.contacts.create({"name": "Zoe", "email": "zoe@example.com"})
        max_ = await app.contacts.create({"name": "Max", "email": "max@example.com"})
        before = app.contacts.items

        with pytest.raises(ConstraintViolation, match="already exists"):
            await app.contacts.update(max_.id, {"email": "zoe@example.com"})

        assert app.contacts.items == before
        stored = [row for row in backend.db.tables["contacts"] if row["id"] == max_.id][0]
        assert stored["email"] == "max@example.com"
        assert not any(op == "update" for _, op, _ in backend.db.calls)

    asyncio.run(scenario())


def test_contacts_are_not_owner_filtered():
    async def scenario():
        backend = make_backend()
        anna = await signed_in_app(backend, ANNA)
        contact = await anna.contacts.create({"name": "Max", "email": "max@example.com"})
        await anna.close()

        bob = await signed_in_app(backend, BOB)
        await bob.contacts.update(contact.id, {"phone": "+49 3"})
        await bob.contacts.delete(contact.id)

        assert backend.db.tables["contacts"] == []
        for table, op, filters in backend.db.calls:
            if table == "contacts":
                assert all(column != "user_id" for column, _ in filters)

    asyncio.run(scenario())


def test_missing_contact_and_empty_update_fail():
    async def scenario():
        app = await signed_in_app(make_backend())

        with pytest.raises(RemoteServiceError, match="not found"):
            await app.contacts.delete("no-such-id")
        with pytest.raises(ValidationError, match="Nothing to update"):
            await app.contacts.update("no-such-id", {})

    asyncio.run(scenario())
