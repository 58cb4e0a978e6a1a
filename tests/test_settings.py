"""Settings store: one record per account, created on first read"""

import asyncio

import pytest

from justdoit.errors import ValidationError

from tests.fakes import ANNA, BOB, make_backend, signed_in_app


def test_fetch_creates_missing_record_once():
    async def scenario():
        backend = make_backend()
        app = await signed_in_app(backend)

        settings = await app.settings.fetch()
        again = await app.settings.fetch()

        assert settings.user_id == app.session.user.id
        assert settings.sender_email is None
        assert again.id == settings.id
        assert app.settings.settings == again
        assert len(backend.db.tables["settings"]) == 1

    asyncio.run(scenario())


def test_update_inserts_then_updates():
    async def scenario():
        backend = make_backend()
        app = await signed_in_app(backend)

        created = await app.settings.update({"sender_email": "me@example.com"})
        assert created.sender_email == "me@example.com"

        updated = await app.settings.update({"email_template": "Hello {name}"})
        assert updated.id == created.id
        assert updated.sender_email == "me@example.com"
        assert updated.email_template == "Hello {name}"
        assert updated.updated_at is not None
        assert len(backend.db.tables["settings"]) == 1

    asyncio.run(scenario())


def test_settings_are_per_account():
    async def scenario():
        backend = make_backend()
        anna = await signed_in_app(backend, ANNA)
        await anna.settings.update({"sender_email": "anna@example.com"})
        await anna.close()

        bob = await signed_in_app(backend, BOB)
        settings = await bob.settings.fetch()
        assert settings.sender_email is None
        assert len(backend.db.tables["settings"]) == 2

    asyncio.run(scenario())


def test_failed_save_keeps_previous_settings():
    async def scenario():
        backend = make_backend()
        app = await signed_in_app(backend)
        before = await app.settings.update({"sender_email": "me@example.com"})

        backend.db.fail("settings", "update", "permission denied")
        with pytest.raises(Exception, match="permission denied"):
            await app.settings.update({"sender_email": "other@example.com"})

        assert app.settings.settings == before
        assert app.settings.error == "permission denied"

        with pytest.raises(ValidationError):
            await app.settings.update({})

    asyncio.run(scenario())
