"""
JUSTDOIT - Remote Data Service
==============================
Builds the async Supabase client every store and the session guard talk
to. The client is always passed in as a constructor dependency; nothing
in the package holds it globally.
"""

import logging

from supabase import AsyncClient, AsyncClientOptions, acreate_client

from .config import AppConfig, CLIENT_INFO

logger = logging.getLogger("justdoit.client")

TODOS = "todos"
PRIORITIES = "priorities"
CONTACTS = "contacts"
SETTINGS = "settings"


async def create_client(config: AppConfig) -> AsyncClient:
    """Create the Supabase client (auth refresh on, public schema)"""
    options = AsyncClientOptions(
        schema="public",
        headers={"X-Client-Info": CLIENT_INFO},
        auto_refresh_token=True,
        persist_session=True,
        flow_type="pkce"
    )
    client = await acreate_client(
        config.supabase_url,
        config.supabase_anon_key,
        options=options
    )
    logger.debug(f"Connected Supabase client for {config.supabase_url}")
    return client
