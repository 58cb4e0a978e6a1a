"""
JUSTDOIT - Configuration
========================
Environment-driven settings. The two Supabase values are required and
startup fails fast without them; everything else has a default.

    SUPABASE_URL            project URL (required)
    SUPABASE_ANON_KEY       public anon key (required)
    JUSTDOIT_SITE_URL       base URL used in confirmation/reset links
    JUSTDOIT_SESSION_FILE   where remembered sessions are kept
    JUSTDOIT_LOG_LEVEL      DEBUG, INFO, WARNING, ...
"""

import logging
import os
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from .errors import ConfigError

REQUIRED_VARS = ("SUPABASE_URL", "SUPABASE_ANON_KEY")

DEFAULT_SITE_URL = "http://localhost:3000"
DEFAULT_SESSION_FILE = "~/.justdoit/session.json"
CLIENT_INFO = "justdoit-app"


class AppConfig(BaseModel):
    supabase_url: str
    supabase_anon_key: str
    site_url: str = DEFAULT_SITE_URL
    session_file: str = DEFAULT_SESSION_FILE
    log_level: str = "INFO"


def load_config(
    environ: Optional[Mapping[str, str]] = None,
    dotenv: bool = True
) -> AppConfig:
    """Read configuration from the environment (and .env)"""
    if environ is None:
        if dotenv:
            load_dotenv()
        environ = os.environ

    for name in REQUIRED_VARS:
        if not environ.get(name):
            raise ConfigError(f"{name} environment variable is not set")

    return AppConfig(
        supabase_url=environ["SUPABASE_URL"],
        supabase_anon_key=environ["SUPABASE_ANON_KEY"],
        site_url=environ.get("JUSTDOIT_SITE_URL") or DEFAULT_SITE_URL,
        session_file=environ.get("JUSTDOIT_SESSION_FILE") or DEFAULT_SESSION_FILE,
        log_level=environ.get("JUSTDOIT_LOG_LEVEL") or "INFO"
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
