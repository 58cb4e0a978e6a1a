"""
JUSTDOIT - Session File
=======================
Remembered sessions are kept as a small JSON file so a later process
(e.g. the next CLI invocation) can restore them. Memory-only sessions
(remember_me=False) never touch this file.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Union

import pydantic

from .schema import AuthSession

logger = logging.getLogger("justdoit.storage")


class SessionFile:
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()

    def save(self, session: AuthSession) -> None:
        """Write the session (tokens + account) to disk"""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w') as f:
            json.dump(session.model_dump(mode='json'), f, indent=2)
        self.path.chmod(0o600)
        logger.debug(f"💾 Saved session for {session.account.email}")

    def load(self) -> Optional[AuthSession]:
        if not self.path.exists():
            return None

        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
            return AuthSession.model_validate(data)
        except (OSError, json.JSONDecodeError, pydantic.ValidationError) as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return None

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
