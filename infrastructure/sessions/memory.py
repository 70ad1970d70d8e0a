"""In-process session store keyed by opaque tokens.

Sessions do not survive a restart and are not shared between workers.
"""
from __future__ import annotations

import secrets
import time
from dataclasses import dataclass
from typing import Callable, Optional

from core.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class _Session:
    scope: str
    expires_at: float


class InMemorySessionStore:
    def __init__(self, ttl: int, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._sessions: dict[str, _Session] = {}

    def create(self, scope: str) -> str:
        self._purge_expired()
        token = secrets.token_urlsafe(32)
        self._sessions[token] = _Session(scope=scope, expires_at=self._clock() + self.ttl)
        logger.info("session_created", scope=scope, active=len(self._sessions))
        return token

    def is_valid(self, token: Optional[str], scope: str) -> bool:
        if not token:
            return False
        session = self._sessions.get(token)
        if session is None:
            return False
        if session.expires_at <= self._clock():
            self._sessions.pop(token, None)
            return False
        return session.scope == scope

    def revoke(self, token: Optional[str]) -> bool:
        if not token:
            return False
        return self._sessions.pop(token, None) is not None

    def __len__(self) -> int:
        return len(self._sessions)

    def _purge_expired(self) -> None:
        now = self._clock()
        for token in [t for t, s in self._sessions.items() if s.expires_at <= now]:
            self._sessions.pop(token, None)
