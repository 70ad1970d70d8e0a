"""Shared-secret login for admins and the optional upload gate."""
from __future__ import annotations

import hmac
from typing import Optional

from application.ports.ledger import SessionStore
from core.logging_config import get_logger
from domain.common.exceptions import UnauthorizedException

logger = get_logger(__name__)

ADMIN_SCOPE = "admin"
UPLOAD_SCOPE = "upload"


def _password_matches(expected: Optional[str], supplied: Optional[str]) -> bool:
    if not expected or supplied is None:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8"))


class AuthService:
    def __init__(
        self,
        sessions: SessionStore,
        admin_password: Optional[str] = None,
        upload_password: Optional[str] = None,
    ):
        self.sessions = sessions
        self.admin_password = admin_password
        self.upload_password = upload_password

    @property
    def gate_enabled(self) -> bool:
        return bool(self.upload_password)

    def login(self, password: str) -> str:
        """Open an admin session; an unset admin password disables login."""
        if not _password_matches(self.admin_password, password):
            logger.warning("admin_login_failed")
            raise UnauthorizedException("Invalid password")
        logger.info("admin_login")
        return self.sessions.create(ADMIN_SCOPE)

    def logout(self, token: Optional[str]) -> None:
        if self.sessions.revoke(token):
            logger.info("admin_logout")

    def is_admin(self, token: Optional[str]) -> bool:
        return self.sessions.is_valid(token, ADMIN_SCOPE)

    def require_admin(self, token: Optional[str]) -> None:
        if not self.is_admin(token):
            raise UnauthorizedException()

    def unlock(self, password: str) -> Optional[str]:
        """Open an upload session. Returns None when no gate is configured."""
        if not self.gate_enabled:
            return None
        if not _password_matches(self.upload_password, password):
            logger.warning("upload_unlock_failed")
            raise UnauthorizedException("Invalid password")
        return self.sessions.create(UPLOAD_SCOPE)

    def require_upload(self, token: Optional[str]) -> None:
        if not self.gate_enabled:
            return
        if not self.sessions.is_valid(token, UPLOAD_SCOPE):
            raise UnauthorizedException("Upload password required")
