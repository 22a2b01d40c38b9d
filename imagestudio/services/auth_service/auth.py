"""Shared-secret admin login kept in the signed session cookie."""

import hashlib
import hmac
from typing import Optional

from fastapi import HTTPException, Request, status

from imagestudio.config.settings import Settings
from imagestudio.handlers.error_handler import ConfigurationError, InputValidationError
from imagestudio.utility.logger import AppLogger

logger = AppLogger.get_logger(__name__)

SESSION_KEY = "is_admin"


def hash_password(password: str) -> str:
    """sha256 hex digest, the format ADMIN_PASSWORD_HASH is stored in."""
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


class AdminAuth:
    """Check the admin password and flag the session on success."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()

    def verify_password(self, password: Optional[str]) -> bool:
        if not password:
            raise InputValidationError("Password required")
        expected = self.settings.admin_password_hash
        if not expected:
            raise ConfigurationError("Admin password not configured")
        return hmac.compare_digest(hash_password(password), expected.strip().lower())

    def login(self, session: dict, password: Optional[str]) -> bool:
        if not self.verify_password(password):
            logger.warning("Rejected admin login attempt")
            return False
        session[SESSION_KEY] = True
        logger.info("Admin logged in")
        return True

    @staticmethod
    def logout(session: dict) -> None:
        session.clear()

    @staticmethod
    def is_authenticated(session: dict) -> bool:
        return session.get(SESSION_KEY) is True


def require_admin(request: Request) -> bool:
    """FastAPI dependency guarding admin routes."""
    if not AdminAuth.is_authenticated(request.session):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    return True
