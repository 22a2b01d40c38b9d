"""Admin login, session check, and protected admin routes."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status

from imagestudio.config.settings import Settings
from imagestudio.handlers.error_handler import ConfigurationError, InputValidationError
from imagestudio.models.stats import LoginRequest
from imagestudio.services.auth_service.auth import AdminAuth, require_admin
from imagestudio.services.stats_service.main import StatsService
from imagestudio.services.stats_service.stats_store import StatsStore
from imagestudio.utility.logger import AppLogger

auth_router = APIRouter(prefix="/api/auth", tags=["Auth"])
admin_router = APIRouter(
    prefix="/api/admin", tags=["Admin"], dependencies=[Depends(require_admin)]
)
logger = AppLogger.get_logger(__name__)


def get_admin_auth() -> AdminAuth:
    return AdminAuth()


@auth_router.post("/login")
async def login(
    payload: LoginRequest,
    request: Request,
    auth: AdminAuth = Depends(get_admin_auth),
) -> dict[str, Any]:
    try:
        ok = auth.login(request.session, payload.password)
    except InputValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except ConfigurationError as e:
        logger.error(e.message)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message
        )
    if not ok:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid password"
        )
    return {"success": True, "message": "Login successful"}


@auth_router.post("/logout")
async def logout(request: Request) -> dict[str, Any]:
    AdminAuth.logout(request.session)
    return {"success": True, "message": "Logged out"}


@auth_router.get("/check")
async def check(request: Request) -> dict[str, bool]:
    return {"isAuthenticated": AdminAuth.is_authenticated(request.session)}


@admin_router.get("/stats")
async def admin_stats(
    store: StatsStore = Depends(StatsService.get_stats_store),
) -> dict[str, Any]:
    return store.read().model_dump(by_alias=True)


@admin_router.get("/settings")
async def admin_settings() -> dict[str, str]:
    """Report whether the enhancement key is configured, never its value."""
    return {"geminiApiKey": "***SET***" if Settings.gemini_api_key() else "Not set"}


@admin_router.post("/settings/gemini")
async def update_gemini_key() -> dict[str, str]:
    return {
        "error": "API key management must be done through the server environment",
        "message": "Please set GEMINI_API_KEY in the environment or .env file",
    }
