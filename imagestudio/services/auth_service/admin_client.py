"""Backend client for the admin dashboard: login, stats and key status."""

from typing import Any, Dict, Optional

import httpx

from imagestudio.config.settings import Settings
from imagestudio.handlers.error_handler import ApiRequestError, TransportError
from imagestudio.models.stats import StatsRecord
from imagestudio.utility.logger import AppLogger

logger = AppLogger.get_logger(__name__)


class AdminClient:
    """
    Talks to the /api/auth and /api/admin routes with one cookie jar,
    so the session set by login carries over to the protected calls.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
        timeout: float = 10.0,
    ):
        self.http = http_client or httpx.Client(
            base_url=base_url or Settings().backend_url,
            timeout=timeout,
        )

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return self.http.request(method, path, **kwargs)
        except httpx.TransportError as e:
            logger.error(f"Could not reach the backend: {e}")
            raise TransportError(details={"reason": str(e)}) from e

    def _json(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        resp = self._request(method, path, **kwargs)
        if not resp.is_success:
            raise ApiRequestError(self._detail(resp), status_code=resp.status_code)
        return resp.json()

    @staticmethod
    def _detail(resp: httpx.Response) -> str:
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("detail"):
            return str(body["detail"])
        return f"API request failed with status {resp.status_code}"

    def login(self, password: str) -> Optional[str]:
        """Return None on success, otherwise the reason the login failed."""
        resp = self._request("POST", "/api/auth/login", json={"password": password})
        if resp.is_success:
            return None
        return self._detail(resp)

    def is_authenticated(self) -> bool:
        return bool(self._json("GET", "/api/auth/check").get("isAuthenticated"))

    def stats(self) -> StatsRecord:
        return StatsRecord.model_validate(self._json("GET", "/api/admin/stats"))

    def gemini_key_status(self) -> str:
        return self._json("GET", "/api/admin/settings").get("geminiApiKey", "Not set")

    def logout(self) -> None:
        self._json("POST", "/api/auth/logout")

    def close(self) -> None:
        self.http.close()
