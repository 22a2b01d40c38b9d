"""Usage trackers that feed the image/page-view counters."""

import asyncio
from typing import Optional, Protocol

import httpx

from imagestudio.services.stats_service.stats_store import StatsStore
from imagestudio.utility.logger import AppLogger

logger = AppLogger.get_logger(__name__)


class UsageTracker(Protocol):
    async def record_images(self, count: int = 1) -> None: ...

    async def record_view(self) -> None: ...


class NullUsageTracker:
    """Discards every event."""

    async def record_images(self, count: int = 1) -> None:
        return None

    async def record_view(self) -> None:
        return None


class StoreUsageTracker:
    """Writes straight into a StatsStore, for generations run inside the backend."""

    def __init__(self, store: StatsStore):
        self.store = store

    async def record_images(self, count: int = 1) -> None:
        record = await asyncio.to_thread(self.store.increment_images, count)
        logger.info(f"Images generated so far: {record.images_generated}")

    async def record_view(self) -> None:
        await asyncio.to_thread(self.store.increment_views)


class HttpUsageTracker:
    """Reports events to the backend's /api/stats endpoints."""

    def __init__(
        self,
        base_url: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.http_client = http_client
        self.timeout = timeout

    async def _request(self, method: str, path: str, **kwargs) -> None:
        url = f"{self.base_url}{path}"
        if self.http_client is not None:
            resp = await self.http_client.request(method, url, **kwargs)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.request(method, url, **kwargs)
        resp.raise_for_status()

    async def record_images(self, count: int = 1) -> None:
        await self._request("POST", "/api/stats/image", json={"count": count})

    async def record_view(self) -> None:
        await self._request("GET", "/api/stats/view")
