"""Fire-and-forget usage counter endpoints."""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends

from imagestudio.services.stats_service.main import StatsService
from imagestudio.services.stats_service.stats_store import StatsStore
from imagestudio.utility.logger import AppLogger

router = APIRouter(prefix="/api/stats", tags=["Stats"])
logger = AppLogger.get_logger(__name__)


@router.get("/view")
async def record_view(
    store: StatsStore = Depends(StatsService.get_stats_store),
) -> dict[str, Any]:
    store.increment_views()
    return {"success": True}


@router.post("/image")
async def record_images(
    payload: Optional[dict] = Body(default=None),
    store: StatsStore = Depends(StatsService.get_stats_store),
) -> dict[str, Any]:
    """Bump the generated-images counter by `count` (default 1)."""
    count = 1
    if isinstance(payload, dict):
        try:
            count = max(1, int(payload.get("count", 1)))
        except (TypeError, ValueError):
            logger.warning(f"Ignoring invalid image count: {payload.get('count')!r}")
    store.increment_images(count)
    return {"success": True}
