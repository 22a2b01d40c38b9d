"""Split an image count into bounded batches and run them one after another."""

import asyncio
from typing import AsyncIterator, Awaitable, Callable, List, Optional, Tuple

from imagestudio.models.generate import Batch, GeneratedImage
from imagestudio.utility.logger import AppLogger

logger = AppLogger.get_logger(__name__)

MAX_PER_REQUEST = 4
BATCH_DELAY_SECONDS = 5.0

BatchFetch = Callable[[Batch], Awaitable[List[GeneratedImage]]]
Sleep = Callable[[float], Awaitable[None]]


def plan_batches(total: int, max_per_request: int = MAX_PER_REQUEST) -> List[Batch]:
    """Greedy partition of `total` into batches of at most `max_per_request`."""
    if total < 1:
        raise ValueError(f"total must be a positive integer, got {total}")
    if max_per_request < 1:
        raise ValueError(f"max_per_request must be positive, got {max_per_request}")

    batches: List[Batch] = []
    remaining = total
    while remaining > 0:
        size = min(remaining, max_per_request)
        batches.append(Batch(index=len(batches), size=size))
        remaining -= size
    return batches


class RequestBatcher:
    """Sequential batch runner with a fixed pause between calls.

    The pause is a client-side throttle. `sleep` is injectable so tests can
    record delays instead of waiting for them.
    """

    def __init__(
        self,
        max_per_request: int = MAX_PER_REQUEST,
        delay_seconds: float = BATCH_DELAY_SECONDS,
        sleep: Optional[Sleep] = None,
    ):
        self.max_per_request = max_per_request
        self.delay_seconds = delay_seconds
        self.sleep = sleep or asyncio.sleep

    def plan(self, total: int) -> List[Batch]:
        return plan_batches(total, self.max_per_request)

    async def run(
        self,
        total: int,
        fetch: BatchFetch,
        is_current: Callable[[], bool] = lambda: True,
    ) -> AsyncIterator[Tuple[Batch, List[GeneratedImage]]]:
        """
        Yield `(batch, images)` for each batch in order.

        A failing `fetch` propagates at once and later batches are never
        attempted. `is_current` is checked after every suspension; once it
        returns False the run stops without yielding anything further.
        """
        batches = self.plan(total)
        logger.info(
            f"Planned {len(batches)} batch(es) for {total} image(s): "
            f"{[b.size for b in batches]}"
        )
        for batch in batches:
            if batch.index > 0:
                await self.sleep(self.delay_seconds)
                if not is_current():
                    logger.info("Generation superseded during delay, stopping")
                    return

            images = await fetch(batch)
            if not is_current():
                logger.info(f"Discarding stale result for batch {batch.index + 1}")
                return

            yield batch, images
