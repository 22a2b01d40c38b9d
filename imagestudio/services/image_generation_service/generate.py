"""Orchestrates batched image generation with progressive state updates."""

import asyncio
import json
import time
from typing import AsyncIterator, List, Optional

from imagestudio.handlers.error_handler import (
    ENHANCEMENT,
    GENERATION,
    InputValidationError,
    MapExceptions,
)
from imagestudio.models.generate import (
    Batch,
    ErrorCategory,
    ErrorNotice,
    GeneratedImage,
    GenerationMode,
    GenerationRequest,
    GenerationState,
    clamp_count,
)
from imagestudio.services.enhance_service.enhancer import PromptEnhancer
from imagestudio.services.image_generation_service.aggregator import (
    ResultAggregator,
    StateListener,
)
from imagestudio.services.image_generation_service.batcher import RequestBatcher
from imagestudio.services.image_generation_service.client import GenerationClient
from imagestudio.utility.logger import AppLogger

logger = AppLogger.get_logger(__name__)


class Generation:
    """Drive one user's generate / retry / enhance actions.

    Turns a request for N images into sequential batch calls, publishes
    every intermediate state through the aggregator, and converts failures
    into a single displayable error. Generation and enhancement are
    separate single-flight domains.
    """

    def __init__(
        self,
        client: Optional[GenerationClient] = None,
        batcher: Optional[RequestBatcher] = None,
        aggregator: Optional[ResultAggregator] = None,
        enhancer: Optional[PromptEnhancer] = None,
    ):
        """Wire collaborators; each one can be replaced for tests."""
        self.client = client or GenerationClient()
        self.batcher = batcher or RequestBatcher(
            max_per_request=self.client.settings.max_images_per_request,
            delay_seconds=self.client.settings.batch_delay_seconds,
        )
        self.aggregator = aggregator or ResultAggregator()
        self._enhancer = enhancer
        self.exceptions = MapExceptions()
        self._last_request: Optional[GenerationRequest] = None
        self._enhancing = False
        self._generating = False

    @property
    def enhancer(self) -> PromptEnhancer:
        if self._enhancer is None:
            self._enhancer = PromptEnhancer()
        return self._enhancer

    @property
    def state(self) -> GenerationState:
        return self.aggregator.snapshot()

    def subscribe(self, listener: StateListener):
        return self.aggregator.subscribe(listener)

    @staticmethod
    def effective_count(value: int) -> int:
        """Count the UI should show after the user sets `value`."""
        return clamp_count(value)

    @staticmethod
    def validate(request: GenerationRequest) -> None:
        if not request.prompt:
            raise InputValidationError("Please enter an image description.")
        if request.mode == GenerationMode.IMAGE_TO_IMAGE and not request.source_images:
            raise InputValidationError("Please upload at least one image to edit.")

    async def _fetch(self, request: GenerationRequest, batch: Batch) -> List[GeneratedImage]:
        logger.info(f"Requesting batch {batch.index + 1} ({batch.size} image(s))")
        if request.mode == GenerationMode.IMAGE_TO_IMAGE:
            return await self.client.edit_images(
                prompt=request.prompt,
                images=request.source_images,
                n=batch.size,
                size=request.size,
                style=request.style,
                negative_prompt=request.negative_prompt,
            )
        return await self.client.generate_text(
            prompt=request.prompt,
            n=batch.size,
            size=request.size,
            style=request.style,
            negative_prompt=request.negative_prompt,
        )

    async def generate(self, request: GenerationRequest) -> GenerationState:
        """
        Run every batch for `request` and return the final state.

        Invalid requests are reported without touching the network. A
        failing batch stops the run; images from earlier batches stay.
        Calls made while another generation is running are ignored.
        """
        if self._generating:
            logger.warning("Generation already in progress, ignoring request")
            return self.state

        self._last_request = request
        try:
            self.validate(request)
        except InputValidationError as e:
            self.aggregator.report_error(
                ErrorNotice(category=ErrorCategory.VALIDATION, message=e.message)
            )
            return self.state

        self._generating = True
        start = time.time()
        token = self.aggregator.begin(request.count)

        async def fetch(batch: Batch) -> List[GeneratedImage]:
            return await self._fetch(request, batch)

        try:
            async for batch, images in self.batcher.run(
                request.count, fetch, lambda: self.aggregator.is_current(token)
            ):
                self.aggregator.append(token, batch, images)
            logger.info(f"Generation finished in {time.time() - start:.3f} seconds")
        except Exception as e:
            error = self.exceptions.classify(e, GENERATION)
            self.aggregator.fail(token, error.to_notice())
        finally:
            self._generating = False
            self.aggregator.finish(token)
        return self.state

    async def retry(self) -> GenerationState:
        """Clear the error and run the last request again from the start."""
        if self._generating:
            return self.state
        self.aggregator.report_error(None)
        if self._last_request is None:
            return self.state
        return await self.generate(self._last_request)

    async def enhance_prompt(self, prompt: str) -> Optional[str]:
        """
        Return an enhanced prompt, or None when skipped or failed.
        Calls made while another enhancement is in flight are ignored.
        """
        if not prompt or self._enhancing:
            return None

        self._enhancing = True
        self.aggregator.set_enhancing(True)
        self.aggregator.report_error(None)
        try:
            return await self.enhancer.enhance(prompt)
        except Exception as e:
            error = self.exceptions.classify(e, ENHANCEMENT)
            self.aggregator.report_error(error.to_notice())
            return None
        finally:
            self._enhancing = False
            self.aggregator.set_enhancing(False)

    async def generate_stream(self, request: GenerationRequest) -> AsyncIterator[bytes]:
        """
        Stream the run as JSON lines:
        - state: every published snapshot (progress and images so far)
        - error: the classified failure, if any
        - done: final image count
        """
        queue: asyncio.Queue = asyncio.Queue()
        unsubscribe = self.subscribe(queue.put_nowait)
        task = asyncio.create_task(self.generate(request))
        task.add_done_callback(lambda _: queue.put_nowait(None))
        try:
            while True:
                state = await queue.get()
                if state is None:
                    break
                yield self._event("state", state.model_dump(mode="json"))

            final = task.result()
            if final.error is not None:
                yield self._event("error", final.error.model_dump(mode="json"))
            else:
                yield self._event("done", {"count": len(final.images)})
        finally:
            unsubscribe()
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)

    @staticmethod
    def _event(name: str, data) -> bytes:
        return json.dumps({"event": name, "data": data}).encode() + b"\n"

    async def aclose(self) -> None:
        await self.client.aclose()
