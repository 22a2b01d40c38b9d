"""Single-batch calls to the hosted text-to-image and image-edit API."""

import asyncio
from typing import Any, Dict, List, Optional, Set

import httpx
from openai import AsyncOpenAI, APIConnectionError, APIStatusError
from openai.types import ImagesResponse

from imagestudio.config.settings import Settings
from imagestudio.handlers.error_handler import ApiRequestError, TransportError
from imagestudio.models.generate import (
    GeneratedImage,
    ImageSize,
    ImageStyle,
    UploadedImage,
)
from imagestudio.services.stats_service.usage import NullUsageTracker, UsageTracker
from imagestudio.utility.utils import Helper
from imagestudio.utility.logger import AppLogger

logger = AppLogger.get_logger(__name__)

GENERATIONS_PATH = "/images/generations"
EDIT_PATH = "/images/image-edit"


class GenerationClient:
    """Issue one batch request and normalise the response or the failure.

    Talks to an OpenAI-compatible endpoint through the `openai` SDK with
    retries disabled. Non-success statuses become `ApiRequestError`,
    transport failures become `TransportError`; categorising them is left
    to the caller.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        usage_tracker: Optional[UsageTracker] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or Settings()
        self.usage_tracker = usage_tracker or NullUsageTracker()
        self.client = AsyncOpenAI(
            api_key=self.settings.image_api_key,
            base_url=self.settings.image_api_base_url,
            max_retries=0,
            timeout=self.settings.request_timeout,
            http_client=http_client,
        )
        self._background: Set[asyncio.Task] = set()

    def build_payload(
        self,
        model: str,
        prompt: str,
        n: int,
        size: ImageSize,
        style: ImageStyle,
        negative_prompt: Optional[str] = None,
        images: Optional[List[UploadedImage]] = None,
    ) -> Dict[str, Any]:
        """Wire body for either endpoint. Quality is never part of it."""
        body: Dict[str, Any] = {
            "model": model,
            "prompt": Helper.build_final_prompt(prompt, ImageStyle(style).value),
            "n": n,
            "size": ImageSize(size).wire_value,
            "response_format": "b64_json",
        }
        if images is not None:
            body["images"] = [image.data for image in images]
        if negative_prompt:
            body["negative_prompt"] = negative_prompt
        return body

    async def generate_text(
        self,
        prompt: str,
        n: int,
        size: ImageSize,
        style: ImageStyle,
        negative_prompt: Optional[str] = None,
    ) -> List[GeneratedImage]:
        body = self.build_payload(
            self.settings.text_model, prompt, n, size, style, negative_prompt
        )
        return await self._send(GENERATIONS_PATH, body)

    async def edit_images(
        self,
        prompt: str,
        images: List[UploadedImage],
        n: int,
        size: ImageSize,
        style: ImageStyle,
        negative_prompt: Optional[str] = None,
    ) -> List[GeneratedImage]:
        body = self.build_payload(
            self.settings.edit_model, prompt, n, size, style, negative_prompt, images
        )
        return await self._send(EDIT_PATH, body)

    async def _send(self, path: str, body: Dict[str, Any]) -> List[GeneratedImage]:
        logger.info(f"POST {path} model={body['model']} n={body['n']}")
        try:
            resp = await self.client.post(path, body=body, cast_to=ImagesResponse)
        except APIStatusError as e:
            raise ApiRequestError(
                message=self._error_message(e),
                status_code=e.status_code,
            ) from e
        except APIConnectionError as e:
            logger.error(f"Could not reach the image API: {e}")
            raise TransportError(details={"reason": str(e)}) from e

        images = [
            GeneratedImage(
                b64_json=item.b64_json or "",
                revised_prompt=item.revised_prompt or "",
            )
            for item in (resp.data or [])
        ]
        self._report_usage(len(images))
        return images

    @staticmethod
    def _error_message(exc: APIStatusError) -> str:
        """Prefer the `message` field of a JSON error body."""
        body = exc.body
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return f"API request failed with status {exc.status_code}"

    def _report_usage(self, count: int) -> None:
        task = asyncio.create_task(self._safe_record(count))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _safe_record(self, count: int) -> None:
        try:
            await self.usage_tracker.record_images(count)
        except Exception as e:
            logger.warning(f"Usage tracking failed: {e}")

    async def aclose(self) -> None:
        """Let pending usage reports settle, then close the HTTP client."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        await self.client.close()
