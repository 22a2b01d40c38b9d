"""Prompt enhancement through a Gemini text model."""

import asyncio
from typing import Callable, Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from imagestudio.config.settings import Settings
from imagestudio.handlers.error_handler import (
    ApiRequestError,
    ConfigurationError,
    TransportError,
)
from imagestudio.utility.utils import Helper
from imagestudio.utility.logger import AppLogger

logger = AppLogger.get_logger(__name__)

ClientFactory = Callable[[str], genai.Client]


class GeminiClient:
    """Resolve the Gemini key and build a client for it.

    The key is read on every call, so a missing key surfaces as a
    configuration failure before any network traffic.
    """

    def __init__(
        self,
        key_resolver: Callable[[], Optional[str]] = Settings.gemini_api_key,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.key_resolver = key_resolver
        self.client_factory = client_factory or (lambda key: genai.Client(api_key=key))

    def _get_api_key(self) -> str:
        key = self.key_resolver()
        if not key:
            raise ConfigurationError(
                "Gemini API key not found. Set the GEMINI_API_KEY environment variable."
            )
        return key

    def make_gemini_client(self) -> genai.Client:
        return self.client_factory(self._get_api_key())


class PromptEnhancer:
    """Expand a short prompt into a vivid image description."""

    def __init__(self, gemini_client: Optional[GeminiClient] = None):
        self.gemini_client = gemini_client or GeminiClient()
        self.template = Helper().load_template(template="enhance")

    async def enhance(self, prompt: str) -> str:
        """
        Return the enhanced prompt, or "" for empty input.

        Raises ConfigurationError without a key, TransportError when the API
        cannot be reached, and ApiRequestError for API-reported failures.
        """
        if not prompt:
            return ""

        client = self.gemini_client.make_gemini_client()
        config = types.GenerateContentConfig(
            system_instruction=self.template["system_instruction"],
            temperature=self.template["temperature"],
        )
        contents = self.template["contents"].format(prompt=prompt)
        try:
            resp = await client.aio.models.generate_content(
                model=Settings.gemini_model() or self.template["model"],
                contents=contents,
                config=config,
            )
        except genai_errors.APIError as e:
            logger.error(f"Enhancement API returned an error: {e}")
            raise ApiRequestError(
                message=e.message or f"API request failed with status {e.code}",
                status_code=e.code,
            ) from e
        except (httpx.TransportError, asyncio.TimeoutError) as e:
            logger.error(f"Could not reach the enhancement API: {e}")
            raise TransportError(details={"reason": str(e)}) from e

        text = getattr(resp, "text", None) or ""
        return text.strip()
