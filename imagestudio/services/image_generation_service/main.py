"""Factories for image generation dependencies and option providers."""

from imagestudio.config.options import Options
from imagestudio.config.settings import Settings
from imagestudio.services.enhance_service.enhancer import PromptEnhancer
from imagestudio.services.image_generation_service.client import GenerationClient
from imagestudio.services.image_generation_service.generate import Generation
from imagestudio.services.stats_service.main import StatsService


class ImageGeneration:
    """Expose dependency providers for generation, enhancement, and options.

    Keeps FastAPI dependency wiring concise and centralized.
    """

    @staticmethod
    def get_image_generation() -> Generation:
        """Provide a fresh generation session that reports usage to the counter store."""
        client = GenerationClient(
            settings=Settings(),
            usage_tracker=StatsService.get_usage_tracker(),
        )
        return Generation(client=client)

    @staticmethod
    def get_prompt_enhancer() -> PromptEnhancer:
        return PromptEnhancer()

    @staticmethod
    def get_image_generation_options() -> Options:
        """Return the option catalog used by the settings panel."""
        return Options()
