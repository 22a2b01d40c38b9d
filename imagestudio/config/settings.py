"""Environment-driven runtime settings."""

import os
from dotenv import load_dotenv
from imagestudio.utility.path_finder import Finder

path_finder = Finder()
load_dotenv(path_finder.get_directory("root") / ".env")


class Settings:
    """Read process configuration from environment variables.

    Values are captured when the instance is created; build a new instance
    (or use the FastAPI dependency) to pick up changed variables.
    """

    def __init__(self):
        """Snapshot configuration from the environment with demo defaults."""
        self.image_api_base_url = os.getenv(
            "IMAGE_API_BASE_URL", "https://api.whomeai.com/v1"
        )
        self.image_api_key = os.getenv("IMAGE_API_KEY", "sk-demo")
        self.text_model = os.getenv("IMAGE_TEXT_MODEL", "nano-banana")
        self.edit_model = os.getenv("IMAGE_EDIT_MODEL", "nano-banana-r2i")
        self.request_timeout = float(os.getenv("IMAGE_API_TIMEOUT", "120"))
        self.batch_delay_seconds = float(os.getenv("BATCH_DELAY_SECONDS", "5"))
        self.max_images_per_request = int(os.getenv("MAX_IMAGES_PER_REQUEST", "4"))

        self.session_secret = os.getenv(
            "SESSION_SECRET", "default-secret-change-in-production"
        )
        self.session_max_age = 24 * 60 * 60

        self.stats_file = os.getenv("STATS_FILE") or str(
            path_finder.get_directory("stats")
        )
        self.backend_url = os.getenv("BACKEND_URL", "http://127.0.0.1:8000")

    @property
    def admin_password_hash(self):
        """Configured sha256 hex digest of the admin password, if any."""
        return os.getenv("ADMIN_PASSWORD_HASH")

    @staticmethod
    def gemini_api_key():
        """Resolve the Gemini key at call time so rotations apply immediately."""
        return os.getenv("GEMINI_API_KEY")

    @staticmethod
    def gemini_model():
        """Optional override for the enhancement model named in templates.yml."""
        return os.getenv("GEMINI_MODEL")
