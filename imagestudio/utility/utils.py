"""Shared helper utilities for template handling and prompt shaping."""

import os
import re
import yaml
from typing import Any, Dict
from imagestudio.utility.path_finder import Finder


class Helper:
    """Provide reusable utilities for prompt templates and style suffixes.

    Loads YAML templates from the config directory and builds the final
    prompt text sent to the generation API.
    """

    def __init__(
        self,
    ):
        """Initialize the helper with access to configured paths."""
        self.path = Finder()

    def load_template(self, filename="templates.yml", template="enhance") -> Dict[str, Any]:
        """Load a prompt template block from disk by logical name."""
        config_dir = self.path.get_directory("config")
        full_path = os.path.join(config_dir, filename)
        with open(full_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        template_map = {
            "enhance": "ENHANCE_TEMPLATE",
        }

        template_key = template_map.get(template)
        if not template_key:
            raise ValueError(f"Unknown template type: {template}")

        if template_key not in data:
            raise KeyError(f"Template '{template_key}' missing in {filename}")

        return data[template_key]

    @staticmethod
    def style_words(style: str) -> str:
        """Turn a style tag such as '3d-model' into prompt words ('3d model')."""
        return style.replace("-", " ")

    @classmethod
    def build_final_prompt(cls, prompt: str, style: str) -> str:
        """Append the style suffix to the prompt unless style is 'none'."""
        if style and style != "none":
            return f"{prompt}, {cls.style_words(style)} style"
        return prompt

    @staticmethod
    def download_filename(revised_prompt: str) -> str:
        """File name for a saved image: first 30 chars of the sanitised prompt."""
        safe = re.sub(r"[^a-z0-9]", "_", revised_prompt or "", flags=re.IGNORECASE).lower()
        return f"{safe[:30] or 'image'}.png"
