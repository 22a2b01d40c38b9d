"""Option catalog for the generation form."""

from imagestudio.models.generate import (
    GenerationMode,
    ImageQuality,
    ImageSize,
    ImageStyle,
    MAX_IMAGE_COUNT,
    MIN_IMAGE_COUNT,
)


class Options:
    """Provide the selectable values clients render in the settings panel.

    Values mirror the request enums so the UI and the API never drift apart.
    """

    def __init__(self):
        """Collect values for every selectable form attribute."""
        self.modes = [m.value for m in GenerationMode]
        self.sizes = [s.value for s in ImageSize]
        self.qualities = [q.value for q in ImageQuality]
        self.styles = [s.value for s in ImageStyle]
        self.count_range = {"min": MIN_IMAGE_COUNT, "max": MAX_IMAGE_COUNT, "default": 2}

    def get_options(
        self,
    ) -> dict:
        """Return all option categories grouped by attribute type."""
        return {
            "modes": self.modes,
            "sizes": self.sizes,
            "qualities": self.qualities,
            "styles": self.styles,
            "count": self.count_range,
        }
