"""Pydantic models for generation requests, results, and published UI state."""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

MIN_IMAGE_COUNT = 1
MAX_IMAGE_COUNT = 4


class GenerationMode(str, Enum):
    TEXT_TO_IMAGE = "text-to-image"
    IMAGE_TO_IMAGE = "image-to-image"


class ImageSize(str, Enum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"

    @property
    def wire_value(self) -> str:
        """Pixel dimensions understood by the generation API."""
        return {"portrait": "1024x1792", "landscape": "1792x1024"}[self.value]


class ImageQuality(str, Enum):
    STANDARD = "standard"
    HD = "hd"
    ULTRA = "ultra"


class ImageStyle(str, Enum):
    NONE = "none"
    PHOTOREALISTIC = "photorealistic"
    ANIME = "anime"
    MODEL_3D = "3d-model"
    CINEMATIC = "cinematic"
    DIGITAL_ART = "digital-art"


class ErrorCategory(str, Enum):
    NETWORK_UNREACHABLE = "network_unreachable"
    SERVER_OVERLOADED = "server_overloaded"
    NOT_CONFIGURED = "not_configured"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


def clamp_count(value: int) -> int:
    """Clamp a requested image count into the supported range."""
    return max(MIN_IMAGE_COUNT, min(MAX_IMAGE_COUNT, int(value)))


class UploadedImage(BaseModel):
    """User-supplied source image, base64 payload plus MIME type."""

    data: str
    mime_type: str = Field(default="image/png", alias="mimeType")

    model_config = {"populate_by_name": True}


class GenerationRequest(BaseModel):
    """Everything needed for one user-initiated generate action."""

    prompt: str = ""
    negative_prompt: Optional[str] = Field(default=None, alias="negativePrompt")
    count: int = 2
    size: ImageSize = ImageSize.PORTRAIT
    # Accepted but not transmitted; the API has no quality parameter yet.
    quality: ImageQuality = ImageQuality.STANDARD
    style: ImageStyle = ImageStyle.NONE
    mode: GenerationMode = GenerationMode.TEXT_TO_IMAGE
    source_images: List[UploadedImage] = Field(
        default_factory=list, alias="sourceImages"
    )

    model_config = {
        "populate_by_name": True,
        "str_strip_whitespace": True,
        "extra": "ignore",
    }

    @field_validator("count", mode="before")
    def clamp_requested_count(cls, value) -> int:
        """Any count outside [1, 4] is pulled back into range."""
        try:
            return clamp_count(value)
        except (TypeError, ValueError) as e:
            raise ValueError("count must be an integer") from e


class Batch(BaseModel):
    """One planned chunk of the total requested image count."""

    index: int
    size: int

    model_config = {"frozen": True}


class GeneratedImage(BaseModel):
    """One image returned by the generation API."""

    b64_json: str
    revised_prompt: str = ""

    model_config = {"frozen": True, "extra": "ignore"}


class GenerationProgress(BaseModel):
    completed: int = 0
    total: int

    model_config = {"frozen": True}


class ErrorNotice(BaseModel):
    """Displayable error with the category it was classified into."""

    category: ErrorCategory
    message: str


class GenerationState(BaseModel):
    """Snapshot of the session published to the presentation layer."""

    images: List[GeneratedImage] = Field(default_factory=list)
    progress: Optional[GenerationProgress] = None
    error: Optional[ErrorNotice] = None
    is_loading: bool = False
    is_enhancing: bool = False


class GenerateResponse(BaseModel):
    """Response envelope for the non-streaming generate endpoint."""

    status: int = 200
    message: str = "ok"
    images: List[GeneratedImage] = Field(default_factory=list)
    error: Optional[ErrorNotice] = None


class EnhanceRequest(BaseModel):
    prompt: str = ""

    model_config = {"str_strip_whitespace": True}


class EnhanceResponse(BaseModel):
    prompt: str
