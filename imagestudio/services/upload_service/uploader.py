"""Turn user-selected files into UploadedImage payloads with local previews."""

import base64
import io
import mimetypes
import os
import tempfile
from pathlib import Path
from typing import List, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from imagestudio.handlers.error_handler import InputValidationError
from imagestudio.models.generate import UploadedImage
from imagestudio.utility.path_finder import Finder
from imagestudio.utility.logger import AppLogger

logger = AppLogger.get_logger(__name__)


class Uploader:
    """Normalise raw uploads into base64 + MIME type."""

    @staticmethod
    def sniff_mime_type(raw: bytes) -> str:
        """Read just enough of the header to learn the image format."""
        try:
            with Image.open(io.BytesIO(raw)) as img:
                fmt = img.format
        except UnidentifiedImageError as e:
            raise InputValidationError("Uploaded file is not a supported image.") from e
        mime = Image.MIME.get(fmt or "")
        if not mime:
            raise InputValidationError(f"Unsupported image format: {fmt}")
        return mime

    def from_bytes(
        self,
        raw: bytes,
        mime_type: Optional[str] = None,
        filename: Optional[str] = None,
    ) -> UploadedImage:
        if not raw:
            raise InputValidationError("Uploaded file is empty.")
        mime = mime_type or (mimetypes.guess_type(filename)[0] if filename else None)
        if not mime or not mime.startswith("image/"):
            mime = self.sniff_mime_type(raw)
        return UploadedImage(
            data=base64.b64encode(raw).decode("utf-8"),
            mime_type=mime,
        )


class UploadTray:
    """
    Pending source images for one form, each with a temp preview file.

    Preview files are released when an image is removed and when the tray
    is closed; use it as a context manager to guarantee the latter.
    """

    def __init__(self, preview_dir: Optional[Path] = None, uploader: Optional[Uploader] = None):
        self.preview_dir = Path(preview_dir or Finder().get_directory("previews"))
        self.uploader = uploader or Uploader()
        self._entries: List[Tuple[UploadedImage, Path]] = []
        self._closed = False

    def __enter__(self) -> "UploadTray":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def images(self) -> List[UploadedImage]:
        return [image for image, _ in self._entries]

    @property
    def previews(self) -> List[Path]:
        return [preview for _, preview in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def add(
        self,
        raw: bytes,
        mime_type: Optional[str] = None,
        filename: Optional[str] = None,
    ) -> UploadedImage:
        """Append one file; images keep the order they were added in."""
        if self._closed:
            raise RuntimeError("UploadTray is closed")
        image = self.uploader.from_bytes(raw, mime_type=mime_type, filename=filename)
        suffix = mimetypes.guess_extension(image.mime_type) or ""
        fd, path = tempfile.mkstemp(prefix="preview_", suffix=suffix, dir=self.preview_dir)
        with os.fdopen(fd, "wb") as f:
            f.write(raw)
        self._entries.append((image, Path(path)))
        return image

    def remove(self, index: int) -> UploadedImage:
        image, preview = self._entries.pop(index)
        self._release(preview)
        return image

    def clear(self) -> None:
        while self._entries:
            self.remove(len(self._entries) - 1)

    def close(self) -> None:
        self.clear()
        self._closed = True

    @staticmethod
    def _release(preview: Path) -> None:
        try:
            preview.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not release preview {preview}: {e}")
