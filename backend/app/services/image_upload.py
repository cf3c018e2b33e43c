"""
StudyGenie Backend — Image Upload Validation
==============================================

What:  Validates an uploaded image before it is handed to image analysis.
How:   Extension check, declared content-type check, then size check. The
       bytes stay in memory; nothing is written to disk.
Who:   POST /api/ai/image-analyze.

Checks, in order:
    1. Filename present, extension in ALLOWED_EXTENSIONS
    2. Declared content type is an image type we accept
    3. Size: the upload's own reported size before reading (when known),
       then the bytes read, which the route caps at one byte past the limit
    4. Not empty
"""

import logging
from pathlib import Path
from typing import Optional

from app.config import settings
from app.exceptions import ValidationError
from app.schemas.ai import ImagePayload

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
}

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}

_EXTENSION_MIME = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


class ImageUploadService:
    """
    Validates uploads against the configured size limit.

    Args:
        max_size: Override the byte limit (tests); defaults to settings.max_image_size
    """

    def __init__(self, max_size: Optional[int] = None):
        self.max_size = max_size or settings.max_image_size

    def validate_extension(self, filename: Optional[str]) -> str:
        """Returns the normalized extension (lowercase with dot)."""
        if not filename:
            raise ValidationError(message="No image file was provided.", field="image")

        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"Image type '{ext or filename}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="image",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def resolve_content_type(self, content_type: Optional[str], ext: str) -> str:
        """
        Returns the MIME type to forward to the provider.

        A missing or generic declared type is inferred from the extension; a
        declared non-image type is rejected.
        """
        declared = (content_type or "").split(";")[0].strip().lower()
        if not declared or declared == "application/octet-stream":
            return _EXTENSION_MIME[ext]
        if declared not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=f"Content type '{declared}' is not a supported image type.",
                field="image",
                context={"content_type": declared, "allowed": sorted(ALLOWED_MIME_TYPES)},
            )
        return declared

    def _too_large(self, size: int, context_key: str) -> ValidationError:
        max_mb = self.max_size / (1024 * 1024)
        return ValidationError(
            message=(
                f"Image size ({size / (1024 * 1024):.1f}MB) exceeds "
                f"maximum of {max_mb:.0f}MB."
            ),
            field="image",
            context={"max_size_mb": max_mb, context_key: size},
        )

    def check_declared_size(self, declared_size: Optional[int]) -> None:
        """Rejects an upload whose own reported size is over the cap, before reading it."""
        if declared_size is not None and declared_size > self.max_size:
            raise self._too_large(declared_size, "reported_size")

    def validate_size(self, actual_size: int) -> None:
        if actual_size > self.max_size:
            raise self._too_large(actual_size, "actual_size")
        if actual_size == 0:
            raise ValidationError(message="The uploaded image is empty.", field="image")

    def validate(
        self,
        filename: Optional[str],
        content_type: Optional[str],
        content: bytes,
    ) -> ImagePayload:
        """
        Runs every check and returns the payload for the feature request.

        Raises:
            ValidationError: first failed check (→ 400)
        """
        ext = self.validate_extension(filename)
        mime_type = self.resolve_content_type(content_type, ext)
        self.validate_size(len(content))
        logger.info("Image accepted: %s (%s, %d bytes)", filename, mime_type, len(content))
        return ImagePayload(filename=filename, content_type=mime_type, content=content)


image_upload_service = ImageUploadService()
