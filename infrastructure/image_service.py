"""Image normalization and cropping with Pillow.

Uploaded images are re-encoded to progressive JPEG with EXIF orientation
baked into the pixels. HEIC/HEIF input is decoded through pillow-heif.
Crops keep the stored file's format so fallback-ingested PNG/GIF files
stay what they are.
"""

from __future__ import annotations

from io import BytesIO
from typing import Any

from loguru import logger
from PIL import Image, ImageOps
from pillow_heif import register_heif_opener

from core.services.interfaces import ImageProcessingError

register_heif_opener()

DEFAULT_JPEG_QUALITY = 90

_DECODE_ERRORS = (OSError, ValueError, SyntaxError, Image.DecompressionBombError)


class ImageService:
    """Pillow-backed implementation of the image processing interface."""

    def __init__(self, settings: object | None = None) -> None:
        """Read the JPEG quality from `settings` (`image.jpeg_quality`)."""
        self._quality = DEFAULT_JPEG_QUALITY
        if settings is not None:
            try:
                self._quality = int(settings.get("image.jpeg_quality", DEFAULT_JPEG_QUALITY))
            except (ValueError, TypeError):
                self._quality = DEFAULT_JPEG_QUALITY
        self._quality = min(95, max(1, self._quality))

    @property
    def quality(self) -> int:
        return self._quality

    def normalize(self, data: bytes) -> bytes:
        """Return JPEG bytes with orientation applied and metadata kept."""
        try:
            with Image.open(BytesIO(data)) as im:
                im.load()
                upright = ImageOps.exif_transpose(im)
                if upright is None:
                    upright = im
                save_kwargs = self._metadata_kwargs(upright)
                if upright.mode != "RGB":
                    # profile no longer matches the pixel data
                    save_kwargs.pop("icc_profile", None)
                    upright = upright.convert("RGB")
                out = BytesIO()
                upright.save(
                    out,
                    format="JPEG",
                    quality=self._quality,
                    progressive=True,
                    optimize=True,
                    **save_kwargs,
                )
                return out.getvalue()
        except _DECODE_ERRORS as ex:
            logger.debug("Normalize failed: {}", ex)
            raise ImageProcessingError(f"Cannot normalize image: {ex}") from ex

    def dimensions(self, data: bytes) -> tuple[int, int]:
        """Return the stored pixel size (no orientation applied)."""
        try:
            with Image.open(BytesIO(data)) as im:
                return im.size
        except _DECODE_ERRORS as ex:
            raise ImageProcessingError(f"Cannot read image size: {ex}") from ex

    def crop(self, data: bytes, box: tuple[int, int, int, int]) -> bytes:
        """Crop to `box` (left, upper, right, lower) and re-encode in the source format."""
        try:
            with Image.open(BytesIO(data)) as im:
                fmt = im.format or "JPEG"
                im.load()
                save_kwargs = self._metadata_kwargs(im)
                cropped = im.crop(box)
                if fmt == "JPEG":
                    if cropped.mode not in ("RGB", "L", "CMYK"):
                        save_kwargs.pop("icc_profile", None)
                        cropped = cropped.convert("RGB")
                    save_kwargs.update(quality=self._quality, progressive=True)
                out = BytesIO()
                cropped.save(out, format=fmt, **save_kwargs)
                return out.getvalue()
        except _DECODE_ERRORS as ex:
            logger.debug("Crop failed: {}", ex)
            raise ImageProcessingError(f"Cannot crop image: {ex}") from ex

    def _metadata_kwargs(self, im: Any) -> dict[str, Any]:
        """EXIF and ICC profile of `im` to carry over into the saved image."""
        kwargs: dict[str, Any] = {}
        exif = im.info.get("exif")
        if exif:
            kwargs["exif"] = exif
        icc = im.info.get("icc_profile")
        if icc:
            kwargs["icc_profile"] = icc
        return kwargs
