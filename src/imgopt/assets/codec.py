"""Pillow-backed image codec."""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Any

from PIL import Image, UnidentifiedImageError

from .errors import CodecError

LOGGER = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("jpeg", "png")


class ImageCodec:
    """Detect encoded formats and re-encode JPEG/PNG images at a quality level."""

    def detect_format(self, data: bytes) -> str:
        """Return the lowercase format name encoded in `data`.

        Raises:
            CodecError: If the bytes are not a recognizable image.
        """
        try:
            with Image.open(io.BytesIO(data)) as img:
                fmt = img.format
        except (UnidentifiedImageError, OSError) as exc:
            raise CodecError(f"unrecognized image data: {exc}") from exc
        return (fmt or "unknown").lower()

    def recompress(self, source: Path, destination: Path, fmt: str, quality: int) -> None:
        """Re-encode `source` into `destination` using `fmt` at `quality`.

        Args:
            source: Image to read.
            destination: File to write the re-encoded image to.
            fmt: Format reported by :meth:`detect_format`.
            quality: Quality level between 1 and 100.

        Raises:
            CodecError: If the format is unsupported or encoding fails.
        """
        if fmt not in SUPPORTED_FORMATS:
            raise CodecError(f"unsupported image format '{fmt}'")
        try:
            with Image.open(source) as img:
                img.load()
                if fmt == "jpeg":
                    self._save_jpeg(img, destination, quality)
                else:
                    self._save_png(img, destination, quality)
        except (OSError, SyntaxError, ValueError) as exc:
            raise CodecError(f"could not encode {fmt}: {exc}") from exc

    def _save_jpeg(self, img: Image.Image, destination: Path, quality: int) -> None:
        options: dict[str, Any] = {"quality": quality, "optimize": True}
        for key in ("icc_profile", "exif"):
            if img.info.get(key):
                options[key] = img.info[key]
        if img.mode not in ("RGB", "L", "CMYK"):
            img = img.convert("RGB")
        img.save(destination, format="JPEG", **options)

    def _save_png(self, img: Image.Image, destination: Path, quality: int) -> None:
        if quality < 100:
            # Palette size scales with quality, as lossy PNG encoders do.
            colors = max(2, min(256, round(256 * quality / 100)))
            has_alpha = img.mode in ("RGBA", "LA", "PA") or "transparency" in img.info
            img = img.convert("RGBA" if has_alpha else "RGB").quantize(
                colors=colors, method=Image.Quantize.FASTOCTREE
            )
            LOGGER.debug("Quantized %s to %d colors", destination.name, colors)
        img.save(destination, format="PNG", optimize=True)


__all__ = ["ImageCodec", "SUPPORTED_FORMATS"]
